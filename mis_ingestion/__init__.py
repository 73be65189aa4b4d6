"""
mis_ingestion -- Periodic MIS extract ingestion and reconciliation.

Reads bank extract files, maps and validates their columns, reconciles the
rows against stored application state and applies the resulting change set.

Architecture:
    mis_ingestion/ is a top-level package. Nothing in mis_kernel/ imports
    from ingestion.
"""
