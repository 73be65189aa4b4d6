"""
MIS Kernel - application-record reconciliation core

Deterministic building blocks shared by ingestion, commit and reporting:
- Business-rule derivation (lead quality, KYC/VKYC flags, conflicts)
- Journey stage calculation (ordinal progress of an application)
- Forward-only transition guard (terminal, temporal and stage gates)
- Intra-batch deduplication
- Stored-record persistence (ORM models, engine, selectors)
"""

__version__ = "0.1.0"
