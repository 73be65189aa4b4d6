"""
mis_kernel.domain -- Pure business logic for MIS application records.

ZERO I/O. Nothing here touches the database, the filesystem or the clock.
"""
