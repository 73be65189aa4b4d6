"""MIS ingestion services (prepare, commit)."""

from mis_ingestion.services.commit_service import CommitResult, CommitService
from mis_ingestion.services.import_service import ImportPreview, ImportService

__all__ = [
    "CommitResult",
    "CommitService",
    "ImportPreview",
    "ImportService",
]
