"""ORM models for the MIS store."""

from mis_kernel.models.conflict import (
    RESOLUTION_AUTO,
    RESOLUTION_PENDING,
    DataConflictModel,
)
from mis_kernel.models.mis_record import RAW_FIELDS, MisRecordModel
from mis_kernel.models.upload import MisUploadModel, UploadStatus

__all__ = [
    "MisRecordModel",
    "RAW_FIELDS",
    "DataConflictModel",
    "RESOLUTION_AUTO",
    "RESOLUTION_PENDING",
    "MisUploadModel",
    "UploadStatus",
]
