"""
BaseService -- abstract base for services that write to the MIS store.

Invariants enforced:
    Services flush within the caller's transaction and never commit or
    roll back themselves. The caller (``session_scope`` or a test harness)
    owns the transaction, so a failure anywhere in a multi-step write leaves
    nothing behind once the caller rolls back.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from mis_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Accepts a Session from the caller and persists through ``flush()``."""

    def __init__(self, session: Session):
        self.session = session
