"""Selectors for the MIS kernel (read side)."""

from mis_kernel.selectors.record_selector import DEFAULT_PAGE_SIZE, MisRecordSelector

__all__ = ["MisRecordSelector", "DEFAULT_PAGE_SIZE"]
