"""Write-side service base for the MIS kernel."""

from mis_kernel.services.base import BaseService

__all__ = ["BaseService"]
