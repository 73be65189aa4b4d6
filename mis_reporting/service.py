"""
MIS Reporting Service (``mis_reporting.service``).

Responsibility
--------------
Bridges ``MisRecordSelector`` to the pure functions in ``metrics`` and
``invariants``. Read-only: nothing is added, flushed or committed.

Failure modes
-------------
* Selector query failure  -> exception propagates (no rollback needed).
* Empty store  -> zero-filled summary; percentages are 0.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from mis_config.schema import ReportingConfig
from mis_kernel.domain.dtos import ConflictDTO, MisRecordDTO, UploadDTO
from mis_kernel.logging_config import get_logger
from mis_kernel.models.upload import UploadStatus
from mis_kernel.selectors.record_selector import DEFAULT_PAGE_SIZE, MisRecordSelector
from mis_reporting.invariants import DEFAULT_EXPECTED_MONTHS, run_all_invariant_checks
from mis_reporting.metrics import compute_vkyc_funnel, summarize_records, vkyc_funnel_by_month
from mis_reporting.models import FunnelSummary, InvariantValidation, Severity, VkycFunnelMetrics

logger = get_logger("reporting.service")


class ReportingService:
    """
    Funnel and data-quality reporting over the stored MIS records.

    Every public method re-reads the store; nothing is cached between calls.
    """

    def __init__(
        self,
        session: Session,
        config: ReportingConfig | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self._session = session
        self._config = config or ReportingConfig(expected_months=DEFAULT_EXPECTED_MONTHS)
        self._page_size = page_size
        self._selector = MisRecordSelector(session)

    def _records(self) -> list[MisRecordDTO]:
        return self._selector.fetch_all_records(page_size=self._page_size)

    def funnel_summary(self) -> FunnelSummary:
        summary = summarize_records(self._records())
        logger.info(
            "report_generated",
            extra={
                "report": "funnel_summary",
                "total_applications": summary.overall.total_applications,
                "months": list(summary.months),
            },
        )
        return summary

    def vkyc_funnel(self) -> VkycFunnelMetrics:
        metrics = compute_vkyc_funnel(self._records())
        logger.info(
            "report_generated",
            extra={"report": "vkyc_funnel", "total_stpk": metrics.total_stpk},
        )
        return metrics

    def vkyc_funnel_by_month(self) -> dict[str, VkycFunnelMetrics]:
        return vkyc_funnel_by_month(self._records())

    def check_invariants(
        self,
        previous_month_totals: dict[str, int] | None = None,
    ) -> InvariantValidation:
        """
        Run every data invariant against the current store.

        Args:
            previous_month_totals: Month totals captured before the latest
                upload; enables the month stability check.
        """
        summary = summarize_records(self._records())
        validation = run_all_invariant_checks(
            quality_totals=summary.quality_totals,
            null_application_date_count=summary.null_application_date_count,
            present_months=summary.months,
            expected_months=self._config.expected_months,
            previous_month_totals=previous_month_totals,
            current_month_totals=summary.month_totals() if previous_month_totals is not None else None,
        )
        for failure in validation.failures:
            log = logger.error if failure.severity is Severity.ERROR else logger.warning
            log(
                "invariant_failed",
                extra={"invariant": failure.name, "detail": failure.message},
            )
        return validation

    def month_totals(self) -> dict[str, int]:
        return summarize_records(self._records()).month_totals()

    def pending_conflicts(self) -> list[ConflictDTO]:
        return self._selector.pending_conflicts()

    def signal_conflicts(self) -> list[ConflictDTO]:
        return self._selector.signal_conflicts()

    def upload_history(self, limit: int = 50) -> list[UploadDTO]:
        return self._selector.upload_history(limit=limit)

    def current_upload(self) -> UploadDTO | None:
        """The upload marked Current, else the most recent one."""
        history = self.upload_history()
        for upload in history:
            if upload.status == UploadStatus.CURRENT.value:
                return upload
        return history[0] if history else None
