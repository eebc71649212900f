"""
Post-write integrity checks.

Three independent checks, always all evaluated so a caller can see exactly
which invariant broke:

    Write Success      the persistence stage reported success
    Data Freshness     the run produced at least one metric row
    No Negative Spend  no metric row carries negative spend
"""

import logging
from typing import Optional, Sequence

from campaign_intel.models.schemas import IntegrityCheck, NormalizedMetric, TestReport, WriteStatus


logger = logging.getLogger(__name__)


def validate_write(
    write_status: Optional[WriteStatus],
    metrics: Sequence[NormalizedMetric],
) -> TestReport:
    """Build the TestReport; ``valid`` is True only when every check passed."""
    negative = [m for m in metrics if m.spend < 0]

    checks = [
        IntegrityCheck(
            name='Write Success',
            passed=write_status is not None and write_status.success,
            details=None if write_status is None else write_status.error,
        ),
        IntegrityCheck(
            name='Data Freshness',
            passed=len(metrics) > 0,
            details=f"{len(metrics)} rows",
        ),
        IntegrityCheck(
            name='No Negative Spend',
            passed=not negative,
            details=f"{len(negative)} rows with negative spend" if negative else None,
        ),
    ]

    report = TestReport(valid=all(check.passed for check in checks), checks=checks)
    if not report.valid:
        logger.warning(f"Integrity checks failed: {', '.join(report.failed_checks)}")
    return report
