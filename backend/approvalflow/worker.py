"""Worker process for scheduled balance maintenance.

Runs an asyncio loop that executes the year-end rollover and monthly accrual once
daily. Both are no-ops on days they do not apply to.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date

from approvalflow.config import get_settings
from approvalflow.db import get_session_factory
from approvalflow.logging_config import configure_logging

logger = logging.getLogger(__name__)

RUN_INTERVAL_SECONDS = 86400  # 24 hours


async def run_daily_jobs(today: date) -> None:
    """Run rollover, then accrual, for one day."""
    from approvalflow.services.accrual import run_monthly_accruals, run_year_end_rollover

    session_factory = get_session_factory()

    # Rollover first so a Jan 1 accrual lands in the new year.
    try:
        async with session_factory() as session:
            rollover = await run_year_end_rollover(session, today)
        if rollover.processed:
            logger.info(
                "Rollover run for %s: rolled_over=%d expired=%d skipped=%d errors=%d",
                today,
                rollover.rolled_over,
                rollover.expired,
                rollover.skipped,
                rollover.errors,
            )
    except Exception:
        logger.exception("Rollover run failed for %s", today)

    try:
        async with session_factory() as session:
            accrual = await run_monthly_accruals(session, today)
        if accrual.processed:
            logger.info(
                "Accrual run for %s: processed=%d accrued=%d skipped=%d errors=%d",
                today,
                accrual.processed,
                accrual.accrued,
                accrual.skipped,
                accrual.errors,
            )
    except Exception:
        logger.exception("Accrual run failed for %s", today)


async def run_worker_loop() -> None:
    logger.info("Balance worker started")
    while True:
        await run_daily_jobs(date.today())
        await asyncio.sleep(RUN_INTERVAL_SECONDS)


def main() -> None:
    """Entry point for the worker process."""
    configure_logging(get_settings().log_level)
    asyncio.run(run_worker_loop())


if __name__ == "__main__":
    main()
