"""
SCHEDULER JOB DEFINITIONS

Jobs are thin wrappers that:
- Log execution
- Call the refresh runtime

NO business logic is allowed here.
"""

import logging

from papertrade.realtime.runtime import RefreshRuntime

_logger = logging.getLogger(__name__)


async def run_quote_refresh_job(runtime: RefreshRuntime) -> None:
    """
    Pull a new quote batch and recompute the analytics snapshot.
    """
    _logger.debug("Running quote refresh job")
    try:
        result = await runtime.run_cycle()
    except Exception as exc:
        _logger.warning(f"Quote refresh job skipped safely: {exc}")
        return

    if result is not None:
        _logger.debug(
            "Refresh complete | total_value=%s positions=%d",
            result.snapshot.total_value,
            result.snapshot.holdings_count,
        )
