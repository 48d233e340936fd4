"""
Drive one write through the tracker's phases.
"""

import logging
from typing import Any, Awaitable, Callable

from ledgersync.errors import ConfirmationError, classify_error
from ledgersync.models import TransactionProgress, TransactionStatus
from ledgersync.transactions.tracker import TransactionTracker

logger = logging.getLogger(__name__)


async def run_write(
    tracker: TransactionTracker,
    simulate: Callable[[], Awaitable[Any]],
    broadcast: Callable[[], Awaitable[str]],
) -> TransactionProgress:
    """
    Simulate, sign/broadcast and confirm a write.

    ## Parameters
    - `tracker`: Tracker that records the progress of this write
    - `simulate`: Dry run; raises if the ledger would reject the write
    - `broadcast`: Signs and dispatches the write, returns its hash

    ## Returns
    - The final `confirmed` progress

    ## Raises
    - `PreflightValidationError` / `UserCancellation` / `NetworkError` from the
      classified failure of simulate or broadcast (the caught exception is
      chained)
    - `ConfirmationError` when the receipt wait ends in `failed`

    Nothing is retried. Every failure is recorded on the tracker first.
    """
    tracker.start()
    try:
        tracker.update_status(TransactionStatus.SIMULATING)
        await simulate()
        tracker.set_progress(33)
        tx_hash = await broadcast()
        tracker.set_progress(66)
    except Exception as e:
        error = classify_error(e)
        tracker.set_error(str(error))
        if error is e:
            raise
        raise error from e

    tracker.set_hash(tx_hash)
    progress = await tracker.wait()

    if progress.status is TransactionStatus.FAILED:
        raise ConfirmationError(progress.error or "Transaction failed", tx_hash=tx_hash)
    logger.info(f"✅ Write {tx_hash} confirmed")
    return progress
