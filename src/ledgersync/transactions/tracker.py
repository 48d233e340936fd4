"""
# Transaction Tracker

State machine for one user-initiated write:

```
idle -> preparing -> simulating -> confirming -> confirmed | failed
```

Every change produces a new immutable :class:`TransactionProgress` that is
handed to subscribers. Once `confirmed` or `failed` nothing changes the
state again until :meth:`TransactionTracker.start` or
:meth:`TransactionTracker.reset` is called.

## Receipt Waits
:meth:`TransactionTracker.set_hash` starts a background task that waits for
the receipt. Each :meth:`start` / :meth:`reset` bumps a generation counter;
a wait that finishes for an older generation is ignored, so a slow receipt
of a previous write never overwrites the progress of the current one.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List

from ledgersync.models import Receipt, TransactionProgress, TransactionStatus
from ledgersync.transactions.modal import ModalCoordinator
from ledgersync.utils import shorten_id

logger = logging.getLogger(__name__)

ReceiptWaiter = Callable[[str], Awaitable[Receipt]]
ProgressCallback = Callable[[TransactionProgress], None]

_CLEARS_IN_PROGRESS = (
    TransactionStatus.CONFIRMED,
    TransactionStatus.FAILED,
    TransactionStatus.IDLE,
)


class TransactionTracker:
    """
    ## Parameters
    - `wait_for_receipt`: Coroutine function resolving once the receipt of a
      hash exists (`LedgerClient.wait_for_receipt`). It raises on a failed
      receipt or a transport error.
    - `modals`: Optional coordinator kept in sync with the write's life cycle
    """

    def __init__(
        self,
        wait_for_receipt: ReceiptWaiter,
        modals: ModalCoordinator | None = None,
    ) -> None:
        self._wait_for_receipt = wait_for_receipt
        self._modals = modals
        self._progress = TransactionProgress()
        self._generation = 0
        self._receipt_task: asyncio.Task | None = None
        self._subscribers: List[ProgressCallback] = []

    @property
    def progress(self) -> TransactionProgress:
        return self._progress

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _emit(self, **changes: Any) -> None:
        self._progress = self._progress.model_copy(update=changes)
        status = self._progress.status

        if self._modals is not None:
            if status is TransactionStatus.PREPARING:
                self._modals.set_transaction_in_progress(True)
            elif status in _CLEARS_IN_PROGRESS:
                self._modals.set_transaction_in_progress(False)

        for callback in list(self._subscribers):
            try:
                callback(self._progress)
            except Exception as e:
                logger.error(f"Progress subscriber failed: {e}", exc_info=True)

    def start(self) -> None:
        self._generation += 1
        self._receipt_task = None
        self._emit(
            status=TransactionStatus.PREPARING, hash=None, error=None, progress_percent=0
        )

    def reset(self) -> None:
        self._generation += 1
        self._receipt_task = None
        self._emit(
            status=TransactionStatus.IDLE, hash=None, error=None, progress_percent=0
        )

    def update_status(self, status: TransactionStatus) -> None:
        if self._progress.status.is_terminal:
            logger.warning(
                f"Ignoring status {status.value}: transaction already {self._progress.status.value}"
            )
            return
        self._emit(status=status)

    def set_progress(self, percent: int) -> None:
        self._emit(progress_percent=max(0, min(100, int(percent))))

    def set_error(self, message: str) -> None:
        logger.error(f"❌ Transaction failed: {message}")
        self._emit(status=TransactionStatus.FAILED, error=message)

    def complete(self) -> None:
        """Mark the write confirmed without a receipt wait; ignored once terminal."""
        if self._progress.status.is_terminal:
            logger.warning(
                f"Ignoring completion: transaction already {self._progress.status.value}"
            )
            return
        self._emit(status=TransactionStatus.CONFIRMED, progress_percent=100)

    def set_hash(self, tx_hash: str) -> asyncio.Task | None:
        """
        Attach the dispatched hash and wait for its receipt in the background.

        ## Returns
        - The receipt wait task, or `None` when the tracker is already terminal
        """
        if self._progress.status.is_terminal:
            logger.warning(
                f"Ignoring hash {shorten_id(tx_hash)}: transaction already {self._progress.status.value}"
            )
            return None

        self._emit(hash=tx_hash, status=TransactionStatus.CONFIRMING)
        self._receipt_task = asyncio.create_task(
            self._await_receipt(tx_hash, self._generation),
            name=f"receipt:{shorten_id(tx_hash)}",
        )
        return self._receipt_task

    def _receipt_applies(self, tx_hash: str, generation: int) -> bool:
        # A receipt only moves the write it belongs to, and only while it is pending
        if generation != self._generation:
            logger.debug(f"Ignoring stale receipt for {shorten_id(tx_hash)}")
            return False
        if self._progress.status.is_terminal:
            logger.debug(
                f"Ignoring receipt for {shorten_id(tx_hash)}: transaction already {self._progress.status.value}"
            )
            return False
        return True

    async def _await_receipt(self, tx_hash: str, generation: int) -> None:
        try:
            await self._wait_for_receipt(tx_hash)
        except Exception as e:
            if self._receipt_applies(tx_hash, generation):
                self.set_error(str(e) or type(e).__name__)
            return

        if not self._receipt_applies(tx_hash, generation):
            return
        logger.info(f"✅ Transaction {shorten_id(tx_hash)} confirmed")
        self.complete()

    async def wait(self) -> TransactionProgress:
        """Wait for the pending receipt (if any) and return the resulting progress."""
        task = self._receipt_task
        if task is not None:
            await asyncio.shield(task)
        return self._progress
