"""
Process-wide registry of open dialogs.

While a write is awaiting the user's signature no dialog may be shown:
:meth:`ModalCoordinator.set_transaction_in_progress` closes everything and
:meth:`ModalCoordinator.open_modal` refuses to reopen anything until the
flag is cleared.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Set

from ledgersync.models import ModalRegistryState

logger = logging.getLogger(__name__)

CloseCallback = Callable[[], None]


class ModalCoordinator:
    def __init__(self) -> None:
        self._open_ids: Set[str] = set()
        self._transaction_in_progress = False
        self._handles: Dict[str, "ModalHandle"] = {}

    @property
    def state(self) -> ModalRegistryState:
        return ModalRegistryState(
            open_ids=frozenset(self._open_ids),
            transaction_in_progress=self._transaction_in_progress,
        )

    @property
    def transaction_in_progress(self) -> bool:
        return self._transaction_in_progress

    def open_modal(self, modal_id: str) -> bool:
        """Returns `False` when opening is blocked by a transaction in progress."""
        if self._transaction_in_progress:
            logger.debug(f"Modal {modal_id} blocked: transaction in progress")
            return False
        self._open_ids.add(modal_id)
        return True

    def close_modal(self, modal_id: str) -> None:
        self._open_ids.discard(modal_id)

    def close_all_modals(self) -> None:
        self._open_ids.clear()

    def set_transaction_in_progress(self, in_progress: bool) -> None:
        """
        Enter or leave transaction mode.

        Entering clears every open id and calls `on_close` of each registered
        handle that is open locally. Leaving only clears the flag; dialogs are
        not reopened. Setting the current value again does nothing.
        """
        if in_progress == self._transaction_in_progress:
            return

        self._transaction_in_progress = in_progress
        if not in_progress:
            logger.debug("Transaction finished, modals may open again")
            return

        logger.info(f"Transaction in progress, closing {len(self._open_ids)} modal(s)")
        self._open_ids.clear()
        for handle in list(self._handles.values()):
            if handle.locally_open:
                handle._request_close()

    def should_be_open(self, modal_id: str, locally_open: bool) -> bool:
        return (
            locally_open
            and modal_id in self._open_ids
            and not self._transaction_in_progress
        )

    def register(self, modal_id: str, on_close: CloseCallback | None = None) -> "ModalHandle":
        """
        Create the handle a dialog uses to report its local open state.

        Registering an id again replaces the previous handle.
        """
        handle = ModalHandle(self, modal_id, on_close)
        self._handles[modal_id] = handle
        return handle

    def _unregister(self, handle: "ModalHandle") -> None:
        if self._handles.get(handle.modal_id) is handle:
            del self._handles[handle.modal_id]
        self.close_modal(handle.modal_id)


@dataclass(eq=False)
class ModalHandle:
    coordinator: ModalCoordinator
    modal_id: str
    on_close: CloseCallback | None = None
    locally_open: bool = field(default=False, init=False)

    def set_open(self, is_open: bool) -> None:
        self.locally_open = is_open
        if is_open:
            self.coordinator.open_modal(self.modal_id)
        else:
            self.coordinator.close_modal(self.modal_id)

    @property
    def should_be_open(self) -> bool:
        return self.coordinator.should_be_open(self.modal_id, self.locally_open)

    def dispose(self) -> None:
        self.locally_open = False
        self.coordinator._unregister(self)

    def _request_close(self) -> None:
        self.locally_open = False
        if self.on_close is None:
            return
        try:
            self.on_close()
        except Exception as e:
            logger.error(f"Error closing modal {self.modal_id}: {e}", exc_info=True)
