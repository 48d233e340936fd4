from ledgersync.bus import DataBus
from ledgersync.ledger import ConnectivityWatcher, LedgerClient
from ledgersync.registry import DataServiceRegistry
from ledgersync.transactions import ModalCoordinator, TransactionTracker, run_write

__version__ = "0.1.0"
__all__ = [
    "DataBus",
    "DataServiceRegistry",
    "LedgerClient",
    "ConnectivityWatcher",
    "ModalCoordinator",
    "TransactionTracker",
    "run_write",
    "__version__",
]
