"""
Ledger transport: REST reads/writes and the event socket watcher.
"""

from .client import LedgerClient
from .connectivity import ConnectivityWatcher, decode_frame

__all__ = ["LedgerClient", "ConnectivityWatcher", "decode_frame"]
