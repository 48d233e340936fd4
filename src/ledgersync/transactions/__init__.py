"""
Write-side coordination: transaction progress and dialog suppression.
"""

from .modal import ModalCoordinator, ModalHandle
from .runner import run_write
from .tracker import TransactionTracker

__all__ = ["ModalCoordinator", "ModalHandle", "TransactionTracker", "run_write"]
