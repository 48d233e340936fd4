"""
Domain services: token balances, transfers and payment streams.
"""

from .base import DomainService
from .scheduler import PeriodicTask
from .streams import StreamsService
from .tokens import TokenBalanceService
from .transfers import TransfersService
from .vesting import elapsed_fraction, interpolate_stream, interpolated_amount

__all__ = [
    "DomainService",
    "PeriodicTask",
    "StreamsService",
    "TokenBalanceService",
    "TransfersService",
    "elapsed_fraction",
    "interpolate_stream",
    "interpolated_amount",
]
