from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, Tuple

from pydantic import BaseModel, Field

_FROZEN = {"frozen": True, "populate_by_name": True}


class DomainType(str, Enum):
    TOKENS = "tokens"
    TRANSFERS = "transfers"
    STREAMS = "streams"


class TokenBalance(BaseModel):
    symbol: str
    name: str
    address: str | None = None
    decimals: int = 6
    balance: Decimal = Decimal(0)
    icon: str | None = None
    model_config = _FROZEN


class TransferStatus(IntEnum):
    PENDING = 0
    CLAIMED = 1
    REFUNDED = 2
    EXPIRED = 3


class TransferDirection(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class Transfer(BaseModel):
    id: str
    sender: str
    recipient: str | None = None
    token_address: str = Field(..., alias="tokenAddress")
    token_symbol: str = Field(..., alias="tokenSymbol")
    amount: Decimal
    expiry: int
    status: TransferStatus
    has_password: bool = Field(False, alias="hasPassword")
    created_at: int = Field(..., alias="createdAt")
    direction: TransferDirection = TransferDirection.SENT
    model_config = _FROZEN


class StreamStatus(IntEnum):
    ACTIVE = 0
    PAUSED = 1
    COMPLETED = 2
    CANCELED = 3


class Milestone(BaseModel):
    percentage: int
    description: str
    released: bool = False
    model_config = _FROZEN


class Stream(BaseModel):
    id: str
    sender: str
    recipient: str
    token_address: str = Field(..., alias="tokenAddress")
    token_symbol: str = Field(..., alias="tokenSymbol")
    amount: Decimal
    streamed: Decimal = Decimal(0)
    start_time: int = Field(..., alias="startTime")
    end_time: int = Field(..., alias="endTime")
    status: StreamStatus
    milestones: Tuple[Milestone, ...] = ()
    withdrawn: Decimal | None = None
    model_config = _FROZEN


class DomainSnapshot(BaseModel):
    """Most recently known complete value for one domain."""

    domain: DomainType
    items: Tuple[Any, ...] = ()
    fetched_at: float
    model_config = _FROZEN


class TransactionStatus(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    SIMULATING = "simulating"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TransactionStatus.CONFIRMED, TransactionStatus.FAILED)


class TransactionProgress(BaseModel):
    status: TransactionStatus = TransactionStatus.IDLE
    hash: str | None = None
    error: str | None = None
    progress_percent: int = Field(0, ge=0, le=100)
    model_config = _FROZEN


class Receipt(BaseModel):
    hash: str = Field(..., alias="transactionHash")
    status: str
    block_number: int | None = Field(None, alias="blockNumber")
    model_config = _FROZEN

    @property
    def succeeded(self) -> bool:
        return self.status.lower() in ("success", "0x1", "1")


class ModalRegistryState(BaseModel):
    open_ids: frozenset[str] = frozenset()
    transaction_in_progress: bool = False
    model_config = _FROZEN
