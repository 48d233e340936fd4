"""
Error taxonomy for ledger reads and writes.

Reads fail with :class:`NetworkError`. Writes fail in one of three places:
before dispatch (:class:`PreflightValidationError`), at the signing step
(:class:`UserCancellation`) or after dispatch when the receipt reports a
failure (:class:`ConfirmationError`). :func:`classify_error` maps arbitrary
wallet and transport exceptions onto these classes by message pattern.
"""

from typing import Tuple

_MAX_DESCRIPTION_LENGTH = 100


class LedgerSyncError(Exception):
    """Base class for every error raised by ledgersync."""


class NetworkError(LedgerSyncError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PreflightValidationError(LedgerSyncError):
    """The simulation step rejected the write; nothing was dispatched."""


class ConfirmationError(LedgerSyncError):
    """The write was dispatched but its receipt reports a failure."""

    def __init__(self, message: str, tx_hash: str | None = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


class UserCancellation(LedgerSyncError):
    """The user rejected the write at the signing step."""

    def __init__(self, message: str = "You cancelled the transaction") -> None:
        super().__init__(message)


_CANCEL_PATTERNS = ("rejected", "denied", "cancelled", "canceled")

# (pattern, title, description)
_PREFLIGHT_PATTERNS: Tuple[Tuple[str, str, str], ...] = (
    (
        "insufficient funds",
        "Insufficient funds",
        "You do not have enough funds to complete this transaction",
    ),
    (
        "gas required exceeds allowance",
        "Gas limit exceeded",
        "The transaction requires more gas than your wallet allows",
    ),
    (
        "nonce too low",
        "Transaction nonce error",
        "Please try again with a higher nonce value",
    ),
    (
        "already claimed",
        "Already claimed",
        "This transfer has already been claimed or is not available",
    ),
    (
        "not claimable",
        "Already claimed",
        "This transfer has already been claimed or is not available",
    ),
    (
        "invalid claim code",
        "Invalid claim code",
        "The claim code you entered is incorrect",
    ),
    (
        "invalid password",
        "Invalid claim code",
        "The claim code you entered is incorrect",
    ),
    (
        "not refundable",
        "Not refundable",
        "This transfer cannot be refunded or has already been claimed",
    ),
    (
        "cannot refund",
        "Not refundable",
        "This transfer cannot be refunded or has already been claimed",
    ),
    ("expired", "Expired", "This transfer has expired and is no longer valid"),
)

_STATUS_TITLES = {
    401: ("Authentication error", "You are not authorized to perform this action"),
    403: ("Authentication error", "You are not authorized to perform this action"),
    404: ("Not found", "The requested resource was not found"),
    429: ("Rate limit exceeded", "Too many requests. Please try again later"),
}


def _shorten(message: str) -> str:
    if len(message) > _MAX_DESCRIPTION_LENGTH:
        return message[:_MAX_DESCRIPTION_LENGTH] + "..."
    return message


def classify_error(exc: BaseException) -> LedgerSyncError:
    """
    Map an arbitrary exception onto the ledgersync taxonomy.

    ## Parameters
    - `exc`: Exception raised by a wallet, signer or transport

    ## Returns
    - `exc` itself when it already is a `LedgerSyncError`
    - `UserCancellation` for rejected/denied/cancelled signing requests
    - `PreflightValidationError` for known pre-dispatch failure messages
    - `NetworkError` for everything else
    """
    if isinstance(exc, LedgerSyncError):
        return exc

    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()

    if any(pattern in lowered for pattern in _CANCEL_PATTERNS):
        return UserCancellation()

    for pattern, _, _ in _PREFLIGHT_PATTERNS:
        if pattern in lowered:
            return PreflightValidationError(message)

    return NetworkError(message)


def describe_error(
    exc: BaseException, default_title: str = "Transaction failed"
) -> Tuple[str, str]:
    """Return a `(title, description)` pair suitable for a user notification."""
    if isinstance(exc, UserCancellation):
        return "Transaction cancelled", str(exc)

    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()

    if isinstance(exc, NetworkError) and exc.status_code is not None:
        if exc.status_code in _STATUS_TITLES:
            return _STATUS_TITLES[exc.status_code]
        if exc.status_code >= 500:
            return (
                "Server error",
                "The server encountered an error. Please try again later",
            )

    for pattern, title, description in _PREFLIGHT_PATTERNS:
        if pattern in lowered:
            return title, description

    return default_title, _shorten(message)
