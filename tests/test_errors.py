import pytest

from ledgersync.errors import (
    ConfirmationError,
    NetworkError,
    PreflightValidationError,
    UserCancellation,
    classify_error,
    describe_error,
)


@pytest.mark.parametrize(
    "message, expected",
    [
        ("User rejected the request", UserCancellation),
        ("Request denied by wallet", UserCancellation),
        ("insufficient funds for gas * price + value", PreflightValidationError),
        ("nonce too low", PreflightValidationError),
        ("Transfer already claimed", PreflightValidationError),
        ("transfer expired", PreflightValidationError),
        ("socket hang up", NetworkError),
    ],
)
def test_classify_error_by_message(message, expected):
    assert isinstance(classify_error(RuntimeError(message)), expected)


def test_classify_error_keeps_ledgersync_errors():
    error = ConfirmationError("reverted", tx_hash="0x1")
    assert classify_error(error) is error


@pytest.mark.parametrize(
    "status, title",
    [
        (401, "Authentication error"),
        (404, "Not found"),
        (429, "Rate limit exceeded"),
        (503, "Server error"),
    ],
)
def test_describe_error_by_status(status, title):
    assert describe_error(NetworkError("http", status_code=status))[0] == title


def test_describe_error_known_pattern_and_truncation():
    assert describe_error(PreflightValidationError("invalid claim code")) == (
        "Invalid claim code",
        "The claim code you entered is incorrect",
    )

    title, description = describe_error(RuntimeError("x" * 150))
    assert title == "Transaction failed"
    assert description == "x" * 100 + "..."


def test_describe_cancellation():
    assert describe_error(UserCancellation()) == (
        "Transaction cancelled",
        "You cancelled the transaction",
    )
