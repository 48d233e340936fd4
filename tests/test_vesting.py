from decimal import Decimal

import pytest

from ledgersync.models import StreamStatus
from ledgersync.services import elapsed_fraction, interpolate_stream, interpolated_amount

from conftest import make_stream


@pytest.mark.parametrize(
    "now, expected",
    [
        (-10, Decimal(0)),
        (0, Decimal(0)),
        (25, Decimal("25")),
        (100, Decimal("100")),
        (500, Decimal("100")),
    ],
)
def test_interpolated_amount_bounds(now, expected):
    assert interpolated_amount(Decimal("100"), 0, 100, now) == expected


def test_interpolation_is_monotonic_non_decreasing():
    total = Decimal("1234.567891")
    previous = Decimal(0)
    for now in range(-5, 1010, 7):
        current = interpolated_amount(total, 0, 1000, now)
        assert current >= previous
        previous = current
    assert previous == total


def test_degenerate_period_vests_at_end():
    assert elapsed_fraction(50, 50, 49) == 0
    assert elapsed_fraction(50, 50, 50) == 1
    assert elapsed_fraction(60, 50, 55) == 1


def test_only_active_streams_are_interpolated():
    active = make_stream(amount="10", start=0, end=10)
    paused = make_stream(id="p", amount="10", start=0, end=10, status=StreamStatus.PAUSED)

    assert interpolate_stream(active, 5).streamed == Decimal("5")
    assert interpolate_stream(paused, 5) is paused
