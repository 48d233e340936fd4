"""
Vesting interpolation for payment streams.
"""

from decimal import ROUND_DOWN, Decimal

from ledgersync.models import Stream, StreamStatus

_STREAMED_PRECISION = Decimal("0.000001")


def elapsed_fraction(start: float, end: float, now: float) -> Decimal:
    """
    Fraction of the stream period elapsed at `now`, clamped to [0, 1].

    A stream whose end is not after its start is fully vested at its end.
    """
    if end <= start:
        return Decimal(1) if now >= end else Decimal(0)
    if now <= start:
        return Decimal(0)
    if now >= end:
        return Decimal(1)
    return Decimal(str(now - start)) / Decimal(str(end - start))


def interpolated_amount(total: Decimal, start: float, end: float, now: float) -> Decimal:
    """
    Claimable amount of a linear stream at `now`.

    Zero at or before `start`, `total` at or after `end`, linear in between
    and never decreasing in `now`.
    """
    fraction = elapsed_fraction(start, end, now)
    if fraction == 1:
        return total
    return (total * fraction).quantize(_STREAMED_PRECISION, rounding=ROUND_DOWN)


def interpolate_stream(stream: Stream, now: float) -> Stream:
    """Return `stream` with `streamed` recomputed at `now` when it is active."""
    if stream.status is not StreamStatus.ACTIVE:
        return stream
    streamed = interpolated_amount(
        stream.amount, stream.start_time, stream.end_time, now
    )
    if streamed == stream.streamed:
        return stream
    return stream.model_copy(update={"streamed": streamed})
