"""Time-shift expression parser: ``<integer><unit>`` into a timedelta."""

from datetime import timedelta

from replayer.errors import InvalidShift

SHIFT_UNITS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 60 * 60 * 24,
    "w": 60 * 60 * 24 * 7,
}


def parse_shift(expr: str) -> timedelta:
    """Parse a shift such as ``2s``, ``5m``, ``5h``, ``1d`` or ``2w``.

    Only a single non-negative integer followed by one unit letter is
    accepted; compound forms like ``1d2h`` are rejected.
    """
    if not expr:
        raise InvalidShift("invalid shift time: empty expression")

    unit = expr[-1]
    if unit not in SHIFT_UNITS:
        raise InvalidShift(f"invalid shift time {expr!r}: unit must be one of s, m, h, d, w")

    number = expr[:-1]
    if not (number.isascii() and number.isdigit()):
        raise InvalidShift(f"invalid shift time {expr!r}: {number!r} is not a non-negative integer")

    try:
        return timedelta(seconds=int(number) * SHIFT_UNITS[unit])
    except OverflowError as e:
        raise InvalidShift(f"invalid shift time {expr!r}: too large") from e
