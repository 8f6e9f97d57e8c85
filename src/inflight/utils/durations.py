"""Parsing of Go-style duration strings such as ``892.850592ms`` or ``1h30m``.

The proxy logs request durations in this notation and the pipeline window is
configured with it, so both sides share one parser. Values are returned as
integer nanoseconds to keep the arithmetic exact.
"""

import re
from typing import Dict

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

UNIT_NANOS: Dict[str, int] = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,  # micro sign
    "μs": MICROSECOND,  # greek mu
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?(ns|us|µs|μs|ms|s|m|h)")


def parse_go_duration(text: str) -> int:
    """Parse a duration string into nanoseconds.

    Accepts an optional sign followed by one or more ``<number><unit>``
    components, e.g. ``-1.5h`` or ``2m3.25s``. A bare ``0`` is accepted.

    Raises:
        ValueError: if the text is not a valid duration
    """
    original = text
    if not text:
        raise ValueError(f"invalid duration {original!r}")

    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return 0
    if not text:
        raise ValueError(f"invalid duration {original!r}")

    total = 0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if not match:
            raise ValueError(f"invalid duration {original!r}")
        whole, frac, unit = match.group(1), match.group(2), match.group(3)
        if not whole and not frac:
            raise ValueError(f"invalid duration {original!r}")
        scale = UNIT_NANOS[unit]
        value = int(whole or "0") * scale
        if frac:
            value += int(frac) * scale // (10 ** len(frac))
        total += value
        pos = match.end()

    return sign * total


def parse_window_millis(value) -> int:
    """Convert a configured window (int milliseconds or duration text) to ms."""
    if isinstance(value, bool):
        raise ValueError("window must be a duration, not a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    return parse_go_duration(text) // MILLISECOND
