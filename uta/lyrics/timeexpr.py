from __future__ import annotations

from decimal import Decimal
import re

from uta.errors import ParseError

# [[hh:]mm:]ss[.fff]
_CLOCK_RE = re.compile(r"^(?:(?:(\d+):)?(\d{1,2}):)?(\d+)(?:\.(\d+))?$")
# 12.5s / 1500ms / 2m / 1h
_OFFSET_RE = re.compile(r"^(\d+(?:\.\d+)?)(h|ms|m|s)$")

_UNIT_MS = {"h": 3_600_000, "m": 60_000, "s": 1_000, "ms": 1}


def parse_time_expr(value: str) -> int:
    """
    Convert a TTML time expression to whole milliseconds (truncated).

    Supported:
    - clock time: ss, ss.fff, mm:ss.fff, hh:mm:ss.fff
    - offset time: 12.5s, 1500ms, 2m, 1h
    """
    raw = (value or "").strip()
    if not raw:
        raise ParseError("Empty time expression")

    off = _OFFSET_RE.match(raw)
    if off:
        return int(Decimal(off.group(1)) * _UNIT_MS[off.group(2)])

    clock = _CLOCK_RE.match(raw)
    if not clock:
        raise ParseError(f"Invalid time expression: {value!r}")

    hh, mm, ss, frac = clock.groups()
    h = int(hh) if hh else 0
    m = int(mm) if mm else 0
    s = int(ss)
    if mm is not None and not (0 <= s <= 59):
        raise ParseError(f"Invalid seconds in time expression: {value!r}")
    if hh is not None and not (0 <= m <= 59):
        raise ParseError(f"Invalid minutes in time expression: {value!r}")
    # "5" -> 500ms, "25" -> 250ms, "2504" -> 250ms
    ms = int(frac.ljust(3, "0")[:3]) if frac else 0
    return ((h * 60 + m) * 60 + s) * 1000 + ms
