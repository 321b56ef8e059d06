"""Duration strings such as ``240h``, ``1h30m`` or ``10d``."""
import re
from datetime import timedelta

_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}
_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|s|m|h|d)")


def parse_duration(value: str) -> timedelta:
    """
    Parse a sequence of number+unit parts (ms, s, m, h, d).

    Raises:
        ValueError: If the string is empty or has anything else in it
    """
    text = value.strip()
    if text == "0":
        return timedelta(0)
    total = timedelta(0)
    pos = 0
    for match in _PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    if not text or pos != len(text):
        raise ValueError(f"invalid duration {value!r}; use e.g. 240h, 90m or 10d")
    return total
