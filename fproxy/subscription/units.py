"""Human-readable byte counts."""

from __future__ import annotations

import math
from numbers import Real

UNITS = ("B", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB")


def format_bytes(value: object) -> tuple[str, str]:
    """Return *value* bytes as a ``(magnitude, unit)`` pair.

    Counts under 1000 stay in bytes.  Larger counts pick the unit from
    ``floor(log2(n) / 10)`` (at least KB) and show three significant
    digits, switching to whole numbers once the magnitude reaches 1000::

        >>> format_bytes(512)
        ('512', 'B')
        >>> format_bytes(1536)
        ('1.50', 'KB')
        >>> format_bytes(1000)
        ('0.977', 'KB')

    Anything that is not a finite, non-negative number gives ``("NaN", "")``.
    """
    if isinstance(value, bool) or not isinstance(value, Real):
        return ("NaN", "")
    if (isinstance(value, float) and not math.isfinite(value)) or value < 0:
        return ("NaN", "")

    if value < 1000:
        return (str(math.floor(value + 0.5)), "B")

    exponent = min(max(math.floor(math.log2(value) / 10), 1), len(UNITS) - 1)
    scaled = value / 1024 ** exponent

    text = f"{scaled:#.3g}"
    if scaled >= 1000 or "e" in text:
        text = f"{scaled:.0f}"
    return (text.rstrip("."), UNITS[exponent])
