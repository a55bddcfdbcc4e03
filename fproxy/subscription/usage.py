"""Parsing and judging the ``subscription-userinfo`` usage header.

The header is a vendor-defined micro-format, e.g.::

    upload=455727941; download=6174315083; total=1073741824000; expire=1735660800

Parsing is deliberately lenient: unknown keys are ignored and a malformed
value only loses that one field.  Validity is then decided from the parsed
:class:`~fproxy.subscription.models.UsageRecord`.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone

from fproxy.subscription.models import UsageRecord
from fproxy.subscription.units import format_bytes

USAGE_HEADER = "subscription-userinfo"

_FIELDS = ("upload", "download", "total", "expire")

QUOTA_EXHAUSTED = "quota exhausted"
EXPIRED = "expired"


class UsageHeaderError(ValueError):
    """Raised when a usage header is present but holds no ``key=value`` pair."""


def _parse_count(raw: str) -> int | None:
    # Plain ASCII digits only: no sign, underscores or other scripts.
    if not (raw.isascii() and raw.isdigit()):
        return None
    return int(raw)


def parse_usage_header(value: str | None) -> UsageRecord | None:
    """Decode a usage header value into a :class:`UsageRecord`.

    Returns ``None`` when the header is absent.

    Raises:
        UsageHeaderError: If *value* contains no ``key=value`` segment at all.
    """
    if value is None:
        return None

    fields: dict[str, int] = {}
    pairs = 0
    for segment in value.split(";"):
        key, sep, raw = segment.partition("=")
        key, raw = key.strip().lower(), raw.strip()
        if not sep or not key or not raw:
            continue
        pairs += 1
        if key not in _FIELDS:
            continue
        parsed = _parse_count(raw)
        if parsed is not None:
            fields[key] = parsed

    if pairs == 0:
        raise UsageHeaderError(f"no key=value pairs in usage header {value!r}")
    return UsageRecord(**fields)


def check_subscription(record: UsageRecord, now: float | None = None) -> str | None:
    """Return why *record* is unusable, or ``None`` when it is still valid.

    Quota is checked before expiry.
    """
    if now is None:
        now = time.time()
    if record.used >= record.total:
        return QUOTA_EXHAUSTED
    if record.expire is not None and record.expire <= now:
        return EXPIRED
    return None


def _format_amount(count: int) -> str:
    magnitude, unit = format_bytes(count)
    return f"{magnitude} {unit}".rstrip()


def describe_usage(record: UsageRecord, now: float | None = None) -> str:
    """Render *record* as ``"<used>/<total>"`` with an optional expiry note."""
    if now is None:
        now = time.time()
    text = f"{_format_amount(record.used)}/{_format_amount(record.total)}"
    if record.expire is None:
        return text
    if record.expire <= now:
        return f"{text} (expired)"
    try:
        expires_on = datetime.fromtimestamp(record.expire, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return text
    return f"{text} ({expires_on:%Y-%m-%d})"
