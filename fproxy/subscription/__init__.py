"""Subscription package — usage header, payload checks and link verification."""

from fproxy.subscription.models import Failed, Success, UsageRecord, VerificationResult
from fproxy.subscription.payload import is_valid_config_payload
from fproxy.subscription.units import format_bytes
from fproxy.subscription.usage import (
    UsageHeaderError,
    check_subscription,
    describe_usage,
    parse_usage_header,
)
from fproxy.subscription.verifier import verify_link, verify_links

__all__ = [
    "format_bytes",
    "parse_usage_header",
    "check_subscription",
    "describe_usage",
    "is_valid_config_payload",
    "verify_link",
    "verify_links",
    "UsageHeaderError",
    "UsageRecord",
    "Success",
    "Failed",
    "VerificationResult",
]
