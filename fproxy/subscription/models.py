"""Data models for subscription verification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Union


@dataclass(frozen=True)
class UsageRecord:
    """Traffic accounting decoded from a ``subscription-userinfo`` header.

    Byte counts default to ``0``; ``expire`` is a Unix timestamp or ``None``
    when the header carries no expiry.
    """

    upload: int = 0
    download: int = 0
    total: int = 0
    expire: Optional[int] = None

    @property
    def used(self) -> int:
        return self.upload + self.download


@dataclass(frozen=True)
class Success:
    """A link that served a valid config payload with a live subscription."""

    link: str
    host: str
    usage_info: str

    status: Literal["success"] = "success"

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    """A link that failed verification, with a human-readable reason."""

    link: str
    host: str
    reason: str

    status: Literal["failed"] = "failed"

    @property
    def ok(self) -> bool:
        return False


VerificationResult = Union[Success, Failed]
