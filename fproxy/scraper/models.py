"""Data models for the discovery side of the pipeline."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Target:
    """A host returned by the search backend.

    ``host`` is either a full URL (``https://a.example``) or a bare
    ``host[:port]``; ``protocol`` is the scheme the backend reported for it.
    """

    host: str
    protocol: str = ""
    header: str = ""
    banner: str = ""


@dataclass(frozen=True)
class PageResult:
    """The body of a successfully fetched :class:`Target`."""

    host: str
    body: str
    header: str = ""
    banner: str = ""


@dataclass(frozen=True)
class LinkCandidate:
    """A URL suspected of being a subscription endpoint, pending verification."""

    link: str
    host: str
