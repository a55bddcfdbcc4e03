"""Subscription-link discovery: pattern extraction and candidate merging."""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence
from urllib.parse import urlsplit

from fproxy.scraper.models import LinkCandidate, PageResult, Target

SUBSCRIPTION_PATTERN = re.compile(
    r"https?://[^\s\"'<>`]+/api/v1/client/subscribe\?token=[a-zA-Z0-9]+"
)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _dedup_key(link: str) -> tuple[str, str, str] | str:
    """Return ``(hostname, path, query)`` for a well-formed URL, else *link*."""
    try:
        parts = urlsplit(link)
        hostname = parts.hostname
    except ValueError:
        return link
    if not parts.scheme or not hostname:
        return link
    return (hostname, parts.path, parts.query)


def _is_secure(link: str) -> bool:
    return link[:8].lower() == "https://"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_full_url(host: str, protocol: str = "http") -> str:
    """Return *host* as a URL, prefixing ``protocol://`` when it has no scheme."""
    lowered = host.lower()
    if lowered.startswith("http://") or lowered.startswith("https://"):
        return host
    return f"{protocol or 'http'}://{host}"


def extract_links(pages: Iterable[PageResult]) -> List[LinkCandidate]:
    """Find every subscription link in *pages*.

    Each page is scanned body first, then header, then banner.  A link seen
    on several pages keeps the host of the first page it was found on.
    Results are returned in first-seen order.
    """
    found: dict[str, str] = {}
    for page in pages:
        for content in (page.body, page.header, page.banner):
            if not content:
                continue
            for match in SUBSCRIPTION_PATTERN.finditer(content):
                found.setdefault(match.group(0), page.host)
    return [LinkCandidate(link=link, host=host) for link, host in found.items()]


def links_from_targets(targets: Iterable[Target]) -> List[LinkCandidate]:
    """Treat each target's own address as a candidate link.

    Used for hosts the search backend reported as serving a usage header
    directly, rather than embedding a link in a page.  The attributed host
    is the same full URL, so the target's scheme is kept.
    """
    candidates = []
    for t in targets:
        url = build_full_url(t.host, t.protocol)
        candidates.append(LinkCandidate(link=url, host=url))
    return candidates


def merge_links(*groups: Sequence[LinkCandidate]) -> List[LinkCandidate]:
    """Merge candidate lists, keeping one entry per effective endpoint.

    Two links are the same endpoint when they share hostname, path and
    query (scheme and port are ignored); links that do not parse as URLs
    are compared verbatim.  When an ``http`` and an ``https`` link collide,
    the ``https`` one takes the slot of the first; any other collision keeps
    the first-seen entry.
    """
    merged: dict[tuple[str, str, str] | str, LinkCandidate] = {}
    for group in groups:
        for candidate in group:
            key = _dedup_key(candidate.link)
            existing = merged.get(key)
            if existing is None:
                merged[key] = candidate
            elif _is_secure(candidate.link) and not _is_secure(existing.link):
                merged[key] = candidate
    return list(merged.values())
