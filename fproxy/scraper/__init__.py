"""Scraper package — bounded page fetching & subscription-link extraction."""

from fproxy.scraper.extractor import (
    build_full_url,
    extract_links,
    links_from_targets,
    merge_links,
)
from fproxy.scraper.fetcher import bounded_map, fetch_pages
from fproxy.scraper.models import LinkCandidate, PageResult, Target

__all__ = [
    "bounded_map",
    "fetch_pages",
    "build_full_url",
    "extract_links",
    "links_from_targets",
    "merge_links",
    "Target",
    "PageResult",
    "LinkCandidate",
]
