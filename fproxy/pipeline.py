"""High-level runner for the discovery-and-verification pipeline.

``run_pipeline`` wires the five stages together:

    1. search   — query the backend for body-link and usage-header hosts
    2. fetch    — download landing pages of the body-link hosts in parallel
    3. extract  — pull subscription links out of the pages, merge with the
                  usage-header hosts and deduplicate
    4. verify   — check every candidate link in parallel
    5. report   — hand the verdicts back to the caller

Stages print their progress to stdout.  When a stage produces nothing the
run stops early with a warning outcome; only a search failure is an error.
"""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, ContextManager, Iterator, List

from fproxy.config import Settings
from fproxy.scraper.extractor import extract_links, links_from_targets, merge_links
from fproxy.scraper.fetcher import ProgressCallback, fetch_pages
from fproxy.scraper.models import LinkCandidate, PageResult, Target
from fproxy.search.fofa import BODY_QUERY, HEADER_QUERY, SearchBackend
from fproxy.subscription.models import Success, VerificationResult
from fproxy.subscription.verifier import verify_links

STEPS = 5

OUTCOME_NO_TARGETS = "no-targets"
OUTCOME_NO_PAGES = "no-pages"
OUTCOME_NO_LINKS = "no-links"
OUTCOME_DONE = "done"

ProgressFactory = Callable[[str, int], ContextManager[ProgressCallback]]


@contextmanager
def _no_progress(label: str, total: int) -> Iterator[ProgressCallback]:
    yield lambda: None


@dataclass
class PipelineReport:
    """Everything a caller needs to present the outcome of a run."""

    outcome: str
    targets: List[Target] = field(default_factory=list)
    pages: List[PageResult] = field(default_factory=list)
    candidates: List[LinkCandidate] = field(default_factory=list)
    results: List[VerificationResult] = field(default_factory=list)

    @property
    def successes(self) -> List[Success]:
        return [r for r in self.results if isinstance(r, Success)]


def _step(n: int, title: str) -> None:
    print(f"\n[STEP {n}/{STEPS}] {title}")


def run_pipeline(
    settings: Settings,
    backend: SearchBackend,
    *,
    progress: ProgressFactory | None = None,
    now: float | None = None,
) -> PipelineReport:
    """Run the pipeline once and return its :class:`PipelineReport`.

    Args:
        settings: Validated settings (concurrency, timeouts, user-agent).
        backend: Search backend providing candidate hosts.
        progress: Optional factory ``(label, total) -> context manager``
            yielding a tick callable; used to drive a progress bar during
            the fetch and verify stages.
        now: Unix time to judge expiry against; defaults to the clock.

    Raises:
        SearchError: If the search backend fails.  Nothing downstream of
            the search stage raises.
    """
    progress = progress or _no_progress
    limit = settings.concurrency_limit

    # ------------------------------------------------------------------
    # 1. Search
    # ------------------------------------------------------------------
    _step(1, f"Querying {backend.name}")
    body_targets = backend.search(BODY_QUERY)
    print(f"[SEARCH] {len(body_targets)} host(s) embedding subscription links.")
    header_targets = backend.search(HEADER_QUERY)
    print(f"[SEARCH] {len(header_targets)} host(s) serving a usage header.")

    targets = body_targets + header_targets
    if not targets:
        print(f"[SEARCH] {backend.name} returned no results for the queries.")
        return PipelineReport(outcome=OUTCOME_NO_TARGETS)

    # ------------------------------------------------------------------
    # 2. Fetch pages
    # ------------------------------------------------------------------
    _step(2, f"Fetching {len(body_targets)} page(s) (concurrency: {limit})")
    pages: list[PageResult] = []
    if body_targets:
        with progress("fetching", len(body_targets)) as tick:
            pages = asyncio.run(
                fetch_pages(
                    body_targets,
                    limit=limit,
                    timeout=settings.request_timeout,
                    user_agent=settings.user_agent,
                    on_progress=tick,
                )
            )
    print(f"[FETCH] {len(pages)} page(s) fetched.")

    if not pages and not header_targets:
        print("[FETCH] No pages could be fetched.")
        return PipelineReport(outcome=OUTCOME_NO_PAGES, targets=targets)

    # ------------------------------------------------------------------
    # 3. Extract + merge
    # ------------------------------------------------------------------
    _step(3, "Extracting and deduplicating subscription links")
    extracted = extract_links(pages)
    direct = links_from_targets(header_targets)
    candidates = merge_links(extracted, direct)
    print(
        f"[EXTRACT] {len(extracted)} link(s) from pages, {len(direct)} direct "
        f"host(s) → {len(candidates)} unique candidate(s)."
    )

    if not candidates:
        print("[EXTRACT] No potential subscription links found.")
        return PipelineReport(outcome=OUTCOME_NO_LINKS, targets=targets, pages=pages)

    # ------------------------------------------------------------------
    # 4. Verify
    # ------------------------------------------------------------------
    _step(4, f"Verifying {len(candidates)} link(s) (concurrency: {limit})")
    with progress("verifying", len(candidates)) as tick:
        results = asyncio.run(
            verify_links(
                candidates,
                limit=limit,
                timeout=settings.request_timeout,
                user_agent=settings.user_agent,
                on_progress=tick,
                now=now,
            )
        )
    print(f"[VERIFY] {sum(r.ok for r in results)}/{len(results)} link(s) valid.")

    # ------------------------------------------------------------------
    # 5. Report
    # ------------------------------------------------------------------
    _step(5, "Reporting results")
    return PipelineReport(
        outcome=OUTCOME_DONE,
        targets=targets,
        pages=pages,
        candidates=candidates,
        results=results,
    )
