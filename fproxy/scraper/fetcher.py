"""Concurrency-limited HTTP fetching for the page and verification stages."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Sequence, TypeVar

import httpx

from fproxy.scraper.extractor import build_full_url
from fproxy.scraper.models import PageResult, Target

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[], None]


def make_client(
    *,
    timeout: float,
    user_agent: str,
    follow_redirects: bool = False,
) -> httpx.AsyncClient:
    """Return an ``AsyncClient`` configured for scanning untrusted hosts.

    Certificate validation is off: most of the hosts found by the search
    backend use self-signed certificates.
    """
    return httpx.AsyncClient(
        timeout=timeout,
        verify=False,
        follow_redirects=follow_redirects,
        headers={"User-Agent": user_agent},
    )


async def bounded_map(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    *,
    limit: int,
    timeout: float,
    on_progress: ProgressCallback | None = None,
) -> list[R | None]:
    """Run ``worker(item)`` for every item with at most *limit* calls in flight.

    Each call is bounded by *timeout* seconds.  A call that raises or times
    out yields ``None`` in its slot and does not affect any other item.  The
    returned list lines up with *items* by position; completion order is
    not observable.

    ``on_progress`` is invoked once per finished item, success or failure.

    Raises:
        ValueError: If *limit* is less than 1.
    """
    if limit < 1:
        raise ValueError(f"concurrency limit must be >= 1, got {limit}")

    results: list[R | None] = [None] * len(items)
    next_index = 0

    async def _run_one(index: int) -> None:
        try:
            results[index] = await asyncio.wait_for(worker(items[index]), timeout)
        except Exception:
            results[index] = None
        finally:
            if on_progress is not None:
                on_progress()

    async def _drain() -> None:
        nonlocal next_index
        # No await between reading and bumping the index, so workers never
        # claim the same slot.
        while next_index < len(items):
            index = next_index
            next_index += 1
            await _run_one(index)

    workers = [_drain() for _ in range(min(limit, len(items)))]
    await asyncio.gather(*workers)
    return results


async def _fetch_page(client: httpx.AsyncClient, target: Target) -> PageResult | None:
    url = build_full_url(target.host, target.protocol)
    response = await client.get(url)
    if not response.is_success:
        return None
    return PageResult(
        host=url,
        body=response.text,
        header=target.header,
        banner=target.banner,
    )


async def fetch_pages(
    targets: Sequence[Target],
    *,
    limit: int,
    timeout: float,
    user_agent: str,
    on_progress: ProgressCallback | None = None,
) -> list[PageResult]:
    """Fetch every target's landing page and keep the 2xx responses.

    Redirects are not followed.  Network errors, timeouts and non-2xx
    statuses silently drop the target.
    """
    async with make_client(timeout=timeout, user_agent=user_agent) as client:
        pages = await bounded_map(
            targets,
            lambda target: _fetch_page(client, target),
            limit=limit,
            timeout=timeout,
            on_progress=on_progress,
        )
    return [page for page in pages if page is not None]
