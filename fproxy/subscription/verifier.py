"""Per-link verification: fetch, inspect the usage header, check the payload.

Each candidate runs through a fixed sequence of checks and stops at the
first failure:

1. fetch (transport error / timeout)  → ``fetch error``
2. status                             → ``HTTP <code>``
3. usage header present               → ``missing usage header``
4. usage header parses                → ``header parse error``
5. body is a config payload           → ``invalid payload``
6. quota and expiry                   → ``quota exhausted`` / ``expired``

A link that clears every check is a :class:`Success`.
"""

from __future__ import annotations

from typing import Sequence

import httpx

from fproxy.scraper.fetcher import ProgressCallback, bounded_map, make_client
from fproxy.scraper.models import LinkCandidate
from fproxy.subscription.models import Failed, Success, VerificationResult
from fproxy.subscription.payload import is_valid_config_payload
from fproxy.subscription.usage import (
    USAGE_HEADER,
    UsageHeaderError,
    check_subscription,
    describe_usage,
    parse_usage_header,
)

FETCH_ERROR = "fetch error"
MISSING_HEADER = "missing usage header"
HEADER_PARSE_ERROR = "header parse error"
INVALID_PAYLOAD = "invalid payload"


async def verify_link(
    client: httpx.AsyncClient,
    candidate: LinkCandidate,
    now: float | None = None,
) -> VerificationResult:
    """Verify one candidate link and return its verdict.

    Never raises for network or content problems; those become
    :class:`Failed` verdicts.
    """
    link, host = candidate.link, candidate.host

    try:
        response = await client.get(link)
    except httpx.HTTPError:
        return Failed(link=link, host=host, reason=FETCH_ERROR)

    if not response.is_success:
        return Failed(link=link, host=host, reason=f"HTTP {response.status_code}")

    try:
        record = parse_usage_header(response.headers.get(USAGE_HEADER))
    except UsageHeaderError:
        return Failed(link=link, host=host, reason=HEADER_PARSE_ERROR)
    if record is None:
        return Failed(link=link, host=host, reason=MISSING_HEADER)

    if not is_valid_config_payload(response.text):
        return Failed(link=link, host=host, reason=INVALID_PAYLOAD)

    reason = check_subscription(record, now)
    if reason is not None:
        return Failed(link=link, host=host, reason=reason)

    return Success(link=link, host=host, usage_info=describe_usage(record, now))


async def verify_links(
    candidates: Sequence[LinkCandidate],
    *,
    limit: int,
    timeout: float,
    user_agent: str,
    on_progress: ProgressCallback | None = None,
    now: float | None = None,
) -> list[VerificationResult]:
    """Verify *candidates* concurrently; the result list matches input order.

    Redirects are followed.  A link whose check timed out or crashed is
    reported as ``fetch error``.
    """
    async with make_client(
        timeout=timeout, user_agent=user_agent, follow_redirects=True
    ) as client:
        verdicts = await bounded_map(
            candidates,
            lambda candidate: verify_link(client, candidate, now),
            limit=limit,
            timeout=timeout,
            on_progress=on_progress,
        )

    return [
        verdict
        if verdict is not None
        else Failed(link=candidate.link, host=candidate.host, reason=FETCH_ERROR)
        for candidate, verdict in zip(candidates, verdicts)
    ]
