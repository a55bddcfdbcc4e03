"""End-to-end tests for fproxy.pipeline.run_pipeline.

The search backend is an in-memory fake; every host and subscription
endpoint is mocked with ``respx``.  ``run_pipeline`` drives its own event
loops, so these tests are synchronous.
"""

from __future__ import annotations

from contextlib import contextmanager
from unittest.mock import patch

import httpx
import pytest
import respx

from fproxy.config import Settings
from fproxy.pipeline import (
    OUTCOME_DONE,
    OUTCOME_NO_LINKS,
    OUTCOME_NO_PAGES,
    OUTCOME_NO_TARGETS,
    run_pipeline,
)
from fproxy.scraper.models import LinkCandidate, Target
from fproxy.search.fofa import BODY_QUERY, HEADER_QUERY, SearchBackend, SearchError
from fproxy.subscription.models import Failed, Success

NOW = 1_700_000_000

_CONFIG = "proxy-groups:\n  - name: Proxy\n    type: select\n"
_HEADER = {"subscription-userinfo": "upload=0; download=1048576; total=1073741824"}

LINK_1 = "https://panel.example/api/v1/client/subscribe?token=aaa111"
LINK_2 = "https://dead.example/api/v1/client/subscribe?token=bbb222"


class FakeBackend(SearchBackend):
    """Returns canned targets per query and records what was asked."""

    def __init__(self, results: dict[str, list[Target]] | None = None, error: str | None = None):
        self.results = results or {}
        self.error = error
        self.queries: list[str] = []

    @property
    def name(self) -> str:
        return "Fake"

    def search(self, query: str) -> list[Target]:
        self.queries.append(query)
        if self.error:
            raise SearchError(self.error)
        return self.results.get(query, [])


@pytest.fixture
def settings() -> Settings:
    return Settings(
        fofa_key="test",
        fofa_size=10,
        concurrency_limit=3,
        request_timeout=1.0,
        user_agent="clash-verge/test",
    )


# ---------------------------------------------------------------------------
# Short-circuits
# ---------------------------------------------------------------------------

class TestShortCircuit:
    def test_no_search_results_performs_no_fetches(self, settings) -> None:
        backend = FakeBackend()
        with patch("fproxy.pipeline.fetch_pages") as fetch, patch(
            "fproxy.pipeline.verify_links"
        ) as verify:
            report = run_pipeline(settings, backend)

        assert report.outcome == OUTCOME_NO_TARGETS
        assert backend.queries == [BODY_QUERY, HEADER_QUERY]
        fetch.assert_not_called()
        verify.assert_not_called()

    def test_no_pages_fetched(self, settings) -> None:
        backend = FakeBackend({BODY_QUERY: [Target(host="down.example")]})
        with respx.mock:
            respx.get("http://down.example/").mock(side_effect=httpx.ConnectError("refused"))
            report = run_pipeline(settings, backend)

        assert report.outcome == OUTCOME_NO_PAGES
        assert report.targets == [Target(host="down.example")]

    def test_pages_without_links(self, settings) -> None:
        backend = FakeBackend({BODY_QUERY: [Target(host="plain.example")]})
        with respx.mock:
            respx.get("http://plain.example/").mock(
                return_value=httpx.Response(200, text="<html>nothing to see</html>")
            )
            with patch("fproxy.pipeline.verify_links") as verify:
                report = run_pipeline(settings, backend)

        assert report.outcome == OUTCOME_NO_LINKS
        assert len(report.pages) == 1
        verify.assert_not_called()

    def test_search_error_propagates(self, settings) -> None:
        with pytest.raises(SearchError, match="quota"):
            run_pipeline(settings, FakeBackend(error="quota"))


# ---------------------------------------------------------------------------
# Full run
# ---------------------------------------------------------------------------

class TestFullRun:
    def test_discovers_and_verifies_links(self, settings) -> None:
        backend = FakeBackend(
            {
                BODY_QUERY: [
                    Target(host="blog.example", protocol="http"),
                    Target(host="https://mirror.example"),
                    Target(host="broken.example", protocol="http"),
                ],
                HEADER_QUERY: [Target(host="direct.example:2096", protocol="https")],
            }
        )
        ticks: dict[str, int] = {}

        @contextmanager
        def progress(label: str, total: int):
            ticks[label] = 0

            def tick() -> None:
                ticks[label] += 1

            yield tick
            assert ticks[label] == total

        with respx.mock:
            respx.get("http://blog.example/").mock(
                return_value=httpx.Response(200, text=f"grab it: {LINK_1} or {LINK_2}")
            )
            respx.get("https://mirror.example/").mock(
                return_value=httpx.Response(200, text=f"<a href='{LINK_1}'>same</a>")
            )
            respx.get("http://broken.example/").mock(return_value=httpx.Response(500))
            respx.get(LINK_1).mock(
                return_value=httpx.Response(200, headers=_HEADER, text=_CONFIG)
            )
            respx.get(LINK_2).mock(side_effect=httpx.ConnectTimeout("slow"))
            respx.get("https://direct.example:2096/").mock(
                return_value=httpx.Response(200, text=_CONFIG)
            )

            report = run_pipeline(settings, backend, progress=progress, now=NOW)

        assert report.outcome == OUTCOME_DONE
        assert len(report.targets) == 4
        assert len(report.pages) == 2
        assert report.candidates == [
            LinkCandidate(link=LINK_1, host="http://blog.example"),
            LinkCandidate(link=LINK_2, host="http://blog.example"),
            LinkCandidate(
                link="https://direct.example:2096", host="https://direct.example:2096"
            ),
        ]
        assert report.results == [
            Success(link=LINK_1, host="http://blog.example", usage_info="1.00 MB/1.00 GB"),
            Failed(link=LINK_2, host="http://blog.example", reason="fetch error"),
            Failed(
                link="https://direct.example:2096",
                host="https://direct.example:2096",
                reason="missing usage header",
            ),
        ]
        assert report.successes == [report.results[0]]
        assert ticks == {"fetching": 3, "verifying": 3}

    def test_header_targets_alone_are_verified(self, settings) -> None:
        backend = FakeBackend({HEADER_QUERY: [Target(host="https://direct.example")]})
        with respx.mock:
            respx.get("https://direct.example/").mock(
                return_value=httpx.Response(200, headers=_HEADER, text=_CONFIG)
            )
            with patch("fproxy.pipeline.fetch_pages") as fetch:
                report = run_pipeline(settings, backend, now=NOW)

        fetch.assert_not_called()
        assert report.outcome == OUTCOME_DONE
        assert [r.ok for r in report.results] == [True]

    def test_direct_host_kept_when_page_has_no_subscription_link(self, settings) -> None:
        backend = FakeBackend(
            {
                BODY_QUERY: [Target(host="blog.example")],
                HEADER_QUERY: [Target(host="panel.example", protocol="https")],
            }
        )
        with respx.mock:
            respx.get("http://blog.example/").mock(
                return_value=httpx.Response(200, text="http://panel.example/ and more")
            )
            respx.get("https://panel.example/").mock(
                return_value=httpx.Response(200, headers=_HEADER, text=_CONFIG)
            )
            report = run_pipeline(settings, backend, now=NOW)

        # The page holds no subscription-shaped link, so only the direct host remains.
        assert [c.link for c in report.candidates] == ["https://panel.example"]
        assert report.successes[0].usage_info == "1.00 MB/1.00 GB"
