"""FProxy CLI — entry-point for scanning and verification.

Usage:
    python cli/main.py --help

Commands:
    scan    → full pipeline: FOFA search, page fetch, extraction, verification
    verify  → verification stage only, for links given on the command line
    usage   → decode a ``subscription-userinfo`` header value
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from fproxy.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
from contextlib import contextmanager, redirect_stdout
from typing import Iterator, List, NoReturn, Optional

import typer

from fproxy.config import ConfigError, load_settings
from fproxy.pipeline import run_pipeline
from fproxy.scraper.fetcher import ProgressCallback
from fproxy.scraper.models import LinkCandidate
from fproxy.search.fofa import FofaBackend, SearchError
from fproxy.subscription.usage import (
    UsageHeaderError,
    check_subscription,
    describe_usage,
    parse_usage_header,
)
from fproxy.subscription.verifier import verify_links

from cli.rendering import render_report, render_results, results_to_json

app = typer.Typer(
    name="fproxy",
    help="Discover and verify proxy subscription links.",
    no_args_is_help=True,
)


@contextmanager
def _progressbar(label: str, total: int) -> Iterator[ProgressCallback]:
    with typer.progressbar(length=total, label=f"  {label}") as bar:
        yield lambda: bar.update(1)


def _fail(message: str) -> NoReturn:
    typer.echo(f"❌ {message}", err=True)
    raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# scan
# ---------------------------------------------------------------------------
@app.command("scan")
def scan(
    key: Optional[str] = typer.Option(None, "--key", help="FOFA API key (default: $FOFA_KEY)."),
    size: Optional[int] = typer.Option(None, "--size", help="Results per FOFA query (default: $FOFA_SIZE)."),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", help="Parallel requests (default: $CONCURRENCY_LIMIT)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-request timeout in seconds (default: $REQUEST_TIMEOUT)."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print results as JSON."),
) -> None:
    """Search FOFA, fetch pages, extract links and verify them."""
    try:
        settings = load_settings(
            fofa_key=key,
            fofa_size=size,
            concurrency_limit=concurrency,
            request_timeout=timeout,
        )
    except ConfigError as exc:
        _fail(f"Configuration error: {exc}")

    backend = FofaBackend(
        settings.fofa_key,
        size=settings.fofa_size,
        base_url=settings.fofa_base_url,
        timeout=settings.search_timeout,
    )

    try:
        if json_output:
            # Stage chatter goes to stderr so stdout stays valid JSON.
            with redirect_stdout(sys.stderr):
                report = run_pipeline(settings, backend)
        else:
            typer.echo("FProxy — subscription link scanner")
            report = run_pipeline(settings, backend, progress=_progressbar)
    except SearchError as exc:
        _fail(f"Search failed: {exc}")

    if json_output:
        typer.echo(results_to_json(report.results, outcome=report.outcome))
    else:
        typer.echo(render_report(report))


# ---------------------------------------------------------------------------
# verify
# ---------------------------------------------------------------------------
@app.command("verify")
def verify(
    links: List[str] = typer.Argument(..., help="Subscription links to verify."),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", help="Parallel requests (default: $CONCURRENCY_LIMIT)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-request timeout in seconds (default: $REQUEST_TIMEOUT)."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print results as JSON."),
) -> None:
    """Verify subscription links directly, without searching."""
    try:
        settings = load_settings(
            require_key=False,
            concurrency_limit=concurrency,
            request_timeout=timeout,
        )
    except ConfigError as exc:
        _fail(f"Configuration error: {exc}")

    candidates = [LinkCandidate(link=link, host=link) for link in links]

    def _run(on_progress: ProgressCallback | None = None):
        return asyncio.run(
            verify_links(
                candidates,
                limit=settings.concurrency_limit,
                timeout=settings.request_timeout,
                user_agent=settings.user_agent,
                on_progress=on_progress,
            )
        )

    if json_output:
        typer.echo(results_to_json(_run()))
        return

    with _progressbar("verifying", len(candidates)) as tick:
        results = _run(tick)
    typer.echo(render_results(results))


# ---------------------------------------------------------------------------
# usage
# ---------------------------------------------------------------------------
@app.command("usage")
def usage(
    header: str = typer.Argument(..., help="Value of a subscription-userinfo header."),
) -> None:
    """Decode a usage header and say whether the subscription is still valid."""
    try:
        record = parse_usage_header(header)
    except UsageHeaderError as exc:
        _fail(str(exc))

    typer.echo(f"upload   : {record.upload}")
    typer.echo(f"download : {record.download}")
    typer.echo(f"total    : {record.total}")
    typer.echo(f"expire   : {record.expire if record.expire is not None else '-'}")
    typer.echo(f"usage    : {describe_usage(record)}")

    reason = check_subscription(record)
    typer.echo("verdict  : valid" if reason is None else f"verdict  : invalid ({reason})")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
