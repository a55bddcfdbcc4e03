"""Utilities for rendering pipeline results in the CLI."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import List, Sequence

from fproxy.pipeline import (
    OUTCOME_NO_LINKS,
    OUTCOME_NO_PAGES,
    OUTCOME_NO_TARGETS,
    PipelineReport,
)
from fproxy.scraper.extractor import build_full_url
from fproxy.subscription.models import Success, VerificationResult

RULE = "-" * 40

_WARNINGS = {
    OUTCOME_NO_TARGETS: "Search returned no results for the given queries.",
    OUTCOME_NO_PAGES: "No pages could be fetched or processed.",
    OUTCOME_NO_LINKS: "No potential subscription links extracted from pages.",
}


def render_results(results: Sequence[VerificationResult]) -> str:
    """Render verification verdicts as the final plain-text report.

    Only successes are listed in detail; failures count towards nothing but
    the total.
    """
    successes = [r for r in results if isinstance(r, Success)]
    lines: List[str] = []

    if successes:
        lines.append(f"[+] Found {len(successes)} valid subscription link(s):")
        for r in successes:
            lines.append(f"  - {r.link}")
            lines.append(f"      source: {build_full_url(r.host)}")
            lines.append(f"      usage : {r.usage_info}")
        lines.append("")

    lines.append(RULE)
    if successes:
        lines.append(
            f"Task completed! Found {len(successes)} valid subscription link(s) "
            f"out of {len(results)} checked."
        )
    else:
        lines.append("Task completed. No valid subscription links found.")
    lines.append(RULE)
    return "\n".join(lines)


def render_report(report: PipelineReport) -> str:
    """Render a :class:`PipelineReport`, including early-exit warnings."""
    warning = _WARNINGS.get(report.outcome)
    if warning is not None:
        return "\n".join([RULE, f"⚠️  {warning}", RULE])
    return render_results(report.results)


def results_to_json(results: Sequence[VerificationResult], outcome: str = "done") -> str:
    """Serialise verdicts for ``--json`` output."""
    payload = {
        "outcome": outcome,
        "checked": len(results),
        "valid": sum(r.ok for r in results),
        "results": [
            {**asdict(r), "source": build_full_url(r.host)} for r in results
        ],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)
