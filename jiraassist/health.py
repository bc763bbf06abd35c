"""Rule-based backlog health checks and an LLM-written summary of them."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Sequence

from .models import IssueDetail
from .provider import LLMError, Provider, Settings, new_provider, parse_json_response

logger = logging.getLogger(__name__)

DEFAULT_STALE_DAYS = 14

ACTIVE_STATUSES = frozenset({
    "In Progress",
    "In Review",
    "In Dev",
    "In QA",
    "In Test",
    "Reviewing",
})

_PARENT_TYPES = frozenset({"epic", "initiative", "feature"})

HEALTH_SUMMARY_PROMPT = """You are a product management expert analyzing a JIRA backlog health check.
Given the project's open issue statistics and a list of problems found, produce:

1. **Executive Summary**: A 2-3 sentence assessment of overall backlog health.
   Mention the most critical problems first.
2. **Recommendations**: 3-6 actionable recommendations to improve backlog health,
   ordered by impact. Be specific (e.g. "Assign PROJ-123 which has been in progress
   for 21 days" rather than "assign stale tickets").

Respond ONLY with valid JSON (no markdown fences) with these keys:
  executive_summary (string), recommendations (array of strings)"""


@dataclass
class HealthFinding:
    """One problem found on one issue.

    ``category`` is one of ``stale``, ``missing_description``, ``orphaned``,
    ``unassigned_active`` or ``missing_labels``.
    """

    category: str
    key: str
    summary: str
    detail: str


@dataclass
class HealthReport:
    """The full result of a backlog health check."""

    total_issues: int = 0
    findings: list[HealthFinding] = field(default_factory=list)
    executive_summary: str = ""
    recommendations: list[str] = field(default_factory=list)


def _now_like(moment: datetime) -> datetime:
    return datetime.now(moment.tzinfo) if moment.tzinfo is not None else datetime.now()


def _findings_for(issue: IssueDetail, stale_days: int) -> Iterable[HealthFinding]:
    active = issue.status in ACTIVE_STATUSES

    if active:
        now = _now_like(issue.updated)
        if issue.updated < now - timedelta(days=stale_days):
            days = int((now - issue.updated).total_seconds() / 3600 / 24)
            yield HealthFinding(
                "stale", issue.key, issue.summary,
                f"{issue.status} for {days} days "
                f"(last updated {issue.updated.date().isoformat()})",
            )

    if not issue.description.strip():
        yield HealthFinding("missing_description", issue.key, issue.summary,
                            f"{issue.issue_type} with no description")

    if not issue.parent_key and issue.issue_type.lower() not in _PARENT_TYPES:
        yield HealthFinding("orphaned", issue.key, issue.summary,
                            f"{issue.issue_type} with no parent epic")

    if active and not issue.assignee:
        yield HealthFinding("unassigned_active", issue.key, issue.summary,
                            f"{issue.status} but unassigned")

    if not issue.labels:
        yield HealthFinding("missing_labels", issue.key, issue.summary,
                            f"{issue.issue_type} with no labels")


def check_backlog_health(
    issues: Iterable[IssueDetail], stale_days: int = DEFAULT_STALE_DAYS
) -> list[HealthFinding]:
    """Run the rule-based checks over open issues; a non-positive threshold means 14 days."""
    if stale_days <= 0:
        stale_days = DEFAULT_STALE_DAYS
    return [finding for issue in issues for finding in _findings_for(issue, stale_days)]


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise LLMError(f"failed to parse LLM response as JSON: {key} must be a string")
    return value


def _strings(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise LLMError(f"failed to parse LLM response as JSON: {key} must be a list of strings")
    return list(value)


def _build_message(settings: Settings, total_issues: int,
                   findings: Sequence[HealthFinding]) -> str:
    counts = Counter(finding.category for finding in findings)
    lines = [
        f"Project: {settings.jira_project}",
        f"Total open issues: {total_issues}",
        f"Issues with problems: {len(findings)}",
        "",
        "Problem counts:",
        *(f"  {category}: {count}" for category, count in counts.items()),
        "",
        "Detailed findings:",
        *(f"  [{f.category}] {f.key}: {f.summary} — {f.detail}" for f in findings),
    ]
    return "\n".join(lines)


def generate_health_summary(
    settings: Settings,
    total_issues: int,
    findings: Sequence[HealthFinding],
    provider: Provider | None = None,
) -> tuple[str, list[str]]:
    """Ask the LLM for an executive summary and recommendations."""
    logger.info("generating health summary total_issues=%d findings=%d",
                total_issues, len(findings))
    if provider is None:
        try:
            provider = new_provider(settings)
        except LLMError as exc:
            raise LLMError(f"create LLM provider: {exc}") from exc

    message = _build_message(settings, total_issues, findings)
    try:
        text = provider.complete(HEALTH_SUMMARY_PROMPT, message, 4096)
    except Exception as exc:
        raise LLMError(f"LLM api: {exc}") from exc
    logger.debug("raw LLM response: %s", text)

    data = parse_json_response(text)
    return _text(data, "executive_summary"), _strings(data, "recommendations")