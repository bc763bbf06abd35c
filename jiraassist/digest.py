"""Executive digests of a parent issue and its linked children."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence, TypeVar

from .models import Comment, IssueDetail, IssueLink
from .provider import LLMError, Provider, Settings, new_provider, parse_json_response

logger = logging.getLogger(__name__)

DIGEST_SYSTEM_PROMPT = """You are a senior program manager analyzing JIRA data for an executive digest.

You are given a parent issue (Initiative, Feature, or Epic) and its linked child
issues, which may span multiple hierarchy levels (Initiative → Feature → Epic).
Recent comments from child issues are included.

Analyze the data and produce a structured digest:

1. **Overall Status**: One of "on track", "at risk", or "blocked"
2. **Progress Updates**: For each issue with recent activity, summarize what happened.
   Use the issue key (e.g. EPIC-123) regardless of its type in the hierarchy.
3. **Blockers**: Any issues flagged as blocked, waiting on external teams, or stalled
4. **Not Started**: Issues that appear to have no progress or comments but should have
   started based on their status or context
5. **Summary**: 2-3 sentence executive summary of progress across the hierarchy

Respond ONLY with valid JSON (no markdown fences) with these keys:
  overall_status (string),
  progress_updates (array of {epic_key, epic_summary, status, update}),
  blockers (array of {epic_key, epic_summary, blocker, impact}),
  not_started (array of {epic_key, epic_summary, reason}),
  summary (string)"""


@dataclass
class ProgressItem:
    """Recent progress on one child issue."""

    epic_key: str = ""
    epic_summary: str = ""
    status: str = ""
    update: str = ""


@dataclass
class BlockerItem:
    """A child issue that is blocked or stalled."""

    epic_key: str = ""
    epic_summary: str = ""
    blocker: str = ""
    impact: str = ""


@dataclass
class NotStartedItem:
    """A child issue that shows no progress yet."""

    epic_key: str = ""
    epic_summary: str = ""
    reason: str = ""


@dataclass
class DigestContent:
    """The structured digest the LLM returns."""

    overall_status: str = ""
    progress_updates: list[ProgressItem] = field(default_factory=list)
    blockers: list[BlockerItem] = field(default_factory=list)
    not_started: list[NotStartedItem] = field(default_factory=list)
    summary: str = ""


_T = TypeVar("_T")


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise LLMError(f"failed to parse LLM response as JSON: {key} must be a string")
    return value


def _items(data: dict[str, Any], key: str, build: Callable[..., _T],
           names: Sequence[str]) -> list[_T]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise LLMError(f"failed to parse LLM response as JSON: {key} must be a list")
    items = []
    for entry in value:
        if entry is None:
            entry = {}
        if not isinstance(entry, dict):
            raise LLMError(f"failed to parse LLM response as JSON: {key} entries must be objects")
        items.append(build(**{name: _text(entry, name) for name in names}))
    return items


def _build_message(parent: IssueDetail, links: Sequence[IssueLink],
                   comments: Sequence[Comment]) -> str:
    lines = [
        f"## Parent Issue: {parent.key}",
        f"Type: {parent.issue_type}",
        f"Summary: {parent.summary}",
        f"Status: {parent.status}",
    ]
    if parent.description:
        lines.append(f"Description: {parent.description}")

    by_key: dict[str, list[Comment]] = defaultdict(list)
    for comment in comments:
        by_key[comment.issue_key].append(comment)

    lines.append(f"\n## Linked Issues ({len(links)})")
    for link in links:
        lines.append(f"\n### {link.target_key} — {link.target_summary}")
        lines.append(f"Status: {link.target_status} | Type: {link.target_type} | "
                     f"Link: {link.link_type} ({link.direction})")
        linked = by_key.get(link.target_key, [])
        if linked:
            lines.append(f"Recent comments ({len(linked)}):")
            lines.extend(f"  [{c.created:%Y-%m-%d}] {c.author_name}: {c.body}" for c in linked)
        else:
            lines.append("No recent comments.")
    return "\n".join(lines)


def generate_digest(
    settings: Settings,
    parent: IssueDetail,
    links: Sequence[IssueLink],
    comments: Sequence[Comment],
    provider: Provider | None = None,
) -> DigestContent:
    """Ask the LLM for a digest of ``parent`` and its linked issues."""
    logger.info("generating digest parent=%s links=%d comments=%d",
                parent.key, len(links), len(comments))
    if provider is None:
        try:
            provider = new_provider(settings)
        except LLMError as exc:
            raise LLMError(f"create LLM provider: {exc}") from exc

    message = _build_message(parent, links, comments)
    try:
        text = provider.complete(DIGEST_SYSTEM_PROMPT, message, 8192)
    except Exception as exc:
        raise LLMError(f"LLM api: {exc}") from exc
    logger.debug("raw LLM response: %s", text)

    data = parse_json_response(text)
    result = DigestContent(
        overall_status=_text(data, "overall_status"),
        progress_updates=_items(data, "progress_updates", ProgressItem,
                                ("epic_key", "epic_summary", "status", "update")),
        blockers=_items(data, "blockers", BlockerItem,
                        ("epic_key", "epic_summary", "blocker", "impact")),
        not_started=_items(data, "not_started", NotStartedItem,
                           ("epic_key", "epic_summary", "reason")),
        summary=_text(data, "summary"),
    )
    logger.info("digest generated parent=%s status=%s", parent.key, result.overall_status)
    return result