"""Weekly status reports written by an LLM from issue activity."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from .models import Comment, IssueDetail
from .provider import LLMError, Provider, Settings, new_provider, parse_json_response

logger = logging.getLogger(__name__)

DESCRIPTION_LIMIT = 500
COMMENT_LIMIT = 1000

WEEKLY_STATUS_SYSTEM_PROMPT = """You are a program manager writing a weekly status report from JIRA activity data.

You are given a list of JIRA issues that a user worked on during a specific date range, along with comments they wrote during that period and issue metadata (status, transitions, parent epics).

Produce a structured weekly status report:

1. Group items by their parent epic or project theme. Each group becomes a "project".
2. For each project group:
   - Use the parent epic's summary as the project name (or the issue summary if standalone)
   - Include the parent epic's issue key (or the issue key if standalone)
   - Write narrative bullets:
     - First bullet should explain WHY this work matters (background/motivation)
     - Subsequent bullets describe WHAT was done, using specific technical details from the comments
     - Use past tense
     - Never say "shipped" — nothing is shipped
     - Be specific: include numbers, tool names, technical details from comments
     - Each bullet should be a complete thought, 1-3 sentences

3. If an issue has no parent epic, group it on its own.

Respond ONLY with valid JSON (no markdown fences) with these keys:
  user_name (string - the user's display name or email),
  projects (array of {project_name, issue_key, bullets: [string]})"""


@dataclass
class WeeklyProjectItem:
    """Work items grouped under one project or epic heading."""

    project_name: str = ""
    issue_key: str = ""
    bullets: list[str] = field(default_factory=list)


@dataclass
class WeeklyStatusContent:
    """The structured weekly report the LLM returns."""

    user_name: str = ""
    projects: list[WeeklyProjectItem] = field(default_factory=list)


@dataclass
class IssueWithComments:
    """An issue with the comments written on it in the period, and its parent if any."""

    issue: IssueDetail
    comments: list[Comment] = field(default_factory=list)
    parent: IssueDetail | None = None


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


def _projects(data: dict[str, Any]) -> list[WeeklyProjectItem]:
    value = data.get("projects")
    if value is None:
        return []
    if not isinstance(value, list):
        raise LLMError("failed to parse LLM response as JSON: projects must be a list")
    projects = []
    for entry in value:
        if entry is None:
            entry = {}
        if not isinstance(entry, dict):
            raise LLMError("failed to parse LLM response as JSON: projects entries must be objects")
        projects.append(WeeklyProjectItem(
            project_name=_text(entry, "project_name"),
            issue_key=_text(entry, "issue_key"),
            bullets=_strings(entry, "bullets"),
        ))
    return projects


def _clip(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _build_message(settings: Settings, items: Sequence[IssueWithComments],
                   start_date: str, end_date: str) -> str:
    lines = [
        f"## Weekly Status Report: {start_date} to {end_date}",
        f"User: {settings.assignee}",
    ]
    for item in items:
        issue = item.issue
        lines.append(f"\n### {issue.key} — {issue.summary}")
        lines.append(f"Type: {issue.issue_type} | Status: {issue.status} | "
                     f"Priority: {issue.priority}")
        if item.parent is not None:
            parent = item.parent
            lines.append(f"Parent: {parent.key} — {parent.summary} ({parent.issue_type})")
        if issue.description:
            lines.append(f"Description: {_clip(issue.description, DESCRIPTION_LIMIT)}")
        if item.comments:
            lines.append(f"Comments from this period ({len(item.comments)}):")
            lines.extend(
                f"  [{c.created:%Y-%m-%d}] {c.author_name}: {_clip(c.body, COMMENT_LIMIT)}"
                for c in item.comments
            )
        else:
            lines.append("No comments during this period (status/field changes only).")
    return "\n".join(lines)


def generate_weekly_status(
    settings: Settings,
    items: Sequence[IssueWithComments],
    start_date: str,
    end_date: str,
    provider: Provider | None = None,
) -> WeeklyStatusContent:
    """Ask the LLM for a weekly status report covering ``items``."""
    logger.info("generating weekly status issues=%d start=%s end=%s",
                len(items), start_date, end_date)
    if provider is None:
        try:
            provider = new_provider(settings)
        except LLMError as exc:
            raise LLMError(f"create LLM provider: {exc}") from exc

    message = _build_message(settings, items, start_date, end_date)
    try:
        text = provider.complete(WEEKLY_STATUS_SYSTEM_PROMPT, message, 8192)
    except Exception as exc:
        raise LLMError(f"LLM api: {exc}") from exc
    logger.debug("raw LLM response: %s", text)

    data = parse_json_response(text)
    result = WeeklyStatusContent(user_name=_text(data, "user_name"), projects=_projects(data))
    logger.info("weekly status generated projects=%d", len(result.projects))
    return result