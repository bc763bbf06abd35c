"""Translation of natural-language questions into JQL with an LLM."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from .provider import LLMError, Provider, Settings, new_provider, parse_json_response

logger = logging.getLogger(__name__)

QUERY_SYSTEM_PROMPT = """You are a JIRA JQL expert. Translate the user's natural-language query into valid JQL.

Context:
- The JIRA project key is %s
- The current user is referred to as %s in JQL
- Today's date is %s

Common JQL fields: project, assignee, reporter, status, priority, issuetype, labels, summary, description, created, updated, resolved, sprint, fixVersion, component.

Common statuses: "To Do", "In Progress", "In Review", "Done", "Closed", "Resolved".
Common priorities: Highest, High, Medium, Low, Lowest.
Common issue types: Bug, Story, Task, Epic, Sub-task.

Date functions: now(), startOfDay(), startOfWeek(), startOfMonth(), endOfDay(), endOfWeek(), endOfMonth().
Relative dates: "-1w" (one week ago), "-1d" (one day ago), "-2w", "-1m", etc.

Rules:
1. Always scope to project = %s unless the user explicitly asks about a different project or all projects.
2. If the user mentions "my" or "me", use assignee = %s.
3. If the user mentions a specific person by name or username, use assignee = "name" or assignee = "email".
4. Use ORDER BY when it improves readability (e.g. priority ASC, created DESC).
5. If the user mentions a time window for viewing changes or activity (e.g. "last day", "past 2 weeks", "since Monday"), include a "days" field with the number of days. Do NOT put time constraints in the JQL for this — the days field controls a separate comment filter. Only use date constraints in JQL when filtering by issue creation/update dates. Omit the "days" field if no time window is mentioned.
6. Respond ONLY with valid JSON (no markdown fences): {"jql": "your JQL here"} or {"jql": "your JQL here", "days": 1}"""


@dataclass
class QueryResult:
    """A generated JQL query and an optional time window in days (0 if none)."""

    jql: str = ""
    days: int = 0


def _system_prompt(settings: Settings) -> str:
    today = date.today().isoformat()
    return QUERY_SYSTEM_PROMPT % (
        settings.jira_project, settings.assignee, today,
        settings.jira_project, settings.assignee,
    )


def _result_from_payload(data: dict[str, Any]) -> QueryResult:
    jql = data.get("jql")
    if jql is None:
        jql = ""
    if not isinstance(jql, str):
        raise LLMError("failed to parse LLM response as JSON: jql must be a string")

    days = data.get("days")
    if days is None:
        days = 0
    if isinstance(days, bool) or not isinstance(days, (int, float)):
        raise LLMError("failed to parse LLM response as JSON: days must be an integer")
    if isinstance(days, float):
        if not days.is_integer():
            raise LLMError("failed to parse LLM response as JSON: days must be an integer")
        days = int(days)
    return QueryResult(jql=jql, days=days)


def generate_jql(
    settings: Settings,
    natural_query: str,
    provider: Provider | None = None,
) -> QueryResult:
    """Ask the LLM to turn ``natural_query`` into JQL scoped to the project."""
    logger.info("generating JQL query=%s", natural_query)
    if provider is None:
        try:
            provider = new_provider(settings)
        except LLMError as exc:
            raise LLMError(f"create LLM provider: {exc}") from exc

    try:
        text = provider.complete(_system_prompt(settings), natural_query, 1024)
    except Exception as exc:
        raise LLMError(f"LLM api: {exc}") from exc
    logger.debug("raw LLM response: %s", text)

    result = _result_from_payload(parse_json_response(text))
    if not result.jql:
        raise LLMError("LLM returned empty JQL")

    logger.info("generated JQL jql=%s", result.jql)
    return result