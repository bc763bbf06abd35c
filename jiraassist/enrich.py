"""LLM enrichment of sparse issues."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .models import IssueDetail
from .provider import LLMError, Provider, Settings, new_provider, parse_json_response

logger = logging.getLogger(__name__)

BUILTIN_SOURCE = "(built-in)"

ENRICH_SYSTEM_PROMPT = """You are a senior product manager helping enrich sparse JIRA tickets.
Given an existing ticket's fields, generate improved content:

1. **Description**: A fuller description (2-3 paragraphs) that expands on the summary.
   Keep any existing description content and build on it. If the description is empty,
   write one from scratch based on the summary.
2. **Acceptance Criteria**: 3-6 testable criteria for this ticket.
3. **Labels**: 2-4 relevant labels (lowercase-hyphenated). Include any existing labels
   that are still relevant.
4. **Priority**: One of "Highest", "High", "Medium", "Low", "Lowest".
   Keep the current priority unless it seems clearly wrong.

Respond ONLY with valid JSON (no markdown fences) with these keys:
  description, acceptance_criteria (array of strings),
  labels (array of strings), priority"""


@dataclass
class EnrichmentContent:
    """Improved fields proposed for an issue."""

    description: str = ""
    acceptance_criteria: list[str] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    priority: str = ""


def load_enrich_prompt(directory: str | Path | None = None) -> tuple[str, str]:
    """Return ``(prompt, source)`` from the first ``ENHANCE.*`` file, or the built-in prompt."""
    base = Path(directory) if directory is not None else Path(".")
    matches = sorted(base.glob("ENHANCE.*"))
    if not matches:
        return ENRICH_SYSTEM_PROMPT, BUILTIN_SOURCE
    path = matches[0]
    try:
        prompt = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("failed to read prompt file, using default file=%s error=%s", path, exc)
        return ENRICH_SYSTEM_PROMPT, BUILTIN_SOURCE
    logger.info("loaded custom enrich prompt file=%s", path)
    return prompt, str(path)


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


def _build_message(issue: IssueDetail) -> str:
    description = issue.description or "(empty)"
    labels = ", ".join(issue.labels) if issue.labels else "(none)"
    return "\n".join([
        f"Issue: {issue.key}",
        f"Type: {issue.issue_type}",
        f"Summary: {issue.summary}",
        f"Current Description: {description}",
        f"Current Labels: {labels}",
        f"Current Priority: {issue.priority}",
        f"Status: {issue.status}",
    ])


def generate_enrichment(
    settings: Settings,
    issue: IssueDetail,
    system_prompt: str,
    provider: Provider | None = None,
) -> EnrichmentContent:
    """Ask the LLM for a fuller description, criteria, labels and priority."""
    logger.info("generating enrichment key=%s", issue.key)
    if provider is None:
        try:
            provider = new_provider(settings)
        except LLMError as exc:
            raise LLMError(f"create LLM provider: {exc}") from exc

    try:
        text = provider.complete(system_prompt, _build_message(issue), 4096)
    except Exception as exc:
        raise LLMError(f"LLM api: {exc}") from exc
    logger.debug("raw LLM response: %s", text)

    data = parse_json_response(text)
    result = EnrichmentContent(
        description=_text(data, "description"),
        acceptance_criteria=_strings(data, "acceptance_criteria"),
        labels=_strings(data, "labels"),
        priority=_text(data, "priority"),
    )
    logger.info("enrichment generated key=%s", issue.key)
    return result


def build_enriched_description(enrichment: EnrichmentContent) -> str:
    """Join the description with an acceptance-criteria section, if there are criteria."""
    if not enrichment.acceptance_criteria:
        return enrichment.description
    criteria = "".join(f"* {item}\n" for item in enrichment.acceptance_criteria)
    return f"{enrichment.description}\n\nh3. Acceptance Criteria\n{criteria}"