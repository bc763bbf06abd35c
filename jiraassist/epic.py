"""Drafting of new epics with an LLM."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .provider import LLMError, Provider, Settings, new_provider, parse_json_response

logger = logging.getLogger(__name__)

EPIC_SYSTEM_PROMPT = """You are a senior product manager helping create JIRA EPICs.
Given a brief description, generate a complete EPIC with:

1. **Summary**: A clear, concise EPIC title (under 80 chars)
2. **Description**: 2-3 paragraphs covering:
   - What this EPIC delivers and why it matters
   - High-level approach
   - Key technical considerations
3. **Acceptance Criteria**: 4-6 testable criteria
4. **Priority**: One of "Highest", "High", "Medium", "Low", "Lowest"
5. **Labels**: 2-4 relevant labels (lowercase-hyphenated)

Respond ONLY with valid JSON (no markdown fences) with these keys:
  summary, description, acceptance_criteria (array of strings),
  priority, labels (array of strings)"""


@dataclass
class EpicContent:
    """The fields of a drafted epic."""

    summary: str = ""
    description: str = ""
    acceptance_criteria: list[str] = field(default_factory=list)
    priority: str = ""
    labels: list[str] = field(default_factory=list)


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


def _epic_from_payload(data: dict[str, Any]) -> EpicContent:
    return EpicContent(
        summary=_text(data, "summary"),
        description=_text(data, "description"),
        acceptance_criteria=_strings(data, "acceptance_criteria"),
        priority=_text(data, "priority"),
        labels=_strings(data, "labels"),
    )


def build_description(epic: EpicContent) -> str:
    """Join the description and an acceptance-criteria section in wiki markup."""
    criteria = "".join(f"* {item}\n" for item in epic.acceptance_criteria)
    return f"{epic.description}\n\nh3. Acceptance Criteria\n{criteria}"


def generate_epic_content(
    settings: Settings,
    user_description: str,
    provider: Provider | None = None,
) -> EpicContent:
    """Ask the LLM to draft an epic from a short description."""
    if provider is None:
        try:
            provider = new_provider(settings)
        except LLMError as exc:
            raise LLMError(f"create LLM provider: {exc}") from exc

    try:
        text = provider.complete(
            EPIC_SYSTEM_PROMPT, f"Create an EPIC for: {user_description}", 4096
        )
    except Exception as exc:
        raise LLMError(f"LLM api: {exc}") from exc
    logger.debug("raw LLM response: %s", text)

    epic = _epic_from_payload(parse_json_response(text))
    logger.info("parsed EPIC content summary=%s", epic.summary)
    return epic