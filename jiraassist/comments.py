"""LLM summaries of an issue's comment thread."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from .models import Comment, IssueDetail
from .provider import LLMError, Provider, Settings, new_provider, parse_json_response

logger = logging.getLogger(__name__)

COMMENT_SUMMARY_PROMPT = """You are an expert at summarizing JIRA comment threads.
Given an issue's details and its comment thread, produce a structured summary:

1. **Summary**: A concise 2-3 sentence summary of the discussion.
2. **Key Decisions**: Decisions that were made in the thread (if any).
3. **Action Items**: Tasks or follow-ups mentioned (if any). Include who owns them if mentioned.
4. **Open Questions**: Unresolved questions or topics needing follow-up (if any).

If a section has no items, return an empty array for it.

Respond ONLY with valid JSON (no markdown fences) with these keys:
  summary, key_decisions (array of strings),
  action_items (array of strings), open_questions (array of strings)"""


@dataclass
class CommentSummary:
    """A structured summary of a comment thread."""

    summary: str = ""
    key_decisions: list[str] = field(default_factory=list)
    action_items: list[str] = field(default_factory=list)
    open_questions: list[str] = field(default_factory=list)


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


def _build_message(issue: IssueDetail, comments: Sequence[Comment]) -> str:
    lines = [
        f"Issue: {issue.key}",
        f"Summary: {issue.summary}",
        f"Type: {issue.issue_type}",
        f"Status: {issue.status}",
    ]
    if issue.description:
        lines.append(f"Description: {issue.description}")
    lines.append("")
    lines.append(f"Comment Thread ({len(comments)} comments):")
    lines.extend(
        f"\n--- {comment.author_name} ({comment.created:%Y-%m-%d %H:%M}) ---\n{comment.body}"
        for comment in comments
    )
    return "\n".join(lines)


def generate_comment_summary(
    settings: Settings,
    issue: IssueDetail,
    comments: Sequence[Comment],
    provider: Provider | None = None,
) -> CommentSummary:
    """Ask the LLM to summarize the comments on ``issue``."""
    logger.info("generating comment summary key=%s comments=%d", issue.key, len(comments))
    if provider is None:
        try:
            provider = new_provider(settings)
        except LLMError as exc:
            raise LLMError(f"create LLM provider: {exc}") from exc

    message = _build_message(issue, comments)
    try:
        text = provider.complete(COMMENT_SUMMARY_PROMPT, message, 4096)
    except Exception as exc:
        raise LLMError(f"LLM api: {exc}") from exc
    logger.debug("raw LLM response: %s", text)

    data = parse_json_response(text)
    result = CommentSummary(
        summary=_text(data, "summary"),
        key_decisions=_strings(data, "key_decisions"),
        action_items=_strings(data, "action_items"),
        open_questions=_strings(data, "open_questions"),
    )
    logger.info("comment summary generated key=%s", issue.key)
    return result