"""Duplicate and related-issue detection with an LLM."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from .models import IssueDetail
from .provider import LLMError, Provider, clean_json

logger = logging.getLogger(__name__)

SIMILARITY_SYSTEM_PROMPT = """You are a JIRA issue analyst. Given a target issue and a list of candidate issues, identify which candidates are semantically similar, duplicates, or related to the target.

For each match, provide:
- key: the candidate issue key
- summary: the candidate's summary
- confidence: a float between 0.0 and 1.0 indicating how similar/related
- reason: a brief explanation of why they are similar
- relation: one of "duplicate", "related", "parent", "subtask"

Only include candidates with meaningful similarity (confidence >= 0.3).

Respond ONLY with valid JSON (no markdown fences) with this structure:
  {"matches": [{"key": "...", "summary": "...", "confidence": 0.85, "reason": "...", "relation": "..."}]}"""


@dataclass
class SimilarIssue:
    """A candidate found similar to the target."""

    key: str = ""
    summary: str = ""
    confidence: float = 0.0
    reason: str = ""
    relation: str = ""


@dataclass
class SimilarityResult:
    """The outcome of a similarity search against an issue or free text."""

    target_key: str = ""
    target_text: str = ""
    matches: list[SimilarIssue] = field(default_factory=list)


def prepare_candidates(target_key: str, issues: Iterable[IssueDetail] | None) -> list[IssueDetail]:
    """Return the issues other than the target."""
    return [issue for issue in issues or () if issue.key != target_key]


def filter_by_threshold(matches: Iterable[SimilarIssue] | None,
                        threshold: float) -> list[SimilarIssue]:
    """Keep the matches whose confidence is at least ``threshold``."""
    return [match for match in matches or () if match.confidence >= threshold]


def sort_by_confidence(matches: list[SimilarIssue]) -> None:
    """Sort matches in place, highest confidence first, keeping ties in order."""
    matches.sort(key=lambda match: match.confidence, reverse=True)


def _candidate_lines(candidates: Sequence[IssueDetail] | None) -> str:
    lines = []
    for candidate in candidates or ():
        line = f"  - {candidate.key}: {candidate.summary}"
        if candidate.description:
            line += f" | {candidate.description}"
        lines.append(line + "\n")
    return "\nCandidate issues:\n" + "".join(lines)


def build_similarity_prompt(target: IssueDetail,
                            candidates: Sequence[IssueDetail] | None) -> str:
    """Build the user message comparing a target issue with candidates."""
    head = f"Target issue:\n  Key: {target.key}\n  Summary: {target.summary}\n"
    if target.description:
        head += f"  Description: {target.description}\n"
    return head + _candidate_lines(candidates)


def build_similarity_prompt_from_text(text: str,
                                      candidates: Sequence[IssueDetail] | None) -> str:
    """Build the user message comparing free text with candidates."""
    return f"Target text:\n  {text}\n" + _candidate_lines(candidates)


def _field(entry: dict[str, Any], key: str) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise LLMError(f"parse similarity response: {key} must be a string")
    return value


def _match_from(entry: Any) -> SimilarIssue:
    if not isinstance(entry, dict):
        raise LLMError("parse similarity response: each match must be an object")
    confidence = entry.get("confidence")
    if confidence is None:
        confidence = 0.0
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise LLMError("parse similarity response: confidence must be a number")
    return SimilarIssue(
        key=_field(entry, "key"),
        summary=_field(entry, "summary"),
        confidence=min(1.0, max(0.0, float(confidence))),
        reason=_field(entry, "reason"),
        relation=_field(entry, "relation"),
    )


def parse_similarity_response(raw: str) -> list[SimilarIssue]:
    """Parse the LLM's JSON reply, clamping confidences to [0, 1]."""
    try:
        data = json.loads(clean_json(raw))
    except ValueError as exc:
        raise LLMError(f"parse similarity response: {exc}") from exc
    if data is None:
        return []
    if not isinstance(data, dict):
        raise LLMError("parse similarity response: expected a JSON object")
    entries = data.get("matches")
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise LLMError("parse similarity response: matches must be a list")
    return [_match_from(entry) for entry in entries]


def _ranked_matches(provider: Provider, prompt: str, threshold: float) -> list[SimilarIssue]:
    try:
        text = provider.complete(SIMILARITY_SYSTEM_PROMPT, prompt, 4096)
    except Exception as exc:
        raise LLMError(f"LLM api: {exc}") from exc
    matches = filter_by_threshold(parse_similarity_response(text), threshold)
    sort_by_confidence(matches)
    return matches


def find_similar(provider: Provider, target: IssueDetail,
                 candidates: Sequence[IssueDetail] | None,
                 threshold: float) -> SimilarityResult:
    """Find candidates similar to ``target``, filtered and ranked by confidence."""
    if not candidates:
        return SimilarityResult(target_key=target.key)
    prompt = build_similarity_prompt(target, candidates)
    return SimilarityResult(target_key=target.key,
                            matches=_ranked_matches(provider, prompt, threshold))


def find_similar_by_text(provider: Provider, text: str,
                         candidates: Sequence[IssueDetail] | None,
                         threshold: float) -> SimilarityResult:
    """Find candidates similar to free text, filtered and ranked by confidence."""
    if not candidates:
        return SimilarityResult(target_text=text)
    prompt = build_similarity_prompt_from_text(text, candidates)
    return SimilarityResult(target_text=text,
                            matches=_ranked_matches(provider, prompt, threshold))