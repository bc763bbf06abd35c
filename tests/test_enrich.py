import json

import pytest

from jiraassist.enrich import (
    ENRICH_SYSTEM_PROMPT,
    EnrichmentContent,
    build_enriched_description,
    generate_enrichment,
    load_enrich_prompt,
)
from jiraassist.models import IssueDetail
from jiraassist.provider import LLMError, Provider, Settings


class FakeProvider(Provider):
    def __init__(self, response="", error=None):
        self.response = response
        self.error = error
        self.calls = []

    def complete(self, system, prompt, max_tokens):
        self.calls.append((system, prompt, max_tokens))
        if self.error is not None:
            raise self.error
        return self.response


REPLY = json.dumps({
    "description": "Expanded text",
    "acceptance_criteria": ["works", "is tested"],
    "labels": ["auth", "backend"],
    "priority": "High",
})


def test_load_prompt_defaults_without_file(tmp_path):
    assert load_enrich_prompt(tmp_path) == (ENRICH_SYSTEM_PROMPT, "(built-in)")


def test_load_prompt_reads_enhance_file(tmp_path):
    path = tmp_path / "ENHANCE.md"
    path.write_text("custom prompt", encoding="utf-8")
    assert load_enrich_prompt(tmp_path) == ("custom prompt", str(path))


def test_load_prompt_takes_first_sorted_match(tmp_path):
    (tmp_path / "ENHANCE.txt").write_text("second", encoding="utf-8")
    (tmp_path / "ENHANCE.md").write_text("first", encoding="utf-8")
    prompt, source = load_enrich_prompt(tmp_path)
    assert prompt == "first"
    assert source.endswith("ENHANCE.md")


def test_load_prompt_uses_current_directory(tmp_path, monkeypatch):
    (tmp_path / "ENHANCE.txt").write_text("here", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    assert load_enrich_prompt() == ("here", "ENHANCE.txt")


def test_load_prompt_falls_back_when_unreadable(tmp_path):
    (tmp_path / "ENHANCE.d").mkdir()
    assert load_enrich_prompt(tmp_path) == (ENRICH_SYSTEM_PROMPT, "(built-in)")


def test_generate_parses_reply_and_uses_given_prompt():
    provider = FakeProvider(REPLY)
    result = generate_enrichment(Settings(), IssueDetail(key="PROJ-1"), "my prompt", provider)
    assert result == EnrichmentContent("Expanded text", ["works", "is tested"],
                                       ["auth", "backend"], "High")
    assert provider.calls[0][0] == "my prompt"
    assert provider.calls[0][2] == 4096


def test_message_marks_empty_fields():
    provider = FakeProvider(REPLY)
    generate_enrichment(Settings(), IssueDetail(key="PROJ-1", summary="Sparse"),
                        ENRICH_SYSTEM_PROMPT, provider)
    message = provider.calls[0][1]
    assert "Current Description: (empty)" in message
    assert "Current Labels: (none)" in message


def test_message_lists_existing_fields():
    issue = IssueDetail(key="PROJ-1", summary="Login", issue_type="Story",
                        description="Old text", labels=["auth", "ui"],
                        priority="Medium", status="To Do")
    provider = FakeProvider(REPLY)
    generate_enrichment(Settings(), issue, ENRICH_SYSTEM_PROMPT, provider)
    lines = provider.calls[0][1].split("\n")
    assert lines[0] == "Issue: PROJ-1"
    assert "Current Description: Old text" in lines
    assert "Current Labels: auth, ui" in lines
    assert "Current Priority: Medium" in lines
    assert lines[-1] == "Status: To Do"


def test_provider_error_is_wrapped():
    with pytest.raises(LLMError, match="LLM api: offline"):
        generate_enrichment(Settings(), IssueDetail(), "p",
                            FakeProvider(error=RuntimeError("offline")))


def test_malformed_reply_raises():
    with pytest.raises(LLMError, match="failed to parse LLM response as JSON"):
        generate_enrichment(Settings(), IssueDetail(), "p", FakeProvider("{broken"))


def test_unconfigured_provider_raises(monkeypatch):
    monkeypatch.delenv("LLM_PROVIDER", raising=False)
    with pytest.raises(LLMError, match="create LLM provider"):
        generate_enrichment(Settings(), IssueDetail(), "p")


def test_enriched_description_with_criteria():
    content = EnrichmentContent(description="Body", acceptance_criteria=["a", "b"])
    assert build_enriched_description(content) == "Body\n\nh3. Acceptance Criteria\n* a\n* b\n"


def test_enriched_description_without_criteria_is_plain():
    content = EnrichmentContent(description="Body only")
    assert build_enriched_description(content) == "Body only"