import json
from datetime import datetime

import pytest

from jiraassist.comments import COMMENT_SUMMARY_PROMPT, CommentSummary, generate_comment_summary
from jiraassist.models import Comment, IssueDetail
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


@pytest.fixture
def issue():
    return IssueDetail(key="PROJ-1", summary="Fix login", issue_type="Bug",
                       status="In Progress", description="Login is broken")


@pytest.fixture
def comments():
    return [
        Comment(issue_key="PROJ-1", author_name="Alice", body="I can reproduce it",
                created=datetime(2024, 3, 1, 9, 30)),
        Comment(issue_key="PROJ-1", author_name="Bob", body="Fix is ready",
                created=datetime(2024, 3, 2, 14, 5)),
    ]


def _reply(**data):
    return json.dumps(data)


def test_parses_full_summary(issue, comments):
    provider = FakeProvider(_reply(summary="Discussed the bug.",
                                   key_decisions=["Roll back"],
                                   action_items=["Bob to deploy"],
                                   open_questions=["Root cause?"]))
    result = generate_comment_summary(Settings(), issue, comments, provider)
    assert result == CommentSummary("Discussed the bug.", ["Roll back"],
                                    ["Bob to deploy"], ["Root cause?"])


def test_sends_system_prompt_and_token_limit(issue, comments):
    provider = FakeProvider(_reply(summary="s"))
    generate_comment_summary(Settings(), issue, comments, provider)
    system, _, max_tokens = provider.calls[0]
    assert system == COMMENT_SUMMARY_PROMPT
    assert max_tokens == 4096


def test_message_contains_issue_and_comments(issue, comments):
    provider = FakeProvider(_reply(summary="s"))
    generate_comment_summary(Settings(), issue, comments, provider)
    message = provider.calls[0][1]
    assert message.startswith("Issue: PROJ-1\nSummary: Fix login\n")
    assert "Description: Login is broken" in message
    assert "Comment Thread (2 comments):" in message
    assert "--- Alice (2024-03-01 09:30) ---\nI can reproduce it" in message
    assert message.index("Alice") < message.index("Bob")


def test_message_omits_empty_description(comments):
    provider = FakeProvider(_reply(summary="s"))
    generate_comment_summary(Settings(), IssueDetail(key="PROJ-2"), comments, provider)
    assert "Description:" not in provider.calls[0][1]


def test_missing_sections_default_to_empty(issue):
    provider = FakeProvider("```json\n" + _reply(summary="short") + "\n```")
    result = generate_comment_summary(Settings(), issue, [], provider)
    assert result.summary == "short"
    assert result.key_decisions == []
    assert result.action_items == []
    assert result.open_questions == []


def test_provider_error_is_wrapped(issue):
    provider = FakeProvider(error=RuntimeError("down"))
    with pytest.raises(LLMError, match="LLM api: down"):
        generate_comment_summary(Settings(), issue, [], provider)


def test_malformed_reply_raises(issue):
    with pytest.raises(LLMError, match="failed to parse LLM response as JSON"):
        generate_comment_summary(Settings(), issue, [], FakeProvider("not json"))


def test_wrong_field_type_raises(issue):
    provider = FakeProvider(_reply(summary="s", action_items="do it"))
    with pytest.raises(LLMError):
        generate_comment_summary(Settings(), issue, [], provider)


def test_unconfigured_provider_raises(issue, monkeypatch):
    monkeypatch.delenv("LLM_PROVIDER", raising=False)
    with pytest.raises(LLMError, match="create LLM provider"):
        generate_comment_summary(Settings(), issue, [])