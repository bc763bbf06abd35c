from datetime import date

import pytest

from jiraassist.provider import LLMError, Provider, Settings
from jiraassist.query import QUERY_SYSTEM_PROMPT, QueryResult, generate_jql


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
def settings():
    return Settings(jira_project="PROJ", assignee="currentUser()")


def test_parses_jql_only(settings):
    provider = FakeProvider('{"jql": "project = PROJ AND status = \\"In Progress\\""}')
    result = generate_jql(settings, "what is in progress", provider)
    assert result == QueryResult(jql='project = PROJ AND status = "In Progress"', days=0)


def test_parses_days(settings):
    provider = FakeProvider('{"jql": "project = PROJ", "days": 1}')
    result = generate_jql(settings, "activity in the last day", provider)
    assert result.jql == "project = PROJ"
    assert result.days == 1


def test_code_fenced_response(settings):
    provider = FakeProvider('```json\n{"jql": "project = PROJ"}\n```')
    assert generate_jql(settings, "everything", provider).jql == "project = PROJ"


def test_prompt_and_limits(settings):
    provider = FakeProvider('{"jql": "project = PROJ"}')
    generate_jql(settings, "my open bugs", provider)
    system, prompt, max_tokens = provider.calls[0]
    assert prompt == "my open bugs"
    assert max_tokens == 1024
    assert "The JIRA project key is PROJ" in system
    assert "The current user is referred to as currentUser() in JQL" in system
    assert f"Today's date is {date.today().isoformat()}" in system
    assert "Always scope to project = PROJ unless" in system
    assert "use assignee = currentUser()." in system
    assert "%s" not in system


def test_template_has_five_placeholders():
    assert QUERY_SYSTEM_PROMPT.count("%s") == 5


def test_empty_jql_raises(settings):
    with pytest.raises(LLMError, match="LLM returned empty JQL"):
        generate_jql(settings, "anything", FakeProvider('{"jql": ""}'))


def test_missing_jql_raises(settings):
    with pytest.raises(LLMError, match="empty JQL"):
        generate_jql(settings, "anything", FakeProvider('{"days": 3}'))


def test_malformed_json_raises(settings):
    with pytest.raises(LLMError, match="failed to parse LLM response as JSON"):
        generate_jql(settings, "anything", FakeProvider("not json"))


def test_non_integer_days_raises(settings):
    with pytest.raises(LLMError, match="days"):
        generate_jql(settings, "anything", FakeProvider('{"jql": "x", "days": "two"}'))


def test_provider_error_wrapped(settings):
    provider = FakeProvider(error=RuntimeError("down"))
    with pytest.raises(LLMError, match="LLM api: down"):
        generate_jql(settings, "anything", provider)


def test_no_provider_configured(monkeypatch):
    monkeypatch.delenv("LLM_PROVIDER", raising=False)
    with pytest.raises(LLMError, match="create LLM provider"):
        generate_jql(Settings(jira_project="PROJ"), "anything")