# jiraassist

jiraassist turns JIRA issues, comments and links into prompts for a chat
completion model and decodes the model's JSON reply into dataclasses.
It also has rule-based backlog checks that need no model at all.

## Modules

- `jiraassist.models` – the input records: `IssueDetail`, `Comment` and
  `IssueLink`.
- `jiraassist.provider` – completion backends (`OpenAIProvider`,
  `VertexProvider`), `new_provider` to pick one from the environment,
  `Settings`, `LLMError`, and the reply helpers `clean_json` and
  `parse_json_response`.
- `jiraassist.epic` – `generate_epic_content` drafts an epic (summary,
  description, acceptance criteria, priority, labels) from a short idea;
  `build_description` renders it as JIRA wiki markup.
- `jiraassist.health` – `check_backlog_health` flags stale active work,
  missing descriptions, orphaned issues, unassigned active work and missing
  labels; `generate_health_summary` asks the model for an executive summary
  and recommendations.
- `jiraassist.similarity` – `find_similar` and `find_similar_by_text` rank
  candidate issues by similarity to an issue or to free text, keeping matches
  at or above a confidence threshold, highest first.
- `jiraassist.comments` – `generate_comment_summary` condenses a comment
  thread into a summary, key decisions, action items and open questions.
- `jiraassist.digest` – `generate_digest` reports overall status, progress,
  blockers and idle work for a parent issue and its linked issues.
- `jiraassist.enrich` – `generate_enrichment` proposes a fuller description,
  acceptance criteria, labels and priority for a sparse issue;
  `load_enrich_prompt(directory)` uses the first `ENHANCE.*` file in that
  directory (the current one by default) as the system prompt, or the
  built-in one; `build_enriched_description` renders the result.
- `jiraassist.query` – `generate_jql` turns a question into JQL scoped to the
  project, with an optional time window in days (`QueryResult.days`, 0 if
  none). An empty JQL reply raises `LLMError`.
- `jiraassist.weekly` – `generate_weekly_status` writes a report grouped by
  project or epic from `IssueWithComments` items for a date range.

## Choosing a backend

`new_provider(settings)` reads environment variables (via
`get_env_or_secret`, which returns an empty string when a variable is unset):

| `LLM_PROVIDER` | Needs                                                   |
|----------------|---------------------------------------------------------|
| `openai`       | `LLM_BASE_URL`, `LLM_MODEL`, optionally `LLM_API_KEY`   |
| `ollama`       | `LLM_MODEL`; `OLLAMA_BASE_URL` defaults to `http://localhost:11434` |
| `vertex`       | `Settings.vertex_project_id`; `LLM_MODEL` defaults to `claude-sonnet-4-6` |
| unset          | Vertex if `vertex_project_id` is set, otherwise an error |

`OpenAIProvider` posts to `<base_url>/v1/chat/completions`. `VertexProvider`
uses the token in `GOOGLE_OAUTH_ACCESS_TOKEN` if set, otherwise refreshes one
from Google application-default credentials of the `authorized_user` type.
Configuration problems, backend failures and replies that are not the JSON
asked for raise `LLMError`.

## Bringing your own provider

Every generating function takes an optional `provider`. Subclass `Provider`
and implement `complete(system, prompt, max_tokens)`:

```python
from jiraassist.models import IssueDetail
from jiraassist.provider import Provider
from jiraassist.similarity import find_similar


class Canned(Provider):
    def complete(self, system, prompt, max_tokens):
        return ('{"matches": [{"key": "PROJ-2", "summary": "Login page crashes",'
                ' "confidence": 0.9, "reason": "same flow", "relation": "duplicate"}]}')


target = IssueDetail(key="PROJ-1", summary="Fix login timeout")
candidates = [IssueDetail(key="PROJ-2", summary="Login page crashes")]

result = find_similar(Canned(), target, candidates, 0.5)
for match in result.matches:
    print(match.key, match.confidence, match.relation)
```

Confidences in the reply are clamped to the range 0 to 1.

## Backlog checks without a model

```python
from jiraassist.health import check_backlog_health

for finding in check_backlog_health(open_issues, 14):
    print(f"[{finding.category}] {finding.key}: {finding.detail}")
```

A threshold of zero or less falls back to 14 days.

## Tidying model output

`clean_json` strips surrounding whitespace and a Markdown code fence;
`parse_json_response` cleans and decodes a JSON object in one step, raising
`LLMError` with the raw reply when decoding fails.

## What it does not do

jiraassist does not talk to JIRA itself: it has no client for fetching or
updating issues, no storage and no command-line program. You supply the
`IssueDetail`, `Comment` and `IssueLink` records and act on the results.