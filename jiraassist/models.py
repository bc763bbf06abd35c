"""Issue tracker records used as input to the LLM helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class IssueDetail:
    """A single issue with the fields the assistants read."""

    key: str = ""
    summary: str = ""
    description: str = ""
    issue_type: str = ""
    status: str = ""
    priority: str = ""
    assignee: str = ""
    labels: list[str] = field(default_factory=list)
    parent_key: str = ""
    updated: datetime = datetime.min


@dataclass
class Comment:
    """A comment left on an issue."""

    issue_key: str = ""
    author_name: str = ""
    body: str = ""
    created: datetime = datetime.min


@dataclass
class IssueLink:
    """A link from a parent issue to another issue."""

    target_key: str = ""
    target_summary: str = ""
    target_status: str = ""
    target_type: str = ""
    link_type: str = ""
    direction: str = ""