"""LLM-assisted helpers for JIRA issues, comments and backlogs."""

__version__ = "0.1.0"

__all__ = [
    "comments",
    "digest",
    "enrich",
    "epic",
    "health",
    "models",
    "provider",
    "query",
    "similarity",
    "weekly",
]