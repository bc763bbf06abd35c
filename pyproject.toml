[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "jiraassist"
version = "0.1.0"
description = "LLM-assisted helpers for JIRA data: epic drafting, backlog health checks, duplicate detection, digests and status reports"
requires-python = ">=3.10"
keywords = ["jira", "llm", "backlog", "jql", "issue-tracking", "project-management"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Bug Tracking",
]
dependencies = [
    "httpx>=0.27",
]

[project.optional-dependencies]
test = [
    "pytest>=8",
    "respx>=0.21",
]

[tool.hatch.build.targets.wheel]
packages = ["jiraassist"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
