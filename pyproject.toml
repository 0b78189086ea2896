[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kbcurator"
version = "0.1.0"
description = "Doc-spec and spec-file parsing, curator block merging and reconciliation, run reports with sinks, and read-only git source resolution for curated wikis"
requires-python = ">=3.11"
keywords = [
    "wiki",
    "documentation",
    "doc-spec",
    "frontmatter",
    "reconciliation",
    "knowledge-base",
    "run-report",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Processing :: Markup",
    "Topic :: Documentation",
]
dependencies = [
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
]

[tool.hatch.build.targets.wheel]
packages = ["kbcurator"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
