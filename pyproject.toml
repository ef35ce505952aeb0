[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "adfmark"
version = "0.1.0"
description = "Convert between Jira-flavoured Markdown and the Atlassian Document Format (ADF)"
requires-python = ">=3.10"
dependencies = []
keywords = ["markdown", "adf", "atlassian", "jira", "converter"]
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
    "Topic :: Text Processing :: Markup :: Markdown",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
adfmark = "adfmark.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["adfmark"]

[tool.pytest.ini_options]
addopts = "-ra"
