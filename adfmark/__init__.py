"""Conversion between Jira-flavoured Markdown and the Atlassian Document Format."""

__version__ = "0.1.0"
__all__ = ["adf", "adf2md", "syntax", "md2adf", "cli"]