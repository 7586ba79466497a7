"""Build a static diary website from a Notion database."""

__version__ = "0.3.0"
