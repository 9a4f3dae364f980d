"""Clipdesk: natural-language video editing agent."""

__version__ = "0.1.0"
