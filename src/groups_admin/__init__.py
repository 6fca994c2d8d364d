"""Moderation analytics and state engine for the Groups Admin console."""

__version__ = "0.1.0"
