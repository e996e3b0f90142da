"""Categorize a GitHub user's starred repositories with an LLM."""

__version__ = "0.1.0"
