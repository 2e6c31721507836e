"""Resumable, batched migration of GitHub organization repositories to Codeberg."""

__version__ = "1.0.0"
