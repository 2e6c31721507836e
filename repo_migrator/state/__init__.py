"""Migration state persistence and merging."""

from .merger import merge, merge_directory  # noqa: F401
from .store import StateStore  # noqa: F401

__all__ = [
    "StateStore",
    "merge",
    "merge_directory",
]
