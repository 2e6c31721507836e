"""HTTP clients for the source and target hosting providers."""

from .base import ApiClient  # noqa: F401
from .codeberg import CodebergClient  # noqa: F401
from .github import GitHubClient  # noqa: F401

__all__ = [
    "ApiClient",
    "CodebergClient",
    "GitHubClient",
]
