"""Core exceptions for repository migration operations."""


class MigratorError(Exception):
    """Base exception for repository migration operations."""


class ConfigurationError(MigratorError):
    """Configuration validation or loading failed."""


class StateError(MigratorError):
    """State snapshot could not be read or written."""


class GitCommandError(MigratorError):
    """Git command execution failed."""


class ApiError(MigratorError):
    """Remote hosting API returned an unsuccessful response."""

    def __init__(self, message: str, status_code: int | None = None, response_text: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text
