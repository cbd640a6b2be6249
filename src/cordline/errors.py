"""
Exception hierarchy shared by the session core and the platform adapter.
"""

from typing import Optional


class CordlineError(Exception):
    """Base class for all errors raised by cordline."""


class PromptInitError(CordlineError):
    """Raised when the line editor cannot be started."""


class PlatformError(CordlineError):
    """Raised when a call to the chat platform fails."""


class PlatformConnectError(PlatformError):
    """Raised when the initial connection to the chat platform fails."""


class CacheLookupError(PlatformError):
    """Raised when the local guild/channel/member cache cannot answer a query."""


class CommandError(CordlineError):
    """A failed command action, reported as ``<context>: <cause>``."""

    def __init__(self, context: str, cause: Optional[BaseException] = None) -> None:
        self.context = context
        self.cause = cause
        super().__init__(context)

    def __str__(self) -> str:
        if self.cause is None:
            return self.context
        return f"{self.context}: {self.cause}"
