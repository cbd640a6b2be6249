from typing import Protocol

from cordline.console.repl_console import ReplConsole
from cordline.platform.platform import ChatPlatform

__all__ = ["ConsoleInterface", "ReplConsole"]


class ConsoleInterface(Protocol):
    """Common interface for console interactions."""

    platform: ChatPlatform

    async def run(self) -> None:
        pass
