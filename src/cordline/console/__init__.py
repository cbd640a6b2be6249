"""
Console subpackage: holds the prompt loop, rendering, completion, slash-commands and event rendering.
"""

from cordline.console.console import ConsoleInterface
from cordline.console.repl_console import ReplConsole

__all__ = ["ConsoleInterface", "ReplConsole"]
