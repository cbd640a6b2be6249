"""Platform module: the chat session the interactive core talks to."""

from .discord_platform import DiscordPlatform
from .platform import ChatPlatform, PlatformCache

__all__ = ["ChatPlatform", "DiscordPlatform", "PlatformCache"]
