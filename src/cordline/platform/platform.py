"""
Protocol for the chat platform session consumed by the interactive core.
"""

__all__ = ["ChatPlatform", "EventHandler", "PlatformCache"]

from typing import (
    Any,
    Awaitable,
    Callable,
    Optional,
    Protocol,
    TypeVar,
    runtime_checkable,
)

from cordline.platform.models import (
    Channel,
    Guild,
    Invite,
    InviteOptions,
    Member,
    Message,
    PlatformEvent,
)

E = TypeVar("E", bound=PlatformEvent)
EventHandler = Callable[[E], Awaitable[None]]


@runtime_checkable
class PlatformCache(Protocol):
    """Read-only view of the client's guild, channel and member cache.

    Lookups raise ``CacheLookupError`` when the cache cannot answer.
    """

    def guilds(self) -> list[Guild]: ...

    def channels(self, guild_id: Optional[int]) -> list[Channel]: ...

    def members(self, guild_id: Optional[int]) -> list[Member]: ...

    def request_member_search(self, guild_id: Optional[int], query: str) -> None:
        """Ask the platform for matching members without waiting for them."""
        ...


@runtime_checkable
class ChatPlatform(PlatformCache, Protocol):
    """A connected platform session; entering the context connects."""

    async def __aenter__(self) -> "ChatPlatform": ...

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...

    def subscribe(self, event_type: type[E], handler: EventHandler[E]) -> None: ...

    async def fetch_channel(self, channel_id: int) -> Channel: ...

    async def fetch_messages(self, channel_id: int, limit: int) -> list[Message]:
        """Return up to ``limit`` recent messages, newest first."""
        ...

    async def send_message(self, channel_id: int, content: str) -> Message: ...

    async def join_invite(self, code: str) -> Invite: ...

    async def create_invite(
        self, channel_id: Optional[int], options: InviteOptions
    ) -> Invite: ...

    async def create_guild(self, name: str) -> Guild: ...

    async def create_channel(self, guild_id: Optional[int], name: str) -> Channel: ...

    async def subscribe_members(self, guild_id: int) -> None: ...

    async def trigger_typing(self, channel_id: int) -> None: ...
