"""
ChatPlatform implementation backed by discord.py.

We start the client with ``asyncio.create_task(client.start(token))`` rather
than ``client.run(token)`` because the latter creates its own event loop and
would conflict with the loop running the prompt.
"""

import asyncio
import logging
from collections import defaultdict
from concurrent.futures import Future
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

import discord

from cordline.errors import CacheLookupError, PlatformConnectError, PlatformError
from cordline.platform.models import (
    Channel,
    Guild,
    Invite,
    InviteOptions,
    Member,
    Message,
    MessageCreateEvent,
    MessageUpdateEvent,
    PlatformEvent,
    TypingStartEvent,
    User,
)
from cordline.platform.platform import E, EventHandler

logger = logging.getLogger(__name__)

READY_TIMEOUT = 30.0
MEMBER_SEARCH_LIMIT = 10


def _to_user(user: Any) -> User:
    return User(id=user.id, username=user.name)


def _to_member(user: Any) -> Optional[Member]:
    if not isinstance(user, discord.Member):
        return None
    return Member(user=_to_user(user), nick=user.nick or "")


def _to_guild(guild: Any) -> Guild:
    return Guild(id=guild.id, name=getattr(guild, "name", "") or "")


def _to_channel(channel: Any) -> Channel:
    name = getattr(channel, "name", None)
    if not name and isinstance(channel, discord.DMChannel) and channel.recipient:
        name = f"@{channel.recipient.name}"
    guild = getattr(channel, "guild", None)
    return Channel(
        id=channel.id,
        name=name or "",
        guild_id=guild.id if guild is not None else None,
    )


def _to_message(message: discord.Message) -> Message:
    return Message(
        id=message.id,
        channel_id=message.channel.id,
        author=_to_user(message.author),
        content=message.content,
        timestamp=message.created_at,
        guild_id=message.guild.id if message.guild else None,
        member=_to_member(message.author),
        edited_timestamp=message.edited_at,
    )


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Re-raise discord.py failures as PlatformError."""
    try:
        yield
    except discord.DiscordException as e:
        raise PlatformError(str(e) or type(e).__name__) from e


class DiscordPlatform:
    """A discord.py client session exposed through the ChatPlatform protocol."""

    def __init__(self, token: str, ready_timeout: float = READY_TIMEOUT) -> None:
        self._token = token
        self._ready_timeout = ready_timeout
        self._handlers: defaultdict[type, list[Any]] = defaultdict(list)
        self._client: Optional[discord.Client] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._ready_event = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "DiscordPlatform":
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True
        intents.typing = True

        self._loop = asyncio.get_running_loop()
        self._ready_event.clear()
        self._client = _create_discord_client(self, intents)
        self._task = asyncio.create_task(
            self._client.start(self._token), name="discord_client"
        )

        # Wait for on_ready or an early task failure (bad token, network error).
        ready_fut = asyncio.ensure_future(self._ready_event.wait())
        done, _ = await asyncio.wait(
            {ready_fut, self._task},
            timeout=self._ready_timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
        ready_fut.cancel()
        if self._task in done:
            exc = self._task.exception()
            await self.close()
            raise PlatformConnectError(str(exc) if exc else "connection closed") from exc
        if not self._ready_event.is_set():
            await self.close()
            raise PlatformConnectError(
                f"client did not become ready within {self._ready_timeout:.0f}s"
            )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed():
            try:
                await self._client.close()
            except Exception:
                logger.exception("Error while closing the Discord client")
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug("Discord client task ended with an error: %s", e)
        logger.info("Discord session closed")

    @property
    def client(self) -> discord.Client:
        if self._client is None:
            raise PlatformError("not connected")
        return self._client

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, event_type: type[E], handler: EventHandler[E]) -> None:
        self._handlers[event_type].append(handler)

    async def _emit(self, event: PlatformEvent) -> None:
        for handler in list(self._handlers[type(event)]):
            try:
                await handler(event)
            except Exception:
                logger.exception("Handler for %s failed", type(event).__name__)

    # ------------------------------------------------------------------
    # Cache reads
    # ------------------------------------------------------------------

    def _cached_guild(self, guild_id: Optional[int]) -> discord.Guild:
        guild = self.client.get_guild(guild_id) if guild_id else None
        if guild is None:
            raise CacheLookupError(f"guild {guild_id} not found")
        return guild

    def guilds(self) -> list[Guild]:
        return [_to_guild(g) for g in self.client.guilds]

    def channels(self, guild_id: Optional[int]) -> list[Channel]:
        return [_to_channel(c) for c in self._cached_guild(guild_id).text_channels]

    def members(self, guild_id: Optional[int]) -> list[Member]:
        members = []
        for m in self._cached_guild(guild_id).members:
            members.append(Member(user=_to_user(m), nick=m.nick or ""))
        return members

    def request_member_search(self, guild_id: Optional[int], query: str) -> None:
        # Called from the completer thread as well as the loop.
        if not query or self._loop is None:
            return
        try:
            guild = self._cached_guild(guild_id)
        except CacheLookupError:
            return

        future = asyncio.run_coroutine_threadsafe(
            guild.query_members(query, limit=MEMBER_SEARCH_LIMIT, cache=True),
            self._loop,
        )

        def _done(f: "Future[Any]") -> None:
            if not f.cancelled() and f.exception() is not None:
                logger.debug("Member search for %r failed: %s", query, f.exception())

        future.add_done_callback(_done)

    # ------------------------------------------------------------------
    # Network calls
    # ------------------------------------------------------------------

    async def _resolve_channel(self, channel_id: int) -> Any:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            with _translate_errors():
                channel = await self.client.fetch_channel(channel_id)
        return channel

    async def _messageable(self, channel_id: int) -> discord.abc.Messageable:
        channel = await self._resolve_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            raise PlatformError(f"channel {channel_id} is not a text channel")
        return channel

    async def fetch_channel(self, channel_id: int) -> Channel:
        return _to_channel(await self._resolve_channel(channel_id))

    async def fetch_messages(self, channel_id: int, limit: int) -> list[Message]:
        channel = await self._messageable(channel_id)
        with _translate_errors():
            return [_to_message(m) async for m in channel.history(limit=limit)]

    async def send_message(self, channel_id: int, content: str) -> Message:
        channel = await self._messageable(channel_id)
        with _translate_errors():
            return _to_message(await channel.send(content))

    async def join_invite(self, code: str) -> Invite:
        # Bot accounts cannot accept invites; resolving one gives us the
        # guild and channel it points at.
        with _translate_errors():
            invite = await self.client.fetch_invite(code)
        guild = _to_guild(invite.guild) if invite.guild is not None else None
        channel = None
        if invite.channel is not None:
            channel = Channel(
                id=invite.channel.id,
                name=getattr(invite.channel, "name", "") or "",
                guild_id=guild.id if guild else None,
            )
        return Invite(code=invite.code, guild=guild, channel=channel)

    async def create_invite(
        self, channel_id: Optional[int], options: InviteOptions
    ) -> Invite:
        channel = await self._resolve_channel(channel_id or 0)
        if not isinstance(channel, discord.abc.GuildChannel):
            raise PlatformError(f"cannot create an invite for channel {channel_id}")
        with _translate_errors():
            invite = await channel.create_invite(
                max_age=options.max_age,
                max_uses=options.max_uses,
                temporary=options.temporary,
                unique=options.unique,
            )
        return Invite(
            code=invite.code,
            guild=_to_guild(channel.guild),
            channel=_to_channel(channel),
        )

    async def create_guild(self, name: str) -> Guild:
        with _translate_errors():
            return _to_guild(await self.client.create_guild(name=name))

    async def create_channel(self, guild_id: Optional[int], name: str) -> Channel:
        guild = self.client.get_guild(guild_id) if guild_id else None
        with _translate_errors():
            if guild is None:
                guild = await self.client.fetch_guild(guild_id or 0)
            return _to_channel(await guild.create_text_channel(name))

    async def subscribe_members(self, guild_id: int) -> None:
        guild = self._cached_guild(guild_id)
        with _translate_errors():
            await guild.chunk()

    async def trigger_typing(self, channel_id: int) -> None:
        channel = await self._messageable(channel_id)
        with _translate_errors():
            await channel.typing()


def _create_discord_client(
    platform: DiscordPlatform, intents: discord.Intents
) -> discord.Client:
    """Factory that creates a discord.Client wired to *platform*."""

    class _Client(discord.Client):
        async def on_ready(self) -> None:
            platform._ready_event.set()
            logger.info(
                "Connected as %s (%d guilds)", self.user, len(self.guilds)
            )

        async def on_message(self, message: discord.Message) -> None:
            await platform._emit(MessageCreateEvent(_to_message(message)))

        # on_message_edit skips messages missing from the client cache,
        # which includes all history fetched by /join.
        async def on_raw_message_edit(
            self, payload: discord.RawMessageUpdateEvent
        ) -> None:
            await platform._emit(MessageUpdateEvent(_to_message(payload.message)))

        async def on_typing(self, channel: Any, user: Any, when: datetime) -> None:
            guild = getattr(channel, "guild", None)
            await platform._emit(
                TypingStartEvent(
                    channel_id=channel.id,
                    user=_to_user(user),
                    timestamp=when,
                    guild_id=guild.id if guild is not None else None,
                    member=_to_member(user),
                )
            )

    return _Client(intents=intents)
