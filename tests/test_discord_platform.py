import asyncio
import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from cordline.errors import CacheLookupError, PlatformError
from cordline.platform.discord_platform import (
    DiscordPlatform,
    _create_discord_client,
    _to_channel,
    _to_member,
    _translate_errors,
)
from cordline.platform.models import (
    Channel,
    Guild,
    InviteOptions,
    Member,
    MessageCreateEvent,
    MessageUpdateEvent,
    User,
)


def make_platform(client: MagicMock) -> DiscordPlatform:
    platform = DiscordPlatform("test_token")
    platform._client = client
    return platform


def make_guild(guild_id: int = 10, name: str = "Test Guild") -> MagicMock:
    guild = MagicMock(spec=discord.Guild)
    guild.id = guild_id
    guild.name = name
    return guild


def make_text_channel(channel_id: int, name: str, guild: MagicMock) -> MagicMock:
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = channel_id
    channel.name = name
    channel.guild = guild
    return channel


def make_member(user_id: int, name: str, nick: str | None = None) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = user_id
    member.name = name
    member.nick = nick
    return member


def test_to_member_only_for_guild_members() -> None:
    plain_user = MagicMock(spec=discord.User)
    plain_user.id = 1
    plain_user.name = "alice"
    assert _to_member(plain_user) is None
    assert _to_member(make_member(2, "bob", "Bobby")) == Member(User(2, "bob"), "Bobby")
    assert _to_member(make_member(3, "carol")) == Member(User(3, "carol"), "")


def test_to_channel_names_direct_messages_after_recipient() -> None:
    dm = MagicMock(spec=discord.DMChannel)
    dm.id = 555
    dm.name = None
    dm.guild = None
    dm.recipient = MagicMock()
    dm.recipient.name = "bob"
    assert _to_channel(dm) == Channel(555, "@bob", None)


def test_to_channel_keeps_guild() -> None:
    channel = make_text_channel(111, "general", make_guild())
    assert _to_channel(channel) == Channel(111, "general", 10)


def test_translate_errors_wraps_library_errors() -> None:
    with pytest.raises(PlatformError, match="Unknown Channel"):
        with _translate_errors():
            raise discord.DiscordException("Unknown Channel")


def test_client_property_requires_connection() -> None:
    with pytest.raises(PlatformError, match="not connected"):
        DiscordPlatform("t").client


def test_cache_reads_map_library_objects() -> None:
    guild = make_guild()
    guild.text_channels = [make_text_channel(111, "general", guild)]
    guild.members = [make_member(1, "alice", "Ali"), make_member(2, "bob")]
    client = MagicMock()
    client.guilds = [guild]
    client.get_guild.side_effect = lambda gid: guild if gid == 10 else None
    platform = make_platform(client)

    assert platform.guilds() == [Guild(10, "Test Guild")]
    assert platform.channels(10) == [Channel(111, "general", 10)]
    assert platform.members(10) == [
        Member(User(1, "alice"), "Ali"),
        Member(User(2, "bob"), ""),
    ]
    with pytest.raises(CacheLookupError):
        platform.channels(99)
    with pytest.raises(CacheLookupError):
        platform.members(None)


def test_member_search_skipped_without_query_or_loop() -> None:
    client = MagicMock()
    platform = make_platform(client)
    platform.request_member_search(10, "al")
    platform._loop = MagicMock()
    platform.request_member_search(10, "")
    client.get_guild.assert_not_called()


@pytest.mark.asyncio
async def test_emit_isolates_failing_handlers() -> None:
    platform = DiscordPlatform("t")
    seen: list[str] = []

    async def broken(event: MessageCreateEvent) -> None:
        raise RuntimeError("boom")

    async def healthy(event: MessageCreateEvent) -> None:
        seen.append(event.message.content)

    platform.subscribe(MessageCreateEvent, broken)
    platform.subscribe(MessageCreateEvent, healthy)

    message = MagicMock()
    message.content = "hi"
    await platform._emit(MessageCreateEvent(message))
    assert seen == ["hi"]


@pytest.mark.asyncio
async def test_fetch_channel_falls_back_to_network_and_wraps_errors() -> None:
    client = MagicMock()
    client.get_channel.return_value = None
    client.fetch_channel = AsyncMock(
        side_effect=discord.DiscordException("Unknown Channel")
    )
    platform = make_platform(client)

    with pytest.raises(PlatformError, match="Unknown Channel"):
        await platform.fetch_channel(999)
    client.fetch_channel.assert_awaited_once_with(999)


@pytest.mark.asyncio
async def test_send_message_rejects_non_text_channels() -> None:
    client = MagicMock()
    client.get_channel.return_value = MagicMock(spec=discord.CategoryChannel)
    platform = make_platform(client)

    with pytest.raises(PlatformError, match="not a text channel"):
        await platform.send_message(5, "hello")


@pytest.mark.asyncio
async def test_join_invite_resolves_guild_and_channel() -> None:
    invite = MagicMock()
    invite.code = "xyz"
    invite.guild = make_guild()
    invite.channel = MagicMock()
    invite.channel.id = 111
    invite.channel.name = "general"
    client = MagicMock()
    client.fetch_invite = AsyncMock(return_value=invite)
    platform = make_platform(client)

    result = await platform.join_invite("xyz")
    assert result.guild == Guild(10, "Test Guild")
    assert result.channel == Channel(111, "general", 10)


@pytest.mark.asyncio
async def test_create_invite_passes_options() -> None:
    guild = make_guild()
    channel = make_text_channel(111, "general", guild)
    created = MagicMock()
    created.code = "abc123"
    channel.create_invite = AsyncMock(return_value=created)
    client = MagicMock()
    client.get_channel.return_value = channel
    platform = make_platform(client)

    invite = await platform.create_invite(111, InviteOptions(max_age=60, unique=True))

    assert invite.code == "abc123"
    channel.create_invite.assert_awaited_once_with(
        max_age=60, max_uses=0, temporary=False, unique=True
    )


@pytest.mark.asyncio
async def test_trigger_typing_awaits_channel_typing() -> None:
    channel = make_text_channel(111, "general", make_guild())
    channel.typing = AsyncMock()
    client = MagicMock()
    client.get_channel.return_value = channel
    platform = make_platform(client)

    await platform.trigger_typing(111)
    channel.typing.assert_awaited_once()


def make_library_message(message_id: int, channel_id: int, content: str) -> MagicMock:
    message = MagicMock(spec=discord.Message)
    message.id = message_id
    message.channel = MagicMock()
    message.channel.id = channel_id
    message.guild = make_guild()
    message.author = make_member(2, "bob", "Bobby")
    message.content = content
    message.created_at = datetime(2024, 5, 1, 15, 4, tzinfo=timezone.utc)
    message.edited_at = datetime(2024, 5, 1, 15, 9, tzinfo=timezone.utc)
    return message


@pytest.mark.asyncio
async def test_raw_edit_of_uncached_message_emits_update() -> None:
    platform = DiscordPlatform("t")
    client = _create_discord_client(platform, discord.Intents.none())
    seen: list[MessageUpdateEvent] = []

    async def on_update(event: MessageUpdateEvent) -> None:
        seen.append(event)

    platform.subscribe(MessageUpdateEvent, on_update)

    payload = MagicMock(spec=discord.RawMessageUpdateEvent)
    payload.cached_message = None
    payload.message = make_library_message(42, 111, "fixed")
    await client.on_raw_message_edit(payload)  # type: ignore[attr-defined]

    assert len(seen) == 1
    update = seen[0].message
    assert (update.id, update.channel_id, update.content) == (42, 111, "fixed")
    assert update.author_name == "Bobby"
    assert update.guild_id == 10
    assert update.edited_timestamp == datetime(2024, 5, 1, 15, 9, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_on_ready_sets_ready_event() -> None:
    platform = DiscordPlatform("t")
    client = _create_discord_client(platform, discord.Intents.none())
    assert not platform._ready_event.is_set()
    await client.on_ready()  # type: ignore[attr-defined]
    assert platform._ready_event.is_set()


@pytest.mark.asyncio
async def test_close_logs_client_task_failure(caplog: pytest.LogCaptureFixture) -> None:
    async def gateway() -> None:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            raise RuntimeError("gateway gone")

    platform = DiscordPlatform("t")
    platform._task = asyncio.create_task(gateway())
    await asyncio.sleep(0)

    with caplog.at_level(logging.DEBUG, logger="cordline.platform.discord_platform"):
        await platform.close()

    assert platform._task.done()
    assert "gateway gone" in caplog.text
