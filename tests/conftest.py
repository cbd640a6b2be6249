from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest
from rich.console import Console

from cordline.console.rendering import Terminal
from cordline.errors import CacheLookupError, PlatformError
from cordline.platform.models import (
    Channel,
    Guild,
    Invite,
    InviteOptions,
    Member,
    Message,
    User,
)

BASE_TIME = datetime(2024, 5, 1, 15, 4, tzinfo=timezone.utc)


def make_message(
    message_id: int,
    channel_id: int,
    content: str,
    author: str = "alice",
    nick: str = "",
    minutes: int = 0,
    edited_minutes: Optional[int] = None,
) -> Message:
    user = User(id=1000 + message_id, username=author)
    return Message(
        id=message_id,
        channel_id=channel_id,
        author=user,
        content=content,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        member=Member(user=user, nick=nick) if nick else None,
        edited_timestamp=(
            BASE_TIME + timedelta(minutes=edited_minutes)
            if edited_minutes is not None
            else None
        ),
    )


class FakePlatform:
    """In-memory platform for testing; records every network call."""

    def __init__(self) -> None:
        self.guild_list: list[Guild] = []
        self.guild_channels: dict[int, list[Channel]] = {}
        self.guild_members: dict[int, list[Member]] = {}
        self.history: dict[int, list[Message]] = {}
        self.invites: dict[str, Invite] = {}
        self.handlers: defaultdict[type, list[Any]] = defaultdict(list)
        self.calls: list[tuple[Any, ...]] = []
        self.fail_with: Optional[Exception] = None
        self.entered = False
        self.exited = False

    def add_guild(self, guild: Guild, channels: list[Channel], members: Optional[list[Member]] = None) -> None:
        self.guild_list.append(guild)
        self.guild_channels[guild.id] = channels
        self.guild_members[guild.id] = members or []

    async def __aenter__(self) -> "FakePlatform":
        self.entered = True
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.exited = True

    def subscribe(self, event_type: type, handler: Any) -> None:
        self.handlers[event_type].append(handler)

    async def emit(self, event: Any) -> None:
        for handler in self.handlers[type(event)]:
            await handler(event)

    # cache
    def guilds(self) -> list[Guild]:
        return list(self.guild_list)

    def channels(self, guild_id: Optional[int]) -> list[Channel]:
        if guild_id not in self.guild_channels:
            raise CacheLookupError(f"guild {guild_id} not found")
        return list(self.guild_channels[guild_id])

    def members(self, guild_id: Optional[int]) -> list[Member]:
        if guild_id not in self.guild_members:
            raise CacheLookupError(f"guild {guild_id} not found")
        return list(self.guild_members[guild_id])

    def request_member_search(self, guild_id: Optional[int], query: str) -> None:
        self.calls.append(("request_member_search", guild_id, query))

    # network
    def _check(self, *call: Any) -> None:
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    def _find_channel(self, channel_id: Optional[int]) -> Channel:
        for channels in self.guild_channels.values():
            for ch in channels:
                if ch.id == channel_id:
                    return ch
        raise PlatformError("Unknown Channel")

    async def fetch_channel(self, channel_id: int) -> Channel:
        self._check("fetch_channel", channel_id)
        return self._find_channel(channel_id)

    async def fetch_messages(self, channel_id: int, limit: int) -> list[Message]:
        self._check("fetch_messages", channel_id, limit)
        return self.history.get(channel_id, [])[:limit]

    async def send_message(self, channel_id: int, content: str) -> Message:
        self._check("send_message", channel_id, content)
        return make_message(1, channel_id, content)

    async def join_invite(self, code: str) -> Invite:
        self._check("join_invite", code)
        if code not in self.invites:
            raise PlatformError("Unknown Invite")
        return self.invites[code]

    async def create_invite(self, channel_id: Optional[int], options: InviteOptions) -> Invite:
        self._check("create_invite", channel_id, options)
        channel = self._find_channel(channel_id)
        return Invite(code="abc123", channel=channel)

    async def create_guild(self, name: str) -> Guild:
        self._check("create_guild", name)
        return Guild(id=900, name=name)

    async def create_channel(self, guild_id: Optional[int], name: str) -> Channel:
        self._check("create_channel", guild_id, name)
        if guild_id is None:
            raise PlatformError("Unknown Guild")
        return Channel(id=901, name=name, guild_id=guild_id)

    async def subscribe_members(self, guild_id: int) -> None:
        self._check("subscribe_members", guild_id)

    async def trigger_typing(self, channel_id: int) -> None:
        self._check("trigger_typing", channel_id)


GUILD = Guild(id=10, name="Test Guild")
GENERAL = Channel(id=111, name="general", guild_id=10)
RANDOM = Channel(id=112, name="random", guild_id=10)
GAMES = Channel(id=211, name="games", guild_id=20)


@pytest.fixture
def platform() -> FakePlatform:
    fake = FakePlatform()
    fake.add_guild(
        GUILD,
        [GENERAL, RANDOM],
        [
            Member(User(1, "alice"), nick="Ali"),
            Member(User(2, "bob")),
            Member(User(3, "carol"), nick="albatross"),
        ],
    )
    fake.add_guild(Guild(id=20, name="Other Guild"), [GAMES])
    return fake


@pytest.fixture
def recorder() -> Console:
    return Console(record=True, width=120)


@pytest.fixture
def terminal(recorder: Console) -> Terminal:
    return Terminal(recorder)


def output_lines(recorder: Console) -> list[str]:
    return [line.rstrip() for line in recorder.export_text().splitlines() if line.strip()]
