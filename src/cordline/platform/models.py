"""
Plain value types for guilds, channels, members, messages and gateway events.

The platform adapter maps the client library's objects onto these types so
the session core never depends on the library's own classes.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

# Snowflakes are unsigned 64-bit integers.
SNOWFLAKE_MAX = 2**64 - 1


class InvalidSnowflakeError(ValueError):
    """Raised when text does not hold a valid snowflake ID."""


def parse_snowflake(text: str) -> int:
    """Parse a decimal snowflake ID, rejecting zero and out-of-range values."""
    value = text.strip()
    if not value.isdigit() or not value.isascii():
        raise InvalidSnowflakeError(f"invalid snowflake {text!r}")
    snowflake = int(value)
    if snowflake == 0 or snowflake > SNOWFLAKE_MAX:
        raise InvalidSnowflakeError(f"snowflake {text!r} out of range")
    return snowflake


@dataclass(frozen=True)
class Guild:
    id: int
    name: str


@dataclass(frozen=True)
class Channel:
    id: int
    name: str
    guild_id: Optional[int] = None

    @property
    def mention(self) -> str:
        return f"<#{self.id}>"


@dataclass(frozen=True)
class User:
    id: int
    username: str

    @property
    def mention(self) -> str:
        return f"<@{self.id}>"


@dataclass(frozen=True)
class Member:
    """A user's membership in one guild."""

    user: User
    nick: str = ""

    @property
    def display_name(self) -> str:
        return self.nick or self.user.username


@dataclass(frozen=True)
class Message:
    id: int
    channel_id: int
    author: User
    content: str
    timestamp: datetime
    guild_id: Optional[int] = None
    member: Optional[Member] = None
    edited_timestamp: Optional[datetime] = None

    @property
    def author_name(self) -> str:
        """Per-guild nickname when known, else the global username."""
        if self.member is not None and self.member.nick:
            return self.member.nick
        return self.author.username


@dataclass(frozen=True)
class Invite:
    code: str
    guild: Optional[Guild] = None
    channel: Optional[Channel] = None


class InviteOptionsError(ValueError):
    """Raised when an invite-options blob is malformed."""


@dataclass(frozen=True)
class InviteOptions:
    """Settings for a newly created invite."""

    max_age: int = 86400
    max_uses: int = 0
    temporary: bool = False
    unique: bool = False

    @classmethod
    def from_json(cls, raw: str) -> "InviteOptions":
        """
        Build options from a JSON object such as ``{"max_age": 3600}``.

        Unknown keys are ignored; known keys must carry the right type.
        """
        try:
            data: Any = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InviteOptionsError(str(e)) from e
        if not isinstance(data, dict):
            raise InviteOptionsError("expected a JSON object")

        values: dict[str, Any] = {}
        for key in ("max_age", "max_uses"):
            if key in data:
                value = data[key]
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    raise InviteOptionsError(
                        f"{key} must be a non-negative integer, got {value!r}"
                    )
                values[key] = value
        for key in ("temporary", "unique"):
            if key in data:
                value = data[key]
                if not isinstance(value, bool):
                    raise InviteOptionsError(f"{key} must be a boolean, got {value!r}")
                values[key] = value
        return cls(**values)


# Inbound gateway events
@dataclass(frozen=True)
class MessageCreateEvent:
    message: Message

    @property
    def channel_id(self) -> int:
        return self.message.channel_id


@dataclass(frozen=True)
class MessageUpdateEvent:
    message: Message

    @property
    def channel_id(self) -> int:
        return self.message.channel_id


@dataclass(frozen=True)
class TypingStartEvent:
    """Someone started typing; ``member`` is only known inside guilds."""

    channel_id: int
    user: User
    timestamp: datetime
    guild_id: Optional[int] = None
    member: Optional[Member] = None


PlatformEvent = Union[MessageCreateEvent, MessageUpdateEvent, TypingStartEvent]
