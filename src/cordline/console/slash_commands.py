"""
Slash commands: the command table, line parsing and the dispatcher.

Plain lines are sent to the current channel; ``/name argument`` lines run the
matching action. Actions report every failure as a single ``Error:`` line and
never stop the prompt loop.
"""

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, Optional

from cordline.console.rendering import Terminal, format_message
from cordline.errors import CommandError, PlatformError
from cordline.platform.models import InviteOptions, parse_snowflake
from cordline.platform.platform import ChatPlatform
from cordline.runtime_config import DEFAULT_HISTORY_LIMIT
from cordline.session.state import SessionState
from cordline.tasks import fire_and_forget

COMMAND_MARKER = "/"

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class SlashCommand:
    """Definition of a slash command: name, argument usage and description."""

    name: str
    usage: str
    description: str


COMMANDS: tuple[SlashCommand, ...] = (
    SlashCommand("help", "", "Show help and available commands"),
    SlashCommand("list", "", "List guilds and their channels"),
    SlashCommand("join", "<channelID>", "Join a channel by ID"),
    SlashCommand("join-invite", "<inviteCode>", "Join the channel an invite points to"),
    SlashCommand(
        "create-invite", "[channelID] [json]", "Create an invite for a channel"
    ),
    SlashCommand("create-guild", "<name>", "Create a new guild"),
    SlashCommand("create-channel", "<name>", "Create a channel in the current guild"),
    SlashCommand("quit", "", "Exit the client"),
)


@dataclass(frozen=True)
class Command:
    name: str
    argument: str


def parse_command(line: str) -> Optional[Command]:
    """Split ``line`` on its first whitespace run; None if it is not a command."""
    parts = _WHITESPACE.split(line, maxsplit=1)
    head = parts[0]
    if not head.startswith(COMMAND_MARKER):
        return None
    return Command(head[len(COMMAND_MARKER) :], parts[1] if len(parts) > 1 else "")


def is_exit_command(line: str) -> bool:
    command = parse_command(line.strip())
    return command is not None and command.name == "quit"


@contextmanager
def failing_with(context: str) -> Iterator[None]:
    """Turn platform and parse errors into a CommandError with ``context``."""
    try:
        yield
    except (PlatformError, ValueError) as e:
        raise CommandError(context, e) from e


Action = Callable[[str], Awaitable[None]]


class CommandDispatcher:
    """Runs one input line at a time against the session and the platform."""

    def __init__(
        self,
        state: SessionState,
        platform: ChatPlatform,
        terminal: Terminal,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self._state = state
        self._platform = platform
        self._terminal = terminal
        self._history_limit = history_limit
        self._actions: dict[str, Action] = {
            "help": self.help,
            "list": self.list_guilds,
            "join": self.join,
            "join-invite": self.join_invite,
            "create-invite": self.create_invite,
            "create-guild": self.create_guild,
            "create-channel": self.create_channel,
            "quit": self.quit,
        }

    async def dispatch(self, line: str) -> None:
        command = parse_command(line)
        if command is None:
            action, argument, label = self.send_message, line, "send message"
        else:
            found = self._actions.get(command.name)
            if found is None:
                logger.debug("Ignoring unknown command %r", command.name)
                return
            action, argument, label = found, command.argument, COMMAND_MARKER + command.name

        try:
            await action(argument)
        except CommandError as e:
            logger.info("%s failed: %s", label, e)
            self._terminal.write_error(e)
        except Exception as e:
            logger.exception("Unexpected failure in %s", label)
            self._terminal.write_error(CommandError(f"failed to run {label}", e))

    def _write(self, line: str) -> None:
        self._terminal.write_line(line)

    async def send_message(self, body: str) -> None:
        channel_id = self._state.channel_id()
        if channel_id is None:
            raise CommandError("not in any channel")
        if not body.strip():
            raise CommandError("missing message content")
        with failing_with("failed to send message"):
            await self._platform.send_message(channel_id, body)

    async def help(self, argument: str) -> None:
        self._write("To send a message, type in directly.")
        self._write("Available commands:")
        for cmd in COMMANDS:
            usage = f"{COMMAND_MARKER}{cmd.name} {cmd.usage}".rstrip()
            self._write(f"    {usage:<36} {cmd.description}")

    async def list_guilds(self, argument: str) -> None:
        with failing_with("failed to list all guilds"):
            guilds = self._platform.guilds()

        for guild in guilds:
            try:
                channels = self._platform.channels(guild.id)
            except PlatformError as e:
                self._terminal.write_error(CommandError("failed to get channels", e))
                continue

            self._write(f'Guild {guild.id}: "{guild.name}":')
            for ch in channels:
                self._write(f'    - {ch.id}: "{ch.name}"')

    async def join(self, argument: str) -> None:
        with failing_with("failed to parse channel ID"):
            channel_id = parse_snowflake(argument)

        with failing_with("invalid channel"):
            channel = await self._platform.fetch_channel(channel_id)
            messages = await self._platform.fetch_messages(
                channel_id, self._history_limit
            )

        # History arrives newest first.
        for message in reversed(messages):
            self._write(format_message(message))

        self._state.set(channel.guild_id, channel.id, channel.name)
        logger.info("Joined channel %s (%d)", channel.name, channel.id)

        if channel.guild_id is not None:
            fire_and_forget(
                self._platform.subscribe_members(channel.guild_id),
                f"subscribe members of guild {channel.guild_id}",
            )

    async def join_invite(self, argument: str) -> None:
        with failing_with("failed to join invite"):
            invite = await self._platform.join_invite(argument.strip())

        guild, channel = invite.guild, invite.channel
        if channel is not None and channel.id:
            self._state.set(
                guild.id if guild is not None else channel.guild_id,
                channel.id,
                channel.name,
            )

        self._write(
            f'Joined guild "{guild.name if guild else ""}" ({guild.id if guild else 0}) '
            f'into channel "{channel.name if channel else ""}" ({channel.id if channel else 0}).'
        )

    async def create_invite(self, argument: str) -> None:
        parts = _WHITESPACE.split(argument.strip(), maxsplit=1)
        channel_id = self._state.channel_id()
        options = InviteOptions()

        if parts[0]:
            with failing_with("failed to parse channel ID"):
                channel_id = parse_snowflake(parts[0])

        if len(parts) == 2:
            with failing_with("failed to parse invite data JSON"):
                options = InviteOptions.from_json(parts[1])

        with failing_with("failed to create invite"):
            invite = await self._platform.create_invite(channel_id, options)

        self._write(f'Invite created: "{invite.code}"')

    async def create_guild(self, argument: str) -> None:
        with failing_with("failed to create guild"):
            guild = await self._platform.create_guild(argument)
        self._write(f'Created guild "{guild.name}" ({guild.id}).')

    async def create_channel(self, argument: str) -> None:
        guild_id = self._state.guild_id()
        with failing_with("failed to create channel"):
            channel = await self._platform.create_channel(guild_id, argument)
        self._write(f'Created channel "#{channel.name}" ({channel.id}).')

    async def quit(self, argument: str) -> None:
        """The prompt loop exits before dispatching /quit."""
