"""
Autocomplete for the prompt: command names, channel IDs and mentions.

``autocomplete`` is a pure function of the typed text and a cache snapshot;
``SessionCompleter`` and ``CommandAutoSuggest`` adapt it to prompt_toolkit.
"""

import logging
from dataclasses import dataclass
from typing import Generator, Optional

from prompt_toolkit.auto_suggest import AutoSuggest
from prompt_toolkit.auto_suggest import Suggestion as AutoSuggestion
from prompt_toolkit.buffer import Buffer
from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document

from cordline.console.slash_commands import COMMAND_MARKER, COMMANDS
from cordline.errors import PlatformError
from cordline.platform.platform import PlatformCache
from cordline.session.state import SessionState

MEMBER_MARKER = "@"
CHANNEL_MARKER = "#"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Suggestion:
    text: str
    description: str


def _is_first_word(text: str, word: str) -> bool:
    return not text[: len(text) - len(word)].strip()


def _has_prefix(search: str, *candidates: str) -> bool:
    """True if any non-empty candidate starts with ``search``, ignoring case."""
    return any(c and c.lower().startswith(search) for c in candidates)


def autocomplete(
    text: str, word: str, state: SessionState, cache: PlatformCache
) -> list[Suggestion]:
    """
    Suggest completions for ``word``, the token right before the cursor.

    Branches are tried in order and the first one that applies wins:
    channel IDs after ``/join``, command names, ``@member`` then ``#channel``.
    """
    fields = text.split()
    if not fields:
        return []

    if fields[0].removeprefix(COMMAND_MARKER) == "join":
        return _search_all_channels(cache, fields[1] if len(fields) > 1 else "")

    if not word:
        return []

    if _is_first_word(text, word) and word.startswith(COMMAND_MARKER):
        return [
            Suggestion(COMMAND_MARKER + cmd.name, cmd.description)
            for cmd in COMMANDS
            if (COMMAND_MARKER + cmd.name).startswith(word)
        ]

    marker, search = word[0], word[1:]
    try:
        if marker == MEMBER_MARKER:
            return _search_members(state, cache, search.lower())
        if marker == CHANNEL_MARKER:
            return _search_channels(state, cache, search.lower())
    except PlatformError as e:
        logger.debug("Completion lookup failed: %s", e)
    return []


def _search_all_channels(cache: PlatformCache, prefix: str) -> list[Suggestion]:
    try:
        guilds = cache.guilds()
    except PlatformError:
        return []

    suggestions = []
    for guild in guilds:
        try:
            channels = cache.channels(guild.id)
        except PlatformError:
            continue
        for ch in channels:
            if str(ch.id).startswith(prefix):
                suggestions.append(Suggestion(str(ch.id), CHANNEL_MARKER + ch.name))
    return suggestions


def _search_members(
    state: SessionState, cache: PlatformCache, search: str
) -> list[Suggestion]:
    guild_id = state.guild_id()
    suggestions = [
        Suggestion(m.user.mention, MEMBER_MARKER + m.user.username)
        for m in cache.members(guild_id)
        if _has_prefix(search, m.user.username, m.nick)
    ]
    if not suggestions:
        # Results land in the cache; the user sees them on the next keystroke.
        cache.request_member_search(guild_id, search)
    return suggestions


def _search_channels(
    state: SessionState, cache: PlatformCache, search: str
) -> list[Suggestion]:
    return [
        Suggestion(ch.mention, CHANNEL_MARKER + ch.name)
        for ch in cache.channels(state.guild_id())
        if _has_prefix(search, ch.name)
    ]


class SessionCompleter(Completer):
    """prompt_toolkit completer over ``autocomplete``."""

    def __init__(self, state: SessionState, cache: PlatformCache) -> None:
        self._state = state
        self._cache = cache

    def get_completions(
        self, document: Document, complete_event: CompleteEvent
    ) -> Generator[Completion, None, None]:
        text = document.text_before_cursor
        word = document.get_word_before_cursor(WORD=True)

        # Cursor still on "/join": append the ID instead of replacing the command.
        fields = text.split()
        append = (
            len(fields) == 1
            and not text[-1:].isspace()
            and fields[0].removeprefix(COMMAND_MARKER) == "join"
        )

        for s in autocomplete(text, word, self._state, self._cache):
            if append:
                yield Completion(
                    " " + s.text, start_position=0, display=s.text, display_meta=s.description
                )
            else:
                yield Completion(
                    s.text,
                    start_position=-len(word),
                    display=s.text,
                    display_meta=s.description,
                )


class CommandAutoSuggest(AutoSuggest):
    """Grey inline remainder of the first command matching the typed prefix."""

    def get_suggestion(
        self, buffer: Buffer, document: Document
    ) -> Optional[AutoSuggestion]:
        text = document.text
        if not text.startswith(COMMAND_MARKER) or len(text) <= 1 or " " in text:
            return None
        for cmd in COMMANDS:
            name = COMMAND_MARKER + cmd.name
            if name.startswith(text) and name != text:
                return AutoSuggestion(name[len(text) :])
        return None
