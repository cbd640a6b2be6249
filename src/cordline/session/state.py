"""
Session state: which guild and channel the user is currently in.

The state is read from the event loop (event handlers, prompt prefix, typing
throttle) and from prompt_toolkit's completion thread, so it is guarded by a
thread-level reader/writer lock rather than an asyncio primitive.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional


class ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


@dataclass(frozen=True)
class ChannelContext:
    """Snapshot of the session's current location."""

    guild_id: Optional[int] = None
    channel_id: Optional[int] = None
    channel_name: str = ""

    @property
    def in_channel(self) -> bool:
        return self.channel_id is not None


class SessionState:
    """Current guild/channel of the session, replaced atomically as a whole."""

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._context = ChannelContext()

    def read(self) -> ChannelContext:
        with self._lock.read_locked():
            return self._context

    def set(
        self,
        guild_id: Optional[int],
        channel_id: Optional[int],
        channel_name: str,
    ) -> None:
        # channel_name is non-empty exactly when channel_id is set.
        if not channel_id:
            channel_id, channel_name = None, ""
        elif not channel_name:
            channel_name = str(channel_id)
        context = ChannelContext(guild_id or None, channel_id, channel_name)
        with self._lock.write_locked():
            self._context = context

    def guild_id(self) -> Optional[int]:
        return self.read().guild_id

    def channel_id(self) -> Optional[int]:
        return self.read().channel_id

    def channel_name(self) -> str:
        return self.read().channel_name
