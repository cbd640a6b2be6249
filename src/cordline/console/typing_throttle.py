import time
from typing import Awaitable, Callable, Optional

from cordline.runtime_config import TYPING_COOLDOWN_SECONDS
from cordline.session.state import SessionState
from cordline.tasks import fire_and_forget


class TypingThrottle:
    """Sends at most one typing signal per cool-down while the user types.

    Leading edge: the first keystroke fires immediately, then keystrokes are
    ignored until ``cooldown`` seconds have passed since the last signal.
    """

    def __init__(
        self,
        state: SessionState,
        send: Callable[[int], Awaitable[None]],
        cooldown: float = TYPING_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._state = state
        self._send = send
        self._cooldown = cooldown
        self._clock = clock
        self.last_sent_at: Optional[float] = None

    def on_keystroke(self, *_: object) -> bool:
        """Keystroke callback; returns True when a signal was fired."""
        channel_id = self._state.channel_id()
        if channel_id is None:
            return False

        now = self._clock()
        if self.last_sent_at is not None and now < self.last_sent_at + self._cooldown:
            return False

        self.last_sent_at = now
        fire_and_forget(self._send(channel_id), f"typing in channel {channel_id}")
        return True
