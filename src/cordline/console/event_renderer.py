from cordline.console.rendering import Terminal, format_message
from cordline.platform.models import (
    MessageCreateEvent,
    MessageUpdateEvent,
    TypingStartEvent,
)
from cordline.platform.platform import ChatPlatform
from cordline.session.state import SessionState


class EventRenderer:
    """Writes inbound events for the channel currently being viewed.

    Events for any other channel are dropped, not queued.
    """

    def __init__(self, state: SessionState, terminal: Terminal) -> None:
        self._state = state
        self._terminal = terminal

    def register(self, platform: ChatPlatform) -> None:
        platform.subscribe(MessageCreateEvent, self.on_message_create)
        platform.subscribe(MessageUpdateEvent, self.on_message_update)
        platform.subscribe(TypingStartEvent, self.on_typing_start)

    def _is_current(self, channel_id: int) -> bool:
        return self._state.channel_id() == channel_id

    async def on_message_create(self, event: MessageCreateEvent) -> None:
        if not self._is_current(event.channel_id):
            return
        self._terminal.write_line(format_message(event.message))

    async def on_message_update(self, event: MessageUpdateEvent) -> None:
        if not self._is_current(event.channel_id):
            return
        self._terminal.write_line(format_message(event.message, edited=True))

    async def on_typing_start(self, event: TypingStartEvent) -> None:
        if not self._is_current(event.channel_id):
            return
        if event.member is None:
            return
        self._terminal.write_line(f"*{event.member.display_name} is typing.*", "dim")
