from prompt_toolkit.filters import completion_is_selected, has_completions
from prompt_toolkit.key_binding import KeyBindings, KeyPressEvent
from prompt_toolkit.keys import Keys


def get_key_bindings() -> KeyBindings:
    """Tab completion for IDs and mentions, plus newline insertion in messages."""
    kb = KeyBindings()

    @kb.add("tab", filter=has_completions)
    def complete_or_cycle(event: KeyPressEvent) -> None:
        buffer = event.current_buffer
        state = buffer.complete_state
        if state is None:
            return

        # A single candidate (one channel ID, one member) is taken right away
        if len(state.completions) == 1:
            buffer.apply_completion(state.completions[0])
        else:
            buffer.complete_next()

    @kb.add("tab", filter=~has_completions)
    def suggest_or_open_menu(event: KeyPressEvent) -> None:
        buffer = event.current_buffer
        if buffer.suggestion:
            buffer.insert_text(buffer.suggestion.text)
        else:
            buffer.start_completion(select_first=False)

    # Enter on a highlighted completion applies it instead of sending the line
    @kb.add("enter", filter=completion_is_selected)
    def apply_selected(event: KeyPressEvent) -> None:
        buffer = event.current_buffer
        state = buffer.complete_state
        if state is not None and state.current_completion is not None:
            buffer.apply_completion(state.current_completion)

    @kb.add("c-j", eager=True)
    @kb.add(Keys.Escape, Keys.Enter, eager=True)
    def insert_newline(event: KeyPressEvent) -> None:
        """Ctrl+J or Alt+Enter break the message over several lines."""
        event.current_buffer.insert_text("\n")

    return kb
