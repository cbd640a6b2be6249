import logging
from typing import Optional

from prompt_toolkit.completion import ThreadedCompleter
from prompt_toolkit.formatted_text import HTML, FormattedText, to_formatted_text
from prompt_toolkit.history import FileHistory
from prompt_toolkit.shortcuts import PromptSession
from prompt_toolkit.styles import Style
from rich.panel import Panel

from cordline.console.completion import CommandAutoSuggest, SessionCompleter
from cordline.console.event_renderer import EventRenderer
from cordline.console.key_bindings import get_key_bindings
from cordline.console.rendering import Terminal
from cordline.console.slash_commands import CommandDispatcher, is_exit_command
from cordline.console.typing_throttle import TypingThrottle
from cordline.errors import PromptInitError
from cordline.platform.platform import ChatPlatform
from cordline.runtime_config import RuntimeConfig, get_data_dir
from cordline.session.state import SessionState

logger = logging.getLogger(__name__)


class ReplConsole:
    """Console that runs the interactive chat prompt."""

    platform: ChatPlatform
    config: RuntimeConfig
    prompt_session: Optional[PromptSession[str]]

    style: Style = Style.from_dict(
        {
            "completion-menu": "noinherit",
            "completion-menu.completion": "noinherit",
            "completion-menu.completion.current": "noinherit bold",
            "completion-menu.meta.completion": "noinherit",
            "completion-menu.meta.completion.current": "noinherit bold",
            "scrollbar": "noinherit",
            "scrollbar.background": "noinherit",
            "scrollbar.button": "noinherit",
        }
    )

    def __init__(
        self,
        platform: ChatPlatform,
        config: RuntimeConfig,
        terminal: Optional[Terminal] = None,
    ) -> None:
        self.platform = platform
        self.config = config
        self.state = SessionState()
        self.terminal = terminal or Terminal()
        self.dispatcher = CommandDispatcher(
            self.state, platform, self.terminal, config.history_limit
        )
        self.renderer = EventRenderer(self.state, self.terminal)
        self.typing = TypingThrottle(
            self.state, platform.trigger_typing, config.typing_cooldown
        )
        self.prompt_session = None

    def prompt_fragments(self) -> FormattedText:
        """Live prompt prefix naming the current channel."""
        name = self.state.channel_name()
        if not name:
            return to_formatted_text("> ")
        return to_formatted_text(HTML("<ansicyan>#{}</ansicyan>&gt; ").format(name))

    def _create_prompt_session(self) -> PromptSession[str]:
        # Store prompt history under the XDG data directory
        history_dir = get_data_dir()
        history_dir.mkdir(parents=True, exist_ok=True)
        history_path = history_dir / "prompt_history"

        try:
            session: PromptSession[str] = PromptSession(
                message=self.prompt_fragments,
                history=FileHistory(str(history_path)),
                completer=ThreadedCompleter(SessionCompleter(self.state, self.platform)),
                auto_suggest=CommandAutoSuggest(),
                style=self.style,
                complete_while_typing=True,
                key_bindings=get_key_bindings(),
                erase_when_done=True,
            )
        except Exception as e:
            raise PromptInitError(str(e)) from e

        session.default_buffer.on_text_changed += self.typing.on_keystroke
        return session

    async def run(self) -> None:
        """Interactive loop: read a line, dispatch it, repeat until /quit."""
        async with self.platform:
            self.renderer.register(self.platform)

            self.terminal.console.print(
                Panel(
                    "[bold cyan]╭─ CORDLINE ─╮[/bold cyan]\n\n"
                    f"[dim]Guilds:[/dim] [dim cyan]{len(self.platform.guilds())}[/dim cyan]",
                    expand=False,
                )
            )
            self.terminal.write_line("Welcome. Try typing '/help'.")

            self.prompt_session = self._create_prompt_session()

            try:
                while True:
                    line = await self.prompt_session.prompt_async()
                    if is_exit_command(line):
                        break
                    await self.dispatcher.dispatch(line)
            except (KeyboardInterrupt, EOFError):
                pass

            logger.info("Leaving interactive session")
