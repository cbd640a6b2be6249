import asyncio
import logging
from typing import Callable, Optional

import typer
from typing_extensions import Annotated

from cordline.console.console import ConsoleInterface, ReplConsole
from cordline.errors import PlatformConnectError, PromptInitError
from cordline.logger import setup_logging
from cordline.platform import ChatPlatform, DiscordPlatform
from cordline.runtime_config import (
    DEFAULT_HISTORY_LIMIT,
    DISCORD_TOKEN_ENV,
    HISTORY_LIMIT_ENV,
    RuntimeConfig,
    load_envs,
)

logger = logging.getLogger(__name__)

PlatformFactory = Callable[[RuntimeConfig], ChatPlatform]
ConsoleFactory = Callable[[ChatPlatform, RuntimeConfig], ConsoleInterface]


def default_platform_factory(config: RuntimeConfig) -> ChatPlatform:
    """Default factory for creating platform sessions."""
    return DiscordPlatform(config.token)


def default_console_factory(
    platform: ChatPlatform, config: RuntimeConfig
) -> ConsoleInterface:
    """Default factory for creating Console instances."""
    return ReplConsole(platform, config)


def create_app(
    platform_factory: Optional[PlatformFactory] = None,
    console_factory: Optional[ConsoleFactory] = None,
) -> typer.Typer:
    """
    Create and configure the Typer application.

    Args:
        platform_factory: Factory function to create the platform session
        console_factory: Factory function to create Console instances

    Returns:
        Typer application
    """
    # Load the token and related settings from .env if not already set in the
    # environment; the log level read by setup_logging may come from there.
    load_envs()
    setup_logging()

    make_platform = platform_factory or default_platform_factory
    make_console = console_factory or default_console_factory

    def main(
        token: Annotated[
            Optional[str],
            typer.Option(
                "--token", "-t", envvar=DISCORD_TOKEN_ENV, help="Discord token to use"
            ),
        ] = None,
        history_limit: Annotated[
            int,
            typer.Option(
                "--history-limit",
                envvar=HISTORY_LIMIT_ENV,
                min=1,
                max=100,
                help="Number of recent messages shown when joining a channel",
            ),
        ] = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        """CORDLINE - chat in Discord channels from the terminal"""
        if not token:
            logger.error("No token supplied")
            typer.echo("Error: Missing token; declare with -t $TOKEN.", err=True)
            raise typer.Exit(code=1)

        cfg = RuntimeConfig(token=token, history_limit=history_limit)
        logger.info("Starting session (history limit %d)", cfg.history_limit)

        try:
            platform = make_platform(cfg)
            console = make_console(platform, cfg)
            asyncio.run(console.run())
        except PlatformConnectError as e:
            logger.error("Failed to connect: %s", e)
            typer.echo(f"Error: failed to connect: {e}", err=True)
            raise typer.Exit(code=1)
        except PromptInitError as e:
            logger.error("Failed to create prompt: %s", e)
            typer.echo(f"Error: failed to run prompt: {e}", err=True)
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            print("\nExiting...")

    app = typer.Typer(rich_markup_mode=None)
    app.command()(main)
    return app


# Create default app instance for the console script
app = create_app()


if __name__ == "__main__":
    app()
