"""Main entry point for the codex-bridge CLI."""

import typer

from codex_bridge import __version__
from codex_bridge.cli.helpers import get_rich_toolkit
from codex_bridge.config.settings import LoggingSettings
from codex_bridge.core.logging import setup_logging

from .commands.config import app as config_app
from .commands.instructions import app as instructions_app
from .commands.model import app as model_app


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        toolkit = get_rich_toolkit()
        toolkit.print(f"codex-bridge {__version__}", tag="version")
        raise typer.Exit()


app = typer.Typer(
    rich_markup_mode="rich",
    add_completion=True,
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)


@app.callback()
def app_main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Codex bridge developer tools."""


app.add_typer(model_app)
app.add_typer(instructions_app)
app.add_typer(config_app)


def main() -> None:
    """Configure logging from the environment and run the CLI."""
    settings = LoggingSettings()
    setup_logging(json_logs=settings.json_logs, log_level_name=settings.level)
    app()


if __name__ == "__main__":
    main()
