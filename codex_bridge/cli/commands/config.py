"""Plugin configuration commands."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from codex_bridge.cli.helpers import get_rich_toolkit
from codex_bridge.config.constants import CODEX_BASE_URL
from codex_bridge.config.settings import (
    get_codex_mode,
    get_plugin_config_path,
    load_plugin_config,
    save_plugin_config,
)
from codex_bridge.core.errors import ConfigurationError
from codex_bridge.plugin import validate_base_url


app = typer.Typer(
    name="config",
    help="Show and edit the plugin configuration file",
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _config_path_option() -> Path | None:
    return typer.Option(
        None,
        "--path",
        "-p",
        help="Plugin configuration file (defaults to CODEX_BRIDGE_CONFIG or ~/.opencode)",
        dir_okay=False,
    )


@app.command(name="show")
def config_show(path: Path | None = _config_path_option()) -> None:
    """Show the effective plugin configuration."""
    console = Console()
    config_path = path or get_plugin_config_path()
    config = load_plugin_config(config_path)

    table = Table(title="Plugin Configuration", show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Description", style="dim")

    table.add_row(
        "File",
        str(config_path),
        "present" if config_path.exists() else "missing, defaults in use",
    )
    table.add_row(
        "CODEX_MODE",
        str(get_codex_mode(config)),
        "Bridge prompt (True) or tool remap (False)",
    )
    table.add_row(
        "Base URL",
        config.base_url or CODEX_BASE_URL,
        "custom" if config.base_url else "default",
    )
    table.add_row("Instructions", config.instructions_source, "Instruction source")
    table.add_row(
        "Usage limit phrases",
        ", ".join(config.usage_limit_patterns) or "-",
        "Extra phrases remapped to 429",
    )

    console.print(table)


@app.command(name="set-base-url")
def config_set_base_url(
    url: str = typer.Argument(..., help="Custom backend endpoint"),
    path: Path | None = _config_path_option(),
) -> None:
    """Save a custom base URL to the plugin configuration."""
    toolkit = get_rich_toolkit()

    error = validate_base_url(url)
    if error:
        toolkit.print(error, tag="error")
        raise typer.Exit(1)

    config = load_plugin_config(path)
    try:
        saved = save_plugin_config(config.model_copy(update={"base_url": url}), path)
    except ConfigurationError as e:
        toolkit.print(str(e), tag="error")
        raise typer.Exit(1) from e

    toolkit.print(f"Base URL saved to {saved}", tag="success")
