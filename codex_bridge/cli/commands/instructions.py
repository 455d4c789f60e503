"""Instruction inspection commands."""

import asyncio

import typer
from rich.console import Console
from rich.panel import Panel

from codex_bridge.cli.helpers import get_rich_toolkit
from codex_bridge.core.errors import InstructionFetchError
from codex_bridge.services.instructions import (
    InstructionCache,
    create_instruction_source,
)
from codex_bridge.services.model_normalizer import normalize_model


app = typer.Typer(
    name="instructions",
    help="Inspect model-family instructions",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

PREVIEW_LENGTH = 400


@app.command(name="show")
def instructions_show(
    model_id: str = typer.Argument(..., help="Model identifier"),
    source: str = typer.Option(
        "bundled",
        "--source",
        "-s",
        help="Instruction source: auto, remote or bundled",
    ),
    full: bool = typer.Option(False, "--full", help="Print the whole payload"),
) -> None:
    """Load the instructions injected for a model."""
    toolkit = get_rich_toolkit()
    console = Console()

    if source not in ("auto", "remote", "bundled"):
        toolkit.print(f"Unknown instruction source: {source}", tag="error")
        raise typer.Exit(2)

    normalized = normalize_model(model_id)
    cache = InstructionCache(create_instruction_source(source))

    try:
        instructions = asyncio.run(cache.get(normalized.family))
    except InstructionFetchError as e:
        toolkit.print(f"Failed to load instructions: {e}", tag="error")
        raise typer.Exit(1) from e

    toolkit.print(
        f"{normalized.canonical} ({normalized.family.value}): "
        f"{len(instructions)} characters from {source}",
        tag="instructions",
    )
    body = instructions
    if not full and len(instructions) > PREVIEW_LENGTH:
        body = instructions[:PREVIEW_LENGTH] + "\n..."
    console.print(Panel(body, title=normalized.family.value, border_style="blue"))
