"""Model identifier commands."""

import typer
from rich.console import Console
from rich.table import Table

from codex_bridge.services.model_normalizer import normalize_model


app = typer.Typer(
    name="model",
    help="Inspect model identifier normalization",
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.command(name="normalize")
def model_normalize(
    model_id: str = typer.Argument(..., help="Model identifier as sent by the caller"),
) -> None:
    """Show how a model identifier is mapped onto the backend."""
    console = Console()
    normalized = normalize_model(model_id)

    table = Table(title="Model Normalization", show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Input", model_id)
    table.add_row("Canonical", normalized.canonical)
    table.add_row("Base", normalized.base)
    table.add_row("Family", normalized.family.value)
    table.add_row("Effort", normalized.effort or "-")
    table.add_row("Recognized", "yes" if normalized.recognized else "no")

    console.print(table)
