"""CLI helper utilities for the Codex bridge."""

from rich_toolkit import RichToolkit, RichToolkitTheme
from rich_toolkit.styles import TaggedStyle


def get_rich_toolkit() -> RichToolkit:
    theme = RichToolkitTheme(
        style=TaggedStyle(tag_width=13),
        theme={
            "tag.title": "white on #009485",
            "tag": "white on #007166",
            "text": "white",
            "error": "bold red",
            "success": "bold green",
            "version": "cyan",
            "instructions": "bright_blue",
        },
    )

    return RichToolkit(theme=theme)
