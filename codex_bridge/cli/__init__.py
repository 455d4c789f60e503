"""Command line interface for the Codex bridge."""

from .main import app, main


__all__ = ["app", "main"]
