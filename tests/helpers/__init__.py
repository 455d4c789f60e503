"""Test helpers for the Codex bridge test suite."""
