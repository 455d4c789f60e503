"""Outcome of request body transformation."""

import json
from dataclasses import dataclass, field
from typing import Any

from .model import NormalizedModel


@dataclass(frozen=True)
class Transformed:
    """The body was rewritten for the backend."""

    body: dict[str, Any]
    original_model: str | None
    normalized: NormalizedModel

    @property
    def is_transformed(self) -> bool:
        return True

    @property
    def content(self) -> bytes:
        """Serialized body ready to send."""
        return json.dumps(self.body).encode("utf-8")


@dataclass(frozen=True)
class PassThrough:
    """The original request is forwarded untouched."""

    reason: str
    error: str | None = field(default=None)

    @property
    def is_transformed(self) -> bool:
        return False


TransformResult = Transformed | PassThrough
