"""Services shared by the request pipeline."""

from .instructions import (
    BundledInstructionSource,
    FallbackInstructionSource,
    GitHubInstructionSource,
    InstructionCache,
    create_instruction_source,
)
from .model_normalizer import get_model_family, normalize_model


__all__ = [
    "BundledInstructionSource",
    "FallbackInstructionSource",
    "GitHubInstructionSource",
    "InstructionCache",
    "create_instruction_source",
    "get_model_family",
    "normalize_model",
]
