"""Model identity types."""

from dataclasses import dataclass
from enum import Enum


class ModelFamily(str, Enum):
    """Coarse model classification used to pick instructions and defaults."""

    GPT_5_1 = "gpt-5.1"
    GPT_5_2 = "gpt-5.2"
    CODEX = "codex"
    CODEX_MINI = "codex-mini"
    CODEX_MAX = "codex-max"
    GPT_5_2_CODEX = "gpt-5.2-codex"

    @property
    def prompt_file(self) -> str:
        """Name of the upstream prompt file holding this family's instructions."""
        return _PROMPT_FILES[self]


_PROMPT_FILES: dict[ModelFamily, str] = {
    ModelFamily.GPT_5_1: "gpt_5_1_prompt.md",
    ModelFamily.GPT_5_2: "gpt_5_2_prompt.md",
    ModelFamily.CODEX: "gpt_5_codex_prompt.md",
    ModelFamily.CODEX_MINI: "gpt_5_codex_prompt.md",
    ModelFamily.CODEX_MAX: "gpt-5.1-codex-max_prompt.md",
    ModelFamily.GPT_5_2_CODEX: "gpt-5.2-codex_prompt.md",
}


@dataclass(frozen=True)
class NormalizedModel:
    """Result of normalizing a caller-supplied model identifier.

    Attributes:
        canonical: Identifier sent to the backend
        base: Identifier with any reasoning-effort suffix removed
        family: Model family derived from ``canonical``
        effort: Reasoning effort requested through an id suffix, if any
        recognized: Whether the base identifier is a known backend model
    """

    canonical: str
    base: str
    family: ModelFamily
    effort: str | None = None
    recognized: bool = True
