"""Model identifier normalization and family classification."""

import re

from codex_bridge.config.constants import DEFAULT_MODEL, REASONING_EFFORTS
from codex_bridge.core.logging import get_logger
from codex_bridge.models.model import ModelFamily, NormalizedModel


logger = get_logger(__name__)


# Canonical backend models, the family each belongs to and the reasoning
# efforts the backend accepts as an id suffix for it.
CANONICAL_MODELS: dict[str, tuple[ModelFamily, frozenset[str]]] = {
    "gpt-5.1": (ModelFamily.GPT_5_1, frozenset({"none", "low", "medium", "high"})),
    "gpt-5.2": (
        ModelFamily.GPT_5_2,
        frozenset({"none", "low", "medium", "high", "xhigh"}),
    ),
    "gpt-5.1-codex": (ModelFamily.CODEX, frozenset({"low", "medium", "high"})),
    "gpt-5.1-codex-mini": (ModelFamily.CODEX_MINI, frozenset({"medium", "high"})),
    "gpt-5.1-codex-max": (
        ModelFamily.CODEX_MAX,
        frozenset({"low", "medium", "high", "xhigh"}),
    ),
    "gpt-5.2-codex": (
        ModelFamily.GPT_5_2_CODEX,
        frozenset({"low", "medium", "high", "xhigh"}),
    ),
}

MODEL_ALIASES: dict[str, str] = {
    "gpt-5": "gpt-5.1",
    "gpt-5-codex": "gpt-5.1-codex",
    "gpt-5-codex-mini": "gpt-5.1-codex-mini",
    "codex-mini-latest": "gpt-5.1-codex-mini",
    "gpt-5-codex-max": "gpt-5.1-codex-max",
}

_EFFORT_SUFFIX_RE = re.compile(
    r"^(?P<base>.+)-(?P<effort>" + "|".join(REASONING_EFFORTS) + r")$"
)


def _split_effort(model_id: str) -> tuple[str, str | None]:
    match = _EFFORT_SUFFIX_RE.match(model_id)
    if match is None:
        return model_id, None
    return match.group("base"), match.group("effort")


def _resolve_base(base: str) -> str | None:
    if base in CANONICAL_MODELS:
        return base
    return MODEL_ALIASES.get(base)


def get_model_family(model_id: str) -> ModelFamily:
    """Classify a model identifier into a family.

    Known identifiers map through the canonical table; anything else is
    guessed from substrings ("codex", "max", "mini", "5.2").
    """
    key = model_id.strip().lower().rsplit("/", 1)[-1]
    base, _ = _split_effort(key)
    canonical = _resolve_base(base)
    if canonical is not None:
        return CANONICAL_MODELS[canonical][0]

    if "codex" in key:
        if "max" in key:
            return ModelFamily.CODEX_MAX
        if "mini" in key:
            return ModelFamily.CODEX_MINI
        if "5.2" in key:
            return ModelFamily.GPT_5_2_CODEX
        return ModelFamily.CODEX
    if "5.2" in key:
        return ModelFamily.GPT_5_2
    return ModelFamily.GPT_5_1


def normalize_model(model: str | None) -> NormalizedModel:
    """Map a caller-supplied model identifier onto a backend identifier.

    Provider prefixes (``openai/``) and case are normalized and aliases are
    resolved. A reasoning-effort suffix is kept in the canonical identifier
    when the backend accepts it for that model; otherwise it is removed from
    the identifier but still reported through ``effort`` so the request's
    reasoning options can carry it. Unknown identifiers are returned
    unchanged with a best-effort family.

    Args:
        model: Model identifier from the request body

    Returns:
        Normalized model description
    """
    if not model or not model.strip():
        return normalize_model(DEFAULT_MODEL)

    key = model.strip().lower().rsplit("/", 1)[-1]
    base, effort = _split_effort(key)
    canonical_base = _resolve_base(base)

    if canonical_base is None:
        return NormalizedModel(
            canonical=model,
            base=base,
            family=get_model_family(model),
            effort=effort,
            recognized=False,
        )

    family, accepted_efforts = CANONICAL_MODELS[canonical_base]
    if effort is None:
        canonical = canonical_base
    elif effort in accepted_efforts:
        canonical = f"{canonical_base}-{effort}"
    else:
        canonical = canonical_base
        logger.debug(
            "model_effort_suffix_moved_to_reasoning",
            model=model,
            canonical=canonical,
            effort=effort,
            category="transform",
        )

    return NormalizedModel(
        canonical=canonical,
        base=canonical_base,
        family=family,
        effort=effort,
        recognized=True,
    )
