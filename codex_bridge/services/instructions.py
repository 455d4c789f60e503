"""Model-family instruction loading with a single-flight process cache."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Protocol

import httpx
import structlog

from codex_bridge.config.constants import CODEX_PROMPT_RAW_URL, CODEX_RELEASE_API_URL
from codex_bridge.core.errors import InstructionFetchError
from codex_bridge.models.model import ModelFamily


logger = structlog.get_logger(__name__)

BUNDLED_INSTRUCTIONS_FILE = (
    Path(__file__).parent.parent / "data" / "codex_instructions_fallback.json"
)


class InstructionSource(Protocol):
    """Anything able to produce the instruction payload for a model family."""

    async def fetch(self, family: ModelFamily) -> str: ...


class BundledInstructionSource:
    """Instructions shipped as package data."""

    def __init__(self, path: Path = BUNDLED_INSTRUCTIONS_FILE) -> None:
        self.path = path

    async def fetch(self, family: ModelFamily) -> str:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InstructionFetchError(
                f"Failed to read bundled instructions: {e}", family=family.value
            ) from e

        instructions = data.get(family.value)
        if not isinstance(instructions, str) or not instructions:
            raise InstructionFetchError(
                f"No bundled instructions for model family {family.value}",
                family=family.value,
            )
        return instructions


class GitHubInstructionSource:
    """Instructions fetched from the latest openai/codex release."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        release_url: str = CODEX_RELEASE_API_URL,
        raw_url_template: str = CODEX_PROMPT_RAW_URL,
        timeout: float = 30.0,
    ) -> None:
        self._client = client
        self.release_url = release_url
        self.raw_url_template = raw_url_template
        self.timeout = timeout

    async def fetch(self, family: ModelFamily) -> str:
        if self._client is not None:
            return await self._fetch_with(self._client, family)
        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True
        ) as client:
            return await self._fetch_with(client, family)

    async def _fetch_with(self, client: httpx.AsyncClient, family: ModelFamily) -> str:
        try:
            release = await client.get(self.release_url)
            release.raise_for_status()
            metadata = release.json()
            if not isinstance(metadata, dict):
                raise InstructionFetchError(
                    "Latest Codex release metadata is not an object",
                    family=family.value,
                )
            tag = metadata.get("tag_name")
            if not isinstance(tag, str) or not tag:
                raise InstructionFetchError(
                    "Latest Codex release has no tag_name", family=family.value
                )

            url = self.raw_url_template.format(tag=tag, filename=family.prompt_file)
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise InstructionFetchError(
                f"Failed to fetch instructions for {family.value}: {e}",
                family=family.value,
            ) from e
        except ValueError as e:
            raise InstructionFetchError(
                f"Invalid release metadata: {e}", family=family.value
            ) from e

        logger.debug(
            "instructions_fetched_remote",
            family=family.value,
            tag=tag,
            length=len(response.text),
            category="instructions",
        )
        return response.text


class FallbackInstructionSource:
    """Try a primary source and fall back to a secondary one on failure."""

    def __init__(self, primary: InstructionSource, fallback: InstructionSource) -> None:
        self.primary = primary
        self.fallback = fallback

    async def fetch(self, family: ModelFamily) -> str:
        try:
            return await self.primary.fetch(family)
        except InstructionFetchError as e:
            logger.warning(
                "instructions_primary_source_failed",
                family=family.value,
                error=str(e),
                fallback=type(self.fallback).__name__,
                category="instructions",
            )
            return await self.fallback.fetch(family)


def create_instruction_source(kind: str = "auto") -> InstructionSource:
    """Build the instruction source named by plugin configuration."""
    if kind == "bundled":
        return BundledInstructionSource()
    if kind == "remote":
        return GitHubInstructionSource()
    return FallbackInstructionSource(GitHubInstructionSource(), BundledInstructionSource())


class InstructionCache:
    """Process-lifetime cache of instruction payloads keyed by model family.

    Concurrent callers asking for the same family while it is being fetched
    share one in-flight fetch. Failures are not cached: the error reaches
    every waiting caller and the next call fetches again. Entries never
    expire.
    """

    def __init__(self, source: InstructionSource) -> None:
        self.source = source
        self._values: dict[ModelFamily, str] = {}
        self._pending: dict[ModelFamily, asyncio.Task[str]] = {}
        self.fetch_count = 0

    def __contains__(self, family: object) -> bool:
        return family in self._values

    async def get(self, family: ModelFamily) -> str:
        """Get the instruction payload for ``family``, fetching it once.

        Raises:
            InstructionFetchError: If the source cannot provide instructions
        """
        cached = self._values.get(family)
        if cached is not None:
            return cached

        task = self._pending.get(family)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._load(family))
            self._pending[family] = task
            task.add_done_callback(lambda t, key=family: self._on_done(key, t))
        else:
            logger.debug(
                "instructions_fetch_joined",
                family=family.value,
                category="instructions",
            )

        # A cancelled caller must not cancel the fetch other callers wait on
        return await asyncio.shield(task)

    async def _load(self, family: ModelFamily) -> str:
        self.fetch_count += 1
        logger.debug(
            "instructions_fetch_started", family=family.value, category="instructions"
        )
        instructions = await self.source.fetch(family)
        self._values[family] = instructions
        logger.info(
            "instructions_cached",
            family=family.value,
            length=len(instructions),
            category="instructions",
        )
        return instructions

    def _on_done(self, family: ModelFamily, task: asyncio.Task[str]) -> None:
        if self._pending.get(family) is task:
            del self._pending[family]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(
                "instructions_fetch_failed",
                family=family.value,
                error=str(error),
                category="instructions",
            )
