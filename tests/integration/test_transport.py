"""End-to-end tests of the Codex transport against a mocked backend."""

import asyncio
import json
from typing import Any

import httpx
import pytest

from codex_bridge.config.settings import UserConfig
from codex_bridge.core.errors import InstructionFetchError
from codex_bridge.http.transport import CodexTransport
from codex_bridge.models.model import ModelFamily
from codex_bridge.services.instructions import InstructionCache
from codex_bridge.transformers.tools import CODEX_BRIDGE_PROMPT
from tests.helpers.events import FakeInstructionSource, output_text, text_stream


BASE_URL = "https://api.example.com/v1"


class Backend:
    """Mock backend recording requests and replying with a fixed response."""

    def __init__(self, response: httpx.Response | None = None) -> None:
        self.response = response or httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            content=text_stream(["Hello", ", ", "world"]).encode(),
        )
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    @property
    def last_body(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def backend() -> Backend:
    return Backend()


def make_client(
    backend: Backend,
    cache: InstructionCache,
    codex_mode: bool = True,
    custom_base_url: str | None = None,
    user_config: UserConfig | None = None,
) -> httpx.AsyncClient:
    transport = CodexTransport(
        "sk-test",
        user_config=user_config,
        codex_mode=codex_mode,
        custom_base_url=custom_base_url,
        instruction_cache=cache,
        transport=httpx.MockTransport(backend),
    )
    return httpx.AsyncClient(base_url=BASE_URL, transport=transport)


@pytest.mark.integration
class TestCodexTransport:
    @pytest.mark.asyncio
    async def test_non_streaming_request(
        self, backend: Backend, instruction_cache: InstructionCache
    ) -> None:
        async with make_client(backend, instruction_cache) as client:
            response = await client.post(
                "/responses",
                headers={"authorization": "Bearer caller-token", "x-trace": "1"},
                json={"model": "gpt-5-codex", "input": [], "stream": False},
            )

        request = backend.requests[0]
        assert str(request.url) == f"{BASE_URL}/codex/responses"
        assert request.headers["authorization"] == "Bearer sk-test"
        assert request.headers["content-type"] == "application/json"
        assert request.headers["x-trace"] == "1"
        assert backend.last_body["model"] == "gpt-5.1-codex"
        assert backend.last_body["instructions"] == "Test instructions for codex"
        assert backend.last_body["stream"] is False

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert output_text(response.json()) == "Hello, world"

    @pytest.mark.asyncio
    async def test_streaming_request_passes_events_through(
        self, instruction_cache: InstructionCache
    ) -> None:
        body = text_stream(["a", "b"])
        backend = Backend(httpx.Response(200, content=body.encode()))

        async with make_client(backend, instruction_cache) as client:
            async with client.stream(
                "POST", "/responses", json={"model": "gpt-5.1", "stream": True}
            ) as response:
                chunks = [chunk async for chunk in response.aiter_text()]

        assert response.headers["content-type"] == "text/event-stream; charset=utf-8"
        assert "".join(chunks) == body

    @pytest.mark.asyncio
    async def test_custom_base_url_disables_rewrite(
        self, backend: Backend, instruction_cache: InstructionCache
    ) -> None:
        async with make_client(
            backend, instruction_cache, custom_base_url=BASE_URL
        ) as client:
            await client.post("/responses", json={"model": "gpt-5.1"})

        assert str(backend.requests[0].url) == f"{BASE_URL}/responses"

    @pytest.mark.asyncio
    async def test_tool_remap_mode(
        self, backend: Backend, instruction_cache: InstructionCache
    ) -> None:
        tool = {"type": "function", "function": {"name": "ls", "parameters": {}}}

        async with make_client(backend, instruction_cache, codex_mode=False) as client:
            await client.post("/responses", json={"model": "gpt-5.1", "tools": [tool]})

        assert backend.last_body["tools"] == [
            {"type": "function", "name": "ls", "parameters": {}}
        ]
        assert CODEX_BRIDGE_PROMPT not in backend.last_body["instructions"]

    @pytest.mark.asyncio
    async def test_bridge_prompt_mode(
        self, backend: Backend, instruction_cache: InstructionCache
    ) -> None:
        tool = {"type": "function", "name": "ls", "parameters": {}}

        async with make_client(backend, instruction_cache) as client:
            await client.post("/responses", json={"model": "gpt-5.1", "tools": [tool]})

        assert backend.last_body["tools"] == [tool]
        assert backend.last_body["instructions"].endswith(CODEX_BRIDGE_PROMPT)

    @pytest.mark.asyncio
    async def test_user_options_applied(
        self, backend: Backend, instruction_cache: InstructionCache, user_config: UserConfig
    ) -> None:
        async with make_client(
            backend, instruction_cache, user_config=user_config
        ) as client:
            await client.post("/responses", json={"model": "gpt-5.1-codex"})

        assert backend.last_body["reasoning"] == {"effort": "low", "summary": "auto"}
        assert backend.last_body["text"] == {"verbosity": "medium"}

    @pytest.mark.asyncio
    async def test_malformed_body_is_forwarded_unchanged(
        self, backend: Backend, instruction_cache: InstructionCache
    ) -> None:
        async with make_client(backend, instruction_cache) as client:
            response = await client.post(
                "/responses",
                content=b"{not json",
                headers={"content-type": "application/json"},
            )

        assert backend.requests[0].content == b"{not json"
        assert backend.requests[0].headers["authorization"] == "Bearer sk-test"
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_invalid_user_options_fall_back_to_original_body(
        self, backend: Backend, instruction_cache: InstructionCache
    ) -> None:
        config = UserConfig.model_validate({"global": {"include": "not-a-list"}})
        body = {"model": "gpt-5-codex", "input": []}

        async with make_client(backend, instruction_cache, user_config=config) as client:
            await client.post("/responses", json=body)

        assert backend.last_body == body

    @pytest.mark.asyncio
    async def test_instruction_failure_propagates_and_retries(
        self, backend: Backend
    ) -> None:
        source = FakeInstructionSource(failures=1)
        cache = InstructionCache(source)

        async with make_client(backend, cache) as client:
            with pytest.raises(InstructionFetchError):
                await client.post("/responses", json={"model": "gpt-5.1"})
            assert backend.requests == []

            response = await client.post("/responses", json={"model": "gpt-5.1"})

        assert response.status_code == 200
        assert len(source.calls) == 2

    @pytest.mark.asyncio
    async def test_concurrent_requests_fetch_instructions_once(
        self, backend: Backend
    ) -> None:
        source = FakeInstructionSource(delay=0.05)
        cache = InstructionCache(source)

        async with make_client(backend, cache) as client:
            responses = await asyncio.gather(
                *(
                    client.post("/responses", json={"model": "gpt-5.1-codex"})
                    for _ in range(5)
                )
            )

        assert [r.status_code for r in responses] == [200] * 5
        assert len(source.calls) == 1

    @pytest.mark.asyncio
    async def test_usage_limit_404_is_remapped(
        self, instruction_cache: InstructionCache
    ) -> None:
        error = {"error": {"code": "usage_limit_reached", "message": "limit"}}
        backend = Backend(httpx.Response(404, json=error))

        async with make_client(backend, instruction_cache) as client:
            response = await client.post("/responses", json={"model": "gpt-5.1"})

        assert response.status_code == 429
        assert response.json() == error

    @pytest.mark.asyncio
    async def test_other_errors_pass_through(
        self, instruction_cache: InstructionCache
    ) -> None:
        error = {"error": {"code": "model_not_found"}}
        backend = Backend(httpx.Response(404, json=error))

        async with make_client(backend, instruction_cache) as client:
            response = await client.post("/responses", json={"model": "gpt-5.1"})

        assert response.status_code == 404
        assert response.json() == error


class StalledStream(httpx.AsyncByteStream):
    """Backend body that sends one chunk and then never finishes."""

    def __init__(self, first_chunk: bytes) -> None:
        self.first_chunk = first_chunk
        self.waiting = asyncio.Event()
        self.closed = False

    async def __aiter__(self):
        yield self.first_chunk
        self.waiting.set()
        await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


@pytest.mark.integration
class TestCancellation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,first_chunk",
        [
            (200, b'event: response.created\ndata: {"type": "response.created"}\n\n'),
            (404, b'{"error": {"code": "usage_'),
        ],
    )
    async def test_cancelled_request_closes_backend_stream(
        self,
        instruction_cache: InstructionCache,
        status_code: int,
        first_chunk: bytes,
    ) -> None:
        stream = StalledStream(first_chunk)
        backend = Backend(
            httpx.Response(
                status_code,
                headers={"content-type": "text/event-stream"},
                stream=stream,
            )
        )

        async with make_client(backend, instruction_cache) as client:
            task = asyncio.create_task(
                client.post("/responses", json={"model": "gpt-5.1-codex"})
            )
            await asyncio.wait_for(stream.waiting.wait(), timeout=5)
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task

            assert stream.closed is True
            assert ModelFamily.CODEX in instruction_cache

            backend.response = Backend().response
            response = await client.post("/responses", json={"model": "gpt-5.1-codex"})

        assert response.status_code == 200
        assert output_text(response.json()) == "Hello, world"
        assert instruction_cache.fetch_count == 1
