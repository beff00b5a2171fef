"""
Embedding client tests against a mocked HTTP transport.
"""

import json

import httpx
import pytest

from continuity_backfill.embeddings.embedder import Embedder, EmbeddingError


def _embedder(handler):
    return Embedder(
        api_key="sk-test",
        model="text-embedding-3-small",
        base_url="https://embeddings.test/v1/embeddings",
        transport=httpx.MockTransport(handler),
    )


def _ok(request: httpx.Request) -> httpx.Response:
    inputs = json.loads(request.content)["input"]
    return httpx.Response(
        200,
        json={"data": [{"embedding": [float(len(text)), 1.0]} for text in inputs]},
    )


class TestEmbedOne:

    async def test_request_shape(self):
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        assert await _embedder(handler).embed_one("abc") == [3.0, 1.0]

        body = json.loads(seen[0].content)
        assert body == {"model": "text-embedding-3-small", "input": ["abc"]}
        assert seen[0].headers["Authorization"] == "Bearer sk-test"

    async def test_empty_text_is_none(self):
        def handler(request):
            raise AssertionError("unexpected request")

        assert await _embedder(handler).embed_one("") is None
        assert await _embedder(handler).embed_one("   ") is None

    async def test_empty_vector_is_none(self):
        embedder = _embedder(lambda request: httpx.Response(200, json={"data": [{"embedding": []}]}))
        assert await embedder.embed_one("text") is None


class TestEmbeddingErrors:

    async def test_http_error_is_wrapped(self):
        embedder = _embedder(lambda request: httpx.Response(429, json={"error": "slow down"}))
        with pytest.raises(EmbeddingError):
            await embedder.embed_one("text")

    async def test_transport_error_is_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(EmbeddingError):
            await _embedder(handler).embed_one("text")

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"data": "nope"},
            {"data": [{"vector": [1.0]}]},
            {"data": [{"embedding": ["x"]}]},
        ],
    )
    async def test_malformed_response(self, payload):
        embedder = _embedder(lambda request: httpx.Response(200, json=payload))
        with pytest.raises(EmbeddingError):
            await embedder.embed_one("text")

    async def test_non_json_body(self):
        embedder = _embedder(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(EmbeddingError):
            await embedder.embed_one("text")

    @pytest.mark.parametrize("count", [0, 2])
    async def test_count_mismatch(self, count):
        embedder = _embedder(
            lambda request: httpx.Response(200, json={"data": [{"embedding": [1.0]}] * count})
        )
        with pytest.raises(EmbeddingError, match="Expected 1"):
            await embedder.embed_one("text")


async def test_client_is_reused_until_closed():
    embedder = _embedder(_ok)

    await embedder.embed_one("one")
    client = embedder._client
    await embedder.embed_one("two")
    assert embedder._client is client

    await embedder.aclose()
    assert embedder._client is None
