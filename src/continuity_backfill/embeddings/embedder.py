"""
Embedding Client

Async client for an OpenAI-compatible ``/embeddings`` endpoint. The backfill
embeds one exchange at a time, so a single ``httpx.AsyncClient`` is kept open
for the whole run and released with ``aclose``.

Response bodies are validated with pydantic. Transport failures, HTTP error
statuses and malformed bodies all surface as ``EmbeddingError``; callers
decide whether that is fatal. ``embed_one`` returns ``None`` when the API
produced no vector, which the writer treats as "skip this record".
"""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, ValidationError

logger = logging.getLogger("backfill.embedder")


class EmbeddingError(RuntimeError):
    """Raised when the embeddings endpoint fails or returns malformed data."""


class _EmbeddingItem(BaseModel):
    embedding: List[float]


class _EmbeddingResponse(BaseModel):
    data: List[_EmbeddingItem]


class Embedder:
    """
    Embedding generator bound to one endpoint, model and API key.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1/embeddings",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Parameters
        ----------
        api_key : str
            Bearer token for the embeddings API.
        model : str
            Embedding model name.
        base_url : str
            Full URL of the embeddings endpoint.
        timeout : float
            Per-request timeout in seconds.
        transport : Optional[httpx.AsyncBaseTransport]
            Custom transport, mainly for tests.
        """
        self._api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed_one(self, text: str) -> Optional[List[float]]:
        """
        Embed a single text. Blank text or an empty vector yields None.

        Raises
        ------
        EmbeddingError
            If the request fails or the response is malformed.
        """
        if not text or not text.strip():
            return None
        vector = await self._request(text)
        return vector or None

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        return self._client

    async def _request(self, text: str) -> List[float]:
        try:
            response = await self._get_client().post(
                self.base_url,
                json={"model": self.model, "input": [text]},
            )
            response.raise_for_status()
            body = _EmbeddingResponse.model_validate(response.json())
        except httpx.HTTPError as exc:
            logger.error(
                "Embedding request failed (%s): text length=%d",
                type(exc).__name__,
                len(text),
            )
            raise EmbeddingError(
                f"Embedding request failed: {type(exc).__name__}"
            ) from exc
        except (ValueError, ValidationError) as exc:
            raise EmbeddingError(f"Malformed embedding response: {exc}") from exc

        if len(body.data) != 1:
            raise EmbeddingError(f"Expected 1 embedding, got {len(body.data)}.")
        return body.data[0].embedding
