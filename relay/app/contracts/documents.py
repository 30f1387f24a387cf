"""
Remote JSON document retrieval for schema contracts.

Documents are memoized for the lifetime of the process, keyed by the
gateway-rewritten URL. There is no eviction: schema documents are
assumed stable for as long as the process runs.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from relay.app.errors import (
    DocumentDecodeError,
    DocumentFetchError,
    DocumentTransportError,
)

logger = logging.getLogger("relay.contracts.documents")


IPFS_SCHEME = "ipfs://"
IPFS_GATEWAY = "https://ipfs.io/ipfs/"


def to_http_url(url: str) -> str:
    """Rewrite content-addressed `ipfs://` URLs to their HTTP gateway form."""
    if url.startswith(IPFS_SCHEME):
        return f"{IPFS_GATEWAY}{url[len(IPFS_SCHEME):]}"
    return url


class DocumentFetcher:
    """
    Fetches JSON documents over HTTP(S) and caches them by normalized URL.

    The caller passes in the shared AsyncClient so that connection pooling
    is preserved across all schema fetches.
    """

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._client = http_client
        self._cache: Dict[str, Any] = {}

    def cached(self, url: str) -> bool:
        return to_http_url(url) in self._cache

    async def fetch(self, url: str) -> Any:
        target = to_http_url(url)
        if target in self._cache:
            logger.debug("document_cache_hit", extra={"url": target})
            return self._cache[target]

        try:
            response = await self._get(target)
        except httpx.TransportError as exc:
            logger.error(
                "document_transport_failed",
                extra={"url": target, "error_type": type(exc).__name__},
            )
            raise DocumentTransportError(target, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            logger.error(
                "document_fetch_failed",
                extra={"url": target, "status_code": response.status_code},
            )
            raise DocumentFetchError(response.status_code, target)

        try:
            document = response.json()
        except ValueError as exc:
            raise DocumentDecodeError(target) from exc

        self._cache[target] = document
        logger.info("document_fetched", extra={"url": target})
        return document

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _get(self, url: str) -> httpx.Response:
        return await self._client.get(
            url,
            headers={"accept": "application/json"},
        )
