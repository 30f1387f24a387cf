"""
Bounded execution of the relayed outbound call.
"""

from __future__ import annotations

import logging

import anyio
import httpx

from relay.app.schemas.outbound import (
    FetchFailure,
    FetchOutcome,
    FetchResponse,
    OutboundCall,
)

logger = logging.getLogger("relay.fetch_executor")


class FetchExecutor:
    """
    Performs one outbound call under a cancel scope of `timeout_ms`.

    Guarantees:
    - never raises for a failed call; failures become FetchFailure
    - the timeout scope is released on every exit path
    - the response body is read fully, as text, whatever its type
    - redirects are reported, not followed
    """

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._client = http_client

    async def execute(self, call: OutboundCall) -> FetchOutcome:
        try:
            with anyio.fail_after(call.timeout_seconds):
                response = await self._client.request(
                    call.method,
                    call.url,
                    headers=call.headers,
                    follow_redirects=False,
                )
        except TimeoutError:
            logger.info(
                "outbound_call_aborted",
                extra={"url": call.url, "timeout_ms": call.timeout_ms},
            )
            return FetchFailure(
                message=f"The operation was aborted after {call.timeout_ms:g} ms"
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.info(
                "outbound_call_failed",
                extra={"url": call.url, "error_type": type(exc).__name__},
            )
            return FetchFailure(message=str(exc) or type(exc).__name__)
        except (ValueError, TypeError) as exc:
            # Request could not be encoded (e.g. non-ASCII header value)
            logger.info(
                "outbound_call_rejected",
                extra={"url": call.url, "error_type": type(exc).__name__},
            )
            return FetchFailure(message=str(exc) or type(exc).__name__)

        return FetchResponse(
            status=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            body_text=response.text,
        )
