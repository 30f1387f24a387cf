import logging
from typing import Annotated, Any

import orjson
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import ORJSONResponse

from relay.app.errors import (
    ContractsNotLoadedError,
    InvalidRequestBodyError,
    RequestBodyTooLargeError,
)
from relay.app.services.fetch_executor import FetchExecutor
from relay.app.services.relay import RelayOrchestrator
from relay.app.state import RelayState

logger = logging.getLogger("relay.api")

router = APIRouter(tags=["Relay"])

MAX_REQUEST_BODY_BYTES = 2 * 1024 * 1024

# =============================================================================
# Dependency providers
# =============================================================================

def get_orchestrator(request: Request) -> RelayOrchestrator:
    """
    Wire the orchestrator to the process-wide state.

    The orchestrator itself is stateless; readiness and the compiled
    validators live on app.state.relay_state. Readiness is checked here,
    before the request body is read.
    """
    state: RelayState = request.app.state.relay_state
    if not state.ready:
        raise ContractsNotLoadedError()

    executor: FetchExecutor = request.app.state.fetch_executor
    return RelayOrchestrator(state=state, executor=executor)


async def read_json_body(request: Request) -> Any:
    """Parse the raw body as JSON, bounded to MAX_REQUEST_BODY_BYTES."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > MAX_REQUEST_BODY_BYTES:
        raise RequestBodyTooLargeError()

    raw = await request.body()
    if len(raw) > MAX_REQUEST_BODY_BYTES:
        raise RequestBodyTooLargeError()

    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        logger.info("invalid_json_body", extra={"body_bytes": len(raw)})
        raise InvalidRequestBodyError() from exc


# =============================================================================
# POST /fetch/v1.0.0
# =============================================================================

@router.post(
    "/fetch/v1.0.0",
    summary="Relay an outbound HTTP call under request/receipt contracts",
    responses={
        200: {"description": "Schema-valid receipt (outbound call may have failed)"},
        400: {"description": "Request schema invalid, or blocked/missing url"},
        413: {"description": "Payload too large"},
        500: {"description": "Receipt does not satisfy the receipt schema"},
        503: {"description": "Schemas not loaded"},
    },
)
async def relay_fetch(
    request: Request,
    orchestrator: Annotated[RelayOrchestrator, Depends(get_orchestrator)],
) -> ORJSONResponse:
    """
    Validate, guard, execute and receipt one outbound call.

    A 200 means the receipt satisfies the receipt schema; whether the
    relayed call itself succeeded is reported in `result.ok`.
    """
    body = await read_json_body(request)
    receipt = await orchestrator.relay(body)

    return ORJSONResponse(status_code=status.HTTP_200_OK, content=receipt)
