"""
Per-request relay orchestration.

The orchestrator is a DUMB AUTHORITY: it enforces stage order and the
hard stop at each gate, and nothing else. It does not interpret the
caller's `x402` token or the relayed response body.

Stages:
    RECEIVED -> REQUEST_VALIDATED -> URL_GUARDED -> EXECUTED
             -> RECEIPT_BUILT -> RECEIPT_VALIDATED -> RESPONDED

Every gate exits with a RelayRequestError. A failed outbound call is not
a gate failure: it proceeds to a failure receipt like any other outcome.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Mapping

from relay.app.errors import (
    BlockedUrlError,
    ReceiptSchemaInvalidError,
    RequestSchemaInvalidError,
)
from relay.app.schemas.outbound import FetchFailure, OutboundCall
from relay.app.services.fetch_executor import FetchExecutor
from relay.app.services.receipts import build_receipt
from relay.app.services.ssrf_guard import is_blocked_url
from relay.app.state import RelayState

logger = logging.getLogger("relay.orchestrator")


class RelayStage(str, Enum):
    RECEIVED = "received"
    REQUEST_VALIDATED = "request_validated"
    URL_GUARDED = "url_guarded"
    EXECUTED = "executed"
    RECEIPT_BUILT = "receipt_built"
    RECEIPT_VALIDATED = "receipt_validated"
    RESPONDED = "responded"


class RelayOrchestrator:
    def __init__(self, state: RelayState, executor: FetchExecutor) -> None:
        self._state = state
        self._executor = executor

    async def relay(self, request: Any) -> Dict[str, Any]:
        """
        Run one relay request through every stage.

        Returns the wire form of a receipt that has passed the receipt
        schema. Raises RelayRequestError at the first failing gate.
        """
        # ----------------------------------------------------------
        # 1. Readiness
        # ----------------------------------------------------------
        validators = self._state.validators
        request_id = _request_id(request)

        # ----------------------------------------------------------
        # 2. Request contract (HARD GATE)
        # ----------------------------------------------------------
        verdict = validators.request(request)
        if not verdict.valid:
            logger.info(
                "relay_rejected",
                extra={
                    "stage": RelayStage.RECEIVED.value,
                    "request_id": request_id,
                    "error_count": len(verdict.errors),
                },
            )
            raise RequestSchemaInvalidError(details=verdict.error_details())

        # ----------------------------------------------------------
        # 3. Outbound target guard (HARD GATE)
        # ----------------------------------------------------------
        payload = _payload(request)
        url = payload.get("url")

        if not url or is_blocked_url(url):
            logger.warning(
                "relay_blocked_url",
                extra={
                    "stage": RelayStage.REQUEST_VALIDATED.value,
                    "request_id": request_id,
                    "url": url,
                },
            )
            raise BlockedUrlError(details={"url": url} if url is not None else {})

        call = OutboundCall.from_payload(url, payload)

        # ----------------------------------------------------------
        # 4. Execute (failures are outcomes, not errors)
        # ----------------------------------------------------------
        outcome = await self._executor.execute(call)

        # ----------------------------------------------------------
        # 5. Receipt
        # ----------------------------------------------------------
        receipt = build_receipt(request, outcome).to_wire()

        # ----------------------------------------------------------
        # 6. Receipt contract (HARD GATE, server-side)
        # ----------------------------------------------------------
        verdict = validators.receipt(receipt)
        if not verdict.valid:
            logger.error(
                "receipt_contract_mismatch",
                extra={
                    "stage": RelayStage.RECEIPT_BUILT.value,
                    "request_id": request_id,
                    "receipt_id": receipt["trace"]["receipt_id"],
                    "receipt_schema": validators.locations.receipt_schema_url,
                    "error_count": len(verdict.errors),
                },
            )
            raise ReceiptSchemaInvalidError(details=verdict.error_details())

        logger.info(
            "relay_completed",
            extra={
                "stage": RelayStage.RESPONDED.value,
                "request_id": request_id,
                "receipt_id": receipt["trace"]["receipt_id"],
                "outbound_ok": not isinstance(outcome, FetchFailure),
            },
        )
        return receipt


def _payload(request: Any) -> Mapping[str, Any]:
    payload = request.get("payload") if isinstance(request, Mapping) else None
    return payload if isinstance(payload, Mapping) else {}


def _request_id(request: Any) -> Any:
    if not isinstance(request, Mapping):
        return None
    trace = request.get("trace")
    return trace.get("request_id") if isinstance(trace, Mapping) else None
