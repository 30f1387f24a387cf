"""
Receipt assembly for both outcome variants.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Any, Mapping

from relay.app.schemas.outbound import FetchOutcome, FetchResponse
from relay.app.schemas.receipt import (
    BODY_PREVIEW_CHARS,
    FailureResult,
    ReceiptTrace,
    RelayReceipt,
    SuccessResult,
)

RECEIPT_ID_PREFIX = "rcpt"


def new_receipt_id() -> str:
    return f"{RECEIPT_ID_PREFIX}_{secrets.token_hex(6)}"


def utc_timestamp() -> str:
    """ISO-8601, UTC, millisecond precision, `Z` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_receipt(request: Any, outcome: FetchOutcome) -> RelayReceipt:
    """
    Map a relay request and its fetch outcome onto the receipt envelope.

    `x402` and `trace.request_id` are copied only when present in the
    request, so absent keys stay absent in the rendered receipt.
    """
    envelope: Mapping[str, Any] = request if isinstance(request, Mapping) else {}
    caller_trace = envelope.get("trace")

    trace_fields: dict[str, Any] = {
        "receipt_id": new_receipt_id(),
        "ts": utc_timestamp(),
    }
    if isinstance(caller_trace, Mapping) and "request_id" in caller_trace:
        trace_fields["request_id"] = caller_trace["request_id"]

    if isinstance(outcome, FetchResponse):
        result: SuccessResult | FailureResult = SuccessResult(
            ok=outcome.ok,
            status=outcome.status,
            headers=outcome.headers,
            body_preview=outcome.body_text[:BODY_PREVIEW_CHARS],
        )
    else:
        result = FailureResult(ok=False, status=0, error=outcome.message)

    receipt_fields: dict[str, Any] = {
        "trace": ReceiptTrace(**trace_fields),
        "result": result,
    }
    if "x402" in envelope:
        receipt_fields["x402"] = envelope["x402"]

    return RelayReceipt(**receipt_fields)
