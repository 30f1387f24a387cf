"""
Relay receipt envelope.

The receipt is the relay's only successful response body. It mirrors
the caller's opaque `x402` token, carries a trace block, and reports the
relayed call's outcome in one of two result shapes.

Rendering uses `exclude_unset` so that keys absent from the caller's
request (`x402`, `trace.request_id`) stay absent instead of becoming
`null`. Builders must therefore set every other field explicitly.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


BODY_PREVIEW_CHARS = 2000


class ReceiptTrace(BaseModel):
    request_id: Any = Field(
        None,
        description="Copied verbatim from the request trace block",
    )

    receipt_id: str = Field(
        ...,
        description="Freshly generated receipt identifier (rcpt_ prefix)",
    )

    ts: str = Field(
        ...,
        description="UTC ISO-8601 issue time",
    )

    model_config = ConfigDict(frozen=True)


class SuccessResult(BaseModel):
    """The target answered; status and headers are reported as received."""

    ok: bool
    status: int
    headers: Dict[str, str]
    body_preview: str = Field(..., max_length=BODY_PREVIEW_CHARS)

    model_config = ConfigDict(frozen=True)


class FailureResult(BaseModel):
    """The target never answered."""

    ok: Literal[False]
    status: Literal[0]
    error: str

    model_config = ConfigDict(frozen=True)


class RelayReceipt(BaseModel):
    x402: Any = Field(
        None,
        description="Caller payment/authorization token, passed through opaquely",
    )

    trace: ReceiptTrace
    result: Union[SuccessResult, FailureResult]

    model_config = ConfigDict(frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)
