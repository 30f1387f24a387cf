"""
Outbound call description and its two-variant outcome.

The outcome of a relayed call is either a FetchResponse (the target
answered, whatever the status) or a FetchFailure (no answer: transport
error, invalid target, or abort on timeout). Both flow into the receipt
builder through the same `FetchOutcome` type.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_METHOD = "GET"
DEFAULT_TIMEOUT_MS = 10_000
MIN_TIMEOUT_MS = 1
MAX_TIMEOUT_MS = 30_000


def clamp_timeout_ms(value: Any) -> float:
    """
    Effective timeout for a caller-supplied `timeout_ms`.

    Missing, boolean, NaN or non-numeric input falls back to the default;
    numbers are clamped into [MIN_TIMEOUT_MS, MAX_TIMEOUT_MS].
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_TIMEOUT_MS
    if math.isnan(value):
        return DEFAULT_TIMEOUT_MS
    return min(max(value, MIN_TIMEOUT_MS), MAX_TIMEOUT_MS)


class OutboundCall(BaseModel):
    """An already-guarded description of the call to relay."""

    url: str = Field(..., min_length=1)
    method: str = Field(DEFAULT_METHOD, min_length=1)
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout_ms: float = Field(
        DEFAULT_TIMEOUT_MS,
        ge=MIN_TIMEOUT_MS,
        le=MAX_TIMEOUT_MS,
    )

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_payload(cls, url: str, payload: Mapping[str, Any]) -> "OutboundCall":
        method = payload.get("method")
        if not isinstance(method, str) or not method.strip():
            method = DEFAULT_METHOD

        raw_headers = payload.get("headers")
        if not isinstance(raw_headers, Mapping):
            raw_headers = {}

        return cls(
            url=url,
            method=method.strip().upper(),
            headers={str(k): str(v) for k, v in raw_headers.items()},
            timeout_ms=clamp_timeout_ms(payload.get("timeout_ms")),
        )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


class FetchResponse(BaseModel):
    kind: Literal["response"] = "response"
    status: int
    headers: Dict[str, str] = Field(default_factory=dict)
    body_text: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class FetchFailure(BaseModel):
    kind: Literal["failure"] = "failure"
    message: str

    model_config = ConfigDict(frozen=True)


FetchOutcome = Union[FetchResponse, FetchFailure]
