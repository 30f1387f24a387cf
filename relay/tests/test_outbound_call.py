import math

import pytest

from relay.app.schemas.outbound import (
    DEFAULT_TIMEOUT_MS,
    OutboundCall,
    clamp_timeout_ms,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (0, 1),
        (-500, 1),
        (999999, 30000),
        (30000, 30000),
        (2500, 2500),
        (0.5, 1),
        (None, DEFAULT_TIMEOUT_MS),
        ("5000", DEFAULT_TIMEOUT_MS),
        (True, DEFAULT_TIMEOUT_MS),
        (math.nan, DEFAULT_TIMEOUT_MS),
        (math.inf, 30000),
    ],
)
def test_timeout_is_always_clamped(raw, expected):
    assert clamp_timeout_ms(raw) == expected


def test_missing_payload_fields_take_defaults():
    call = OutboundCall.from_payload("https://api.example.com", {})

    assert call.method == "GET"
    assert call.headers == {}
    assert call.timeout_ms == 10000
    assert call.timeout_seconds == 10.0


def test_payload_fields_are_normalized():
    call = OutboundCall.from_payload(
        "https://api.example.com",
        {
            "method": "post",
            "headers": {"X-Count": 3, "Accept": "text/plain"},
            "timeout_ms": 0,
        },
    )

    assert call.method == "POST"
    assert call.headers == {"X-Count": "3", "Accept": "text/plain"}
    assert call.timeout_ms == 1


def test_non_mapping_headers_are_ignored():
    call = OutboundCall.from_payload(
        "https://api.example.com",
        {"headers": ["not", "a", "mapping"], "method": 7},
    )

    assert call.headers == {}
    assert call.method == "GET"
