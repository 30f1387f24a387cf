"""
Deterministic request/receipt schema documents for tests.

The shapes mirror a typical published relay contract: an opaque x402
token, a trace block, and a payload describing the outbound call.
"""

import copy

DIALECT = "https://json-schema.org/draft/2020-12/schema"

REQUEST_SCHEMA_URL = "https://schemas.example.com/relay/request.json"
RECEIPT_SCHEMA_URL = "https://schemas.example.com/relay/receipt.json"


def request_schema() -> dict:
    return {
        "$schema": DIALECT,
        "title": "Relay fetch request",
        "type": "object",
        "required": ["x402", "trace", "payload"],
        "properties": {
            "x402": {"type": "object"},
            "trace": {
                "type": "object",
                "required": ["request_id"],
                "properties": {
                    "request_id": {"type": "string", "minLength": 1},
                },
            },
            "payload": {"$ref": "#/$defs/payload"},
        },
        "$defs": {
            "payload": {
                "type": "object",
                "required": ["url"],
                "properties": {
                    "url": {"type": "string", "format": "uri"},
                    "method": {"type": "string"},
                    "headers": {
                        "type": "object",
                        "additionalProperties": {"type": "string"},
                    },
                    "timeout_ms": {"type": "number"},
                },
            },
        },
    }


def receipt_schema() -> dict:
    return {
        "$schema": DIALECT,
        "title": "Relay fetch receipt",
        "type": "object",
        "required": ["x402", "trace", "result"],
        "additionalProperties": False,
        "properties": {
            "x402": {"type": "object"},
            "trace": {
                "type": "object",
                "required": ["request_id", "receipt_id", "ts"],
                "additionalProperties": False,
                "properties": {
                    "request_id": {"type": "string"},
                    "receipt_id": {
                        "type": "string",
                        "pattern": "^rcpt_[0-9a-f]{12}$",
                    },
                    "ts": {"type": "string", "format": "date-time"},
                },
            },
            "result": {
                "oneOf": [
                    {"$ref": "#/$defs/success"},
                    {"$ref": "#/$defs/failure"},
                ],
            },
        },
        "$defs": {
            "success": {
                "type": "object",
                "required": ["ok", "status", "headers", "body_preview"],
                "additionalProperties": False,
                "properties": {
                    "ok": {"type": "boolean"},
                    "status": {"type": "integer", "minimum": 100, "maximum": 599},
                    "headers": {
                        "type": "object",
                        "additionalProperties": {"type": "string"},
                    },
                    "body_preview": {"type": "string", "maxLength": 2000},
                },
            },
            "failure": {
                "type": "object",
                "required": ["ok", "status", "error"],
                "additionalProperties": False,
                "properties": {
                    "ok": {"const": False},
                    "status": {"const": 0},
                    "error": {"type": "string"},
                },
            },
        },
    }


def receipt_schema_requiring_signature() -> dict:
    """
    A receipt contract the relay does not satisfy: it demands a field
    the relay never emits.
    """
    schema = copy.deepcopy(receipt_schema())
    schema["properties"]["trace"]["required"].append("signature")
    schema["properties"]["trace"]["properties"]["signature"] = {"type": "string"}
    return schema


def relay_request(url: str = "https://api.example.com/data", **payload) -> dict:
    return {
        "x402": {"tok": "a"},
        "trace": {"request_id": "r1"},
        "payload": {"url": url, **payload},
    }
