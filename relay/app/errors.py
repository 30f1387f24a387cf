"""
Error taxonomy for the contract relay.

Two families exist:

- RelayStartupError: raised while resolving, fetching or compiling the
  request/receipt contracts. Always fatal; the process must not begin
  serving the relay route.
- RelayRequestError: raised by the per-request pipeline. Each carries the
  HTTP status and the `{error, details}` body it is rendered as.

Failures of the relayed outbound call are NOT errors here. They are a
legitimate outcome and end up in a (schema-valid) failure receipt.
"""

from __future__ import annotations

from typing import Any, Optional


# ----------------------------------------------------------------------
# Startup (fatal)
# ----------------------------------------------------------------------

class RelayStartupError(RuntimeError):
    """Base class for contract-loading failures."""


class ConfigurationError(RelayStartupError):
    """Neither complete schema source is configured."""


class NoResolverError(RelayStartupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No resolver for {name}")
        self.name = name


class MissingRecordsError(RelayStartupError):
    def __init__(self, name: str, missing: list[str]) -> None:
        super().__init__(
            f"Missing {' / '.join(missing)} on {name}"
        )
        self.name = name
        self.missing = missing


class DocumentFetchError(RelayStartupError):
    """The document source answered with a non-success HTTP status."""

    def __init__(self, status: int, url: str) -> None:
        super().__init__(f"HTTP {status} fetching {url}")
        self.status = status
        self.url = url


class DocumentTransportError(RelayStartupError):
    """The document source could not be reached."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Transport failure fetching {url}: {reason}")
        self.url = url


class DocumentDecodeError(RelayStartupError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Document at {url} is not valid JSON")
        self.url = url


class SchemaCompileError(RelayStartupError):
    """A schema document could not be turned into a validator."""


# ----------------------------------------------------------------------
# Per-request
# ----------------------------------------------------------------------

class RelayRequestError(Exception):
    """
    A per-request rejection, rendered as `{error, details}`.

    `details` is omitted from the body when it is None.
    """

    status_code: int = 400
    error: str = "bad request"

    def __init__(self, details: Optional[Any] = None) -> None:
        super().__init__(self.error)
        self.details = details

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


class ContractsNotLoadedError(RelayRequestError):
    status_code = 503
    error = "schemas not loaded"


class InvalidRequestBodyError(RelayRequestError):
    status_code = 400
    error = "invalid json body"


class RequestBodyTooLargeError(RelayRequestError):
    status_code = 413
    error = "request body too large"


class RequestSchemaInvalidError(RelayRequestError):
    status_code = 400
    error = "request schema invalid"


class BlockedUrlError(RelayRequestError):
    status_code = 400
    error = "blocked or missing url"


class ReceiptSchemaInvalidError(RelayRequestError):
    """
    The relay's own receipt does not satisfy the resolved receipt schema.

    Surfaced verbatim (500 + validator errors) so the mapping between
    outcome and receipt can be patched against the published contract.
    """

    status_code = 500
    error = "receipt schema invalid (runtime mismatch)"
