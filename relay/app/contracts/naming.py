"""
Name-based discovery of the schema location pair.

A human-readable name (ENS) carries two text records pointing at the
request and receipt schema documents. The naming protocol itself is an
external collaborator; this module only needs "given a name and an RPC
endpoint, return two URLs or fail".
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Protocol

from web3 import AsyncHTTPProvider, AsyncWeb3

from relay.app.errors import MissingRecordsError, NoResolverError
from relay.app.schemas.contracts import SchemaLocationPair

logger = logging.getLogger("relay.contracts.naming")


REQUEST_SCHEMA_RECORD = "cl.schema.request"
RECEIPT_SCHEMA_RECORD = "cl.schema.receipt"


class TextRecordSource(Protocol):
    """
    The subset of web3's async ENS module the resolver relies on.
    """

    async def resolver(self, name: str) -> Optional[Any]:
        ...

    async def get_text(self, name: str, key: str) -> Optional[str]:
        ...


def web3_text_records(rpc_url: str) -> TextRecordSource:
    """Async ENS module bound to a JSON-RPC endpoint."""
    w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
    return w3.ens


class NamingResolver:
    def __init__(
        self,
        source_factory: Callable[[str], TextRecordSource] = web3_text_records,
    ) -> None:
        self._source_factory = source_factory

    async def resolve(self, name: str, rpc_url: str) -> SchemaLocationPair:
        """
        Look up both schema text records for `name`.

        Raises:
            NoResolverError: no resolver is registered for the name.
            MissingRecordsError: either record is absent or blank.
        """
        source = self._source_factory(rpc_url)

        resolver = await source.resolver(name)
        if not resolver:
            raise NoResolverError(name)

        request_url = await self._read_record(source, name, REQUEST_SCHEMA_RECORD)
        receipt_url = await self._read_record(source, name, RECEIPT_SCHEMA_RECORD)

        missing = [
            record
            for record, value in (
                (REQUEST_SCHEMA_RECORD, request_url),
                (RECEIPT_SCHEMA_RECORD, receipt_url),
            )
            if not value
        ]
        if missing:
            raise MissingRecordsError(name, missing)

        logger.info(
            "schema_records_resolved",
            extra={"ens_name": name, "request": request_url, "receipt": receipt_url},
        )

        return SchemaLocationPair(
            request_schema_url=request_url,
            receipt_schema_url=receipt_url,
        )

    @staticmethod
    async def _read_record(source: TextRecordSource, name: str, key: str) -> str:
        value = await source.get_text(name, key)
        return (value or "").strip()
