"""
One-shot contract loading.

Resolves the schema location pair, fetches both documents, and compiles
the request and receipt validators. Runs once at startup, before the
relay route accepts traffic; any failure here is fatal.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional

from relay.app.contracts.compiler import CompiledValidator, SchemaCompiler
from relay.app.contracts.documents import DocumentFetcher, to_http_url
from relay.app.contracts.locations import SchemaLocationResolver
from relay.app.contracts.naming import NamingResolver
from relay.app.core.config import Settings
from relay.app.schemas.contracts import SchemaLocationPair

logger = logging.getLogger("relay.contracts.loader")


class ContractValidators(NamedTuple):
    locations: SchemaLocationPair
    request: CompiledValidator
    receipt: CompiledValidator


async def load_contracts(
    *,
    settings: Settings,
    fetcher: DocumentFetcher,
    naming_resolver: Optional[NamingResolver] = None,
) -> ContractValidators:
    """
    Produce both compiled validators.

    Both are compiled before either is returned, so a caller installs
    them together or not at all.
    """
    locations = await SchemaLocationResolver(
        settings,
        naming_resolver=naming_resolver,
    ).resolve()

    compiler = SchemaCompiler(fetcher)

    request_schema = await fetcher.fetch(locations.request_schema_url)
    receipt_schema = await fetcher.fetch(locations.receipt_schema_url)

    request_validator = await compiler.compile(
        request_schema,
        base_uri=to_http_url(locations.request_schema_url),
    )
    receipt_validator = await compiler.compile(
        receipt_schema,
        base_uri=to_http_url(locations.receipt_schema_url),
    )

    logger.info(
        "contracts_loaded",
        extra={
            "request_schema": locations.request_schema_url,
            "receipt_schema": locations.receipt_schema_url,
        },
    )

    return ContractValidators(
        locations=locations,
        request=request_validator,
        receipt=receipt_validator,
    )
