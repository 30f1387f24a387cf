"""
Schema location resolution.

Precedence:
    1. REQ_URL + RCPT_URL, used as-is (trimmed)
    2. ENS_NAME + RPC_URL, delegated to the naming resolver

Runs once at startup; never per request.
"""

from __future__ import annotations

import logging
from typing import Optional

from relay.app.contracts.naming import NamingResolver
from relay.app.core.config import Settings
from relay.app.errors import ConfigurationError
from relay.app.schemas.contracts import SchemaLocationPair

logger = logging.getLogger("relay.contracts.locations")


class SchemaLocationResolver:
    def __init__(
        self,
        settings: Settings,
        naming_resolver: Optional[NamingResolver] = None,
    ) -> None:
        self._settings = settings
        self._naming_resolver = naming_resolver or NamingResolver()

    async def resolve(self) -> SchemaLocationPair:
        settings = self._settings

        if settings.has_direct_schema_urls:
            logger.info("schema_locations_from_config")
            return SchemaLocationPair(
                request_schema_url=settings.req_url.strip(),
                receipt_schema_url=settings.rcpt_url.strip(),
            )

        if not settings.has_name_lookup:
            raise ConfigurationError(
                "Set (REQ_URL + RCPT_URL) OR (ENS_NAME + RPC_URL)."
            )

        logger.info(
            "schema_locations_from_name",
            extra={"ens_name": settings.ens_name},
        )
        return await self._naming_resolver.resolve(
            settings.ens_name,
            settings.rpc_url,
        )
