import logging
import sys

from contextlib import asynccontextmanager
from importlib.metadata import version, PackageNotFoundError
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import ORJSONResponse, PlainTextResponse

from relay.app.api.routes import router as relay_router
from relay.app.contracts.documents import DocumentFetcher
from relay.app.contracts.loader import load_contracts
from relay.app.contracts.naming import NamingResolver
from relay.app.core.config import Settings, get_settings
from relay.app.errors import RelayRequestError, RelayStartupError
from relay.app.services.fetch_executor import FetchExecutor
from relay.app.state import RelayState

logger = logging.getLogger("relay.main")


def get_app_version() -> str:
    """
    Resolve application version deterministically.

    Falls back to the source-tree version when not installed.
    """
    try:
        return version("contract-relay")
    except PackageNotFoundError:
        return "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Guarantees:
    - Fail-fast startup if configuration or contract loading is invalid
    - Both validators installed together, before the relay route serves
    - Pre-allocated shared transports, closed on shutdown
    """
    logger.info(
        "relay_startup_begin",
        extra={
            "service": "contract-relay",
            "version": get_app_version(),
        },
    )

    # ------------------------------------------------------------------
    # Load and validate configuration (FAIL FAST)
    # ------------------------------------------------------------------
    try:
        settings: Settings = app.state.settings or get_settings()
    except Exception:
        logger.exception("invalid_relay_configuration")
        raise

    app.state.settings = settings

    # ------------------------------------------------------------------
    # Shared HTTP clients
    #
    # Notes:
    # - schema documents may sit behind gateway redirects
    # - the relayed call is bounded by its own cancel scope, so the
    #   outbound client carries no timeout of its own
    # ------------------------------------------------------------------
    app.state.document_client = httpx.AsyncClient(
        timeout=httpx.Timeout(timeout=30.0, connect=10.0),
        follow_redirects=True,
        headers={
            "User-Agent": f"contract-relay/{get_app_version()}",
        },
        transport=app.state.document_transport,
    )
    app.state.outbound_client = httpx.AsyncClient(
        timeout=None,
        follow_redirects=False,
        transport=app.state.outbound_transport,
    )

    app.state.document_fetcher = DocumentFetcher(app.state.document_client)
    app.state.fetch_executor = FetchExecutor(app.state.outbound_client)

    try:
        # --------------------------------------------------------------
        # Contract loading (FAIL FAST)
        # --------------------------------------------------------------
        try:
            validators = await load_contracts(
                settings=settings,
                fetcher=app.state.document_fetcher,
                naming_resolver=app.state.naming_resolver,
            )
        except RelayStartupError:
            logger.exception("contract_loading_failed")
            raise

        app.state.relay_state.install(validators)

        logger.info(
            "relay_ready",
            extra={
                "request_schema": validators.locations.request_schema_url,
                "receipt_schema": validators.locations.receipt_schema_url,
            },
        )

        yield
    finally:
        logger.info("relay_shutdown_begin")

        # Idempotent shutdown
        for name in ("document_client", "outbound_client"):
            try:
                await getattr(app.state, name).aclose()
            except Exception:
                logger.warning("http_client_shutdown_failed", extra={"client": name})


async def relay_error_handler(
    request: Request,
    exc: RelayRequestError,
) -> ORJSONResponse:
    """Render per-request rejections as `{error, details}`."""
    return ORJSONResponse(
        status_code=exc.status_code,
        content=exc.to_body(),
    )


async def health_check() -> PlainTextResponse:
    """
    Liveness probe.

    NOTE:
    - Does NOT require the contracts to be loaded
    - Does NOT perform outbound calls
    """
    return PlainTextResponse("ok")


def create_app(
    settings: Optional[Settings] = None,
    naming_resolver: Optional[NamingResolver] = None,
    document_transport: Optional[httpx.AsyncBaseTransport] = None,
    outbound_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Application factory for the contract relay.

    The relay state starts unready; the lifespan installs the compiled
    contracts once they have all loaded. Transports default to httpx's
    network transport when not given.
    """
    app = FastAPI(
        title="Contract Relay",
        description=(
            "Fetch relay enforcing externally published request "
            "and receipt JSON Schemas."
        ),
        version=get_app_version(),
        docs_url="/docs",
        redoc_url=None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.naming_resolver = naming_resolver
    app.state.document_transport = document_transport
    app.state.outbound_transport = outbound_transport
    app.state.relay_state = RelayState()

    app.add_exception_handler(RelayRequestError, relay_error_handler)

    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["Monitoring"],
        summary="Liveness probe",
        response_class=PlainTextResponse,
    )
    app.include_router(relay_router)
    return app


app = create_app()


def run() -> None:
    """Console entry point: configure logging and serve on PORT."""
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    uvicorn.run(
        create_app(settings=settings),
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
