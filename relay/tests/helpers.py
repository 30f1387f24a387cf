from typing import Callable, Dict, List, Optional

import httpx

from relay.app.contracts.compiler import SchemaCompiler
from relay.app.contracts.documents import DocumentFetcher
from relay.app.contracts.loader import ContractValidators
from relay.app.core.config import Settings
from relay.app.main import create_app
from relay.app.schemas.contracts import SchemaLocationPair
from relay.app.services.fetch_executor import FetchExecutor
from relay.tests.fixtures.schema_factory import (
    RECEIPT_SCHEMA_URL,
    REQUEST_SCHEMA_URL,
    receipt_schema,
    request_schema,
)


class RecordingHandler:
    """
    MockTransport handler that records every request it sees.

    Used ONLY in tests to assert whether (and how often) the network
    was touched.
    """

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]):
        self._respond = respond
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)

    @property
    def urls(self) -> List[str]:
        return [str(r.url) for r in self.requests]


def document_server(documents: Dict[str, object]) -> RecordingHandler:
    """Serve JSON documents by exact URL; anything else is a 404."""

    def respond(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url in documents:
            return httpx.Response(200, json=documents[url])
        return httpx.Response(404, text="not found")

    return RecordingHandler(respond)


def fetcher_for(handler: Callable[[httpx.Request], httpx.Response]) -> DocumentFetcher:
    return DocumentFetcher(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def unreachable(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected network call to {request.url}")


def direct_settings(**overrides) -> Settings:
    values = {
        "req_url": REQUEST_SCHEMA_URL,
        "rcpt_url": RECEIPT_SCHEMA_URL,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


async def compile_contracts(
    request_doc: Optional[dict] = None,
    receipt_doc: Optional[dict] = None,
) -> ContractValidators:
    compiler = SchemaCompiler(fetcher_for(unreachable))
    return ContractValidators(
        locations=SchemaLocationPair(
            request_schema_url=REQUEST_SCHEMA_URL,
            receipt_schema_url=RECEIPT_SCHEMA_URL,
        ),
        request=await compiler.compile(request_doc or request_schema()),
        receipt=await compiler.compile(receipt_doc or receipt_schema()),
    )


async def build_ready_app(
    outbound: Callable[[httpx.Request], httpx.Response],
    *,
    receipt_doc: Optional[dict] = None,
):
    """
    Relay app with contracts installed and the outbound network mocked.

    The lifespan is not run; state is wired exactly as it would leave it.
    """
    app = create_app(settings=direct_settings())
    app.state.fetch_executor = FetchExecutor(
        httpx.AsyncClient(transport=httpx.MockTransport(outbound))
    )
    app.state.relay_state.install(await compile_contracts(receipt_doc=receipt_doc))
    return app


def relay_client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://relay.test",
    )
