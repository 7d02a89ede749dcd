"""specinvoke -- Call the operations of an OpenAPI 3 document.

This package turns an OpenAPI 3 document into a collection of callable
operations.  Calling an operation with parameter values produces a
deferred invocation; running it against an environment (credentials, base
URL, request executor) builds a complete request -- path, query string,
headers and body serialized per the document -- and sends it.

Typical usage::

    from specinvoke import Environment, create_api

    api = create_api(document, url="https://api.example.com", logging=True)
    response = await api.getUser({"id": "foxfriends"})(
        Environment(credentials={"bearerAuth": "token"})
    )

References (``$ref``), including ones into external documents, are
resolved lazily when an operation runs and cached per built API.

Modules:
    api: Assemble a document into callable operations.
    invoker: The per-operation invocation pipeline.
    models: Pydantic models shared across the entire package.
    parser: Document loading and ``$ref`` resolution.
    request: Parameter serialization and content negotiation.
    auth: Security requirement matching and credential placement.
    client: Request executors backed by httpx.
    app: Typer command line.
"""

__version__ = "0.1.0"

from specinvoke.api import Api, create_api, execute, hosted, resolve_and_create  # noqa: E402
from specinvoke.models import ApiConfig, BasicCredentials, Environment, PreparedRequest  # noqa: E402

__all__ = [
    "Api",
    "ApiConfig",
    "BasicCredentials",
    "Environment",
    "PreparedRequest",
    "__version__",
    "create_api",
    "execute",
    "hosted",
    "resolve_and_create",
]
