"""Assemble an OpenAPI 3 document into a collection of callable operations.

:func:`create_api` is the main entry point.  It checks the document's
``openapi`` version, selects every default capability once, and builds one
:class:`~specinvoke.invoker.Operation` per ``(path, method)`` pair::

    api = create_api(document, url="https://petstore.example.com", logging=True)
    response = await api.getPetById({"petId": 7})(Environment())

Nothing is dereferenced while building; references are resolved when an
operation runs, and the results are cached by the API's resolver until
:meth:`Api.dispose` is called.

:func:`resolve_and_create` dereferences the whole document up front and
:func:`hosted` loads the document from a URL or file first.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

from pydantic import ValidationError

from specinvoke.client.executor import send_request
from specinvoke.exceptions import ConfigError, SpecParseError
from specinvoke.invoker import Invocation, InvocationContext, Operation
from specinvoke.models import APIInfo, ApiConfig, Environment, HTTPMethod
from specinvoke.output import debug, get_output
from specinvoke.parser.loader import is_remote, load_document_async, validate_openapi_version
from specinvoke.parser.resolver import ReferenceResolver
from specinvoke.request.params import expand_template
from specinvoke.validation import make_validator


class Api(Mapping[str, Operation]):
    """Operations of a built API, keyed by operation id.

    Operations are reachable by subscription (``api["getUser"]``) and, when
    the id is a valid identifier, as attributes (``api.getUser``).
    """

    def __init__(
        self,
        operations: dict[str, Operation],
        context: InvocationContext,
        openapi_version: str,
    ) -> None:
        self._operations = operations
        self.context = context
        self.openapi_version = openapi_version

    def __getitem__(self, operation_id: str) -> Operation:
        return self._operations[operation_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __getattr__(self, name: str) -> Operation:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._operations[name]
        except KeyError:
            raise AttributeError(f"API has no operation '{name}'") from None

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | {k for k in self._operations if k.isidentifier()})

    def __repr__(self) -> str:
        info = self.context.info
        return f"Api({info.title!r}@{info.version!r}, operations={len(self)})"

    @property
    def resolver(self) -> ReferenceResolver:
        return self.context.resolver

    @property
    def info(self) -> APIInfo:
        return self.context.info

    def dispose(self) -> None:
        """Release the reference resolution cache of this API."""
        self.context.resolver.clear()


def _merge_config(config: Optional[ApiConfig], overrides: Mapping[str, Any]) -> ApiConfig:
    config = config or ApiConfig()
    if not overrides:
        return config
    try:
        return ApiConfig.model_validate({**dict(config), **overrides})
    except ValidationError as exc:
        raise ConfigError(f"Invalid API configuration: {exc}") from exc


def _warning_sink(logger: Any, info: APIInfo) -> Callable[[str], None]:
    prefix = f"OpenAPI ({info.title}@{info.version}): "

    def warn(message: str) -> None:
        logger.warning(prefix + message)

    return warn


def create_api(
    document: Mapping[str, Any],
    config: Optional[ApiConfig] = None,
    **overrides: Any,
) -> Api:
    """Build the operations of an OpenAPI 3 document.

    Args:
        document: The parsed document.  Never mutated.
        config: Construction options; unset capabilities use the defaults
            listed on :class:`~specinvoke.models.ApiConfig`.
        **overrides: Individual :class:`~specinvoke.models.ApiConfig` fields,
            applied on top of *config*.

    Returns:
        An :class:`Api` mapping operation ids to operations.  Operations
        without an ``operationId`` are keyed ``"<method> <path>"``.

    Raises:
        SpecParseError: If the document is not OpenAPI 3 or a path item
            cannot be followed.
        ConfigError: If *overrides* name unknown or invalid options.
    """
    config = _merge_config(config, overrides)
    version = validate_openapi_version(document)
    info = APIInfo.model_validate(document.get("info") or {})

    resolver = ReferenceResolver(
        document,
        document_uri=config.document_uri,
        loader=config.document_loader or load_document_async,
    )
    warn = None
    if config.logging:
        warn = _warning_sink(config.logger or get_output(), info)

    components = document.get("components") or {}
    context = InvocationContext(
        resolver=resolver,
        request_executor=config.request_executor or send_request,
        validator=config.validator or make_validator(version),
        expander=config.expander or expand_template,
        url=config.url,
        warn=warn,
        info=info,
        security_schemes=components.get("securitySchemes") or {},
        default_security=document.get("security") or [],
        credential_appliers=config.credential_appliers,
    )

    operations: dict[str, Operation] = {}
    for path, raw_item in (document.get("paths") or {}).items():
        item = resolver.follow(raw_item)
        if not isinstance(item, Mapping):
            raise SpecParseError(f"Path item for '{path}' is not an object")
        shared = item.get("parameters") or []
        for method in HTTPMethod:
            definition = item.get(method.value)
            if definition is None:
                continue
            operation = Operation(context, method.value, path, definition, shared)
            if operation.operation_id in operations:
                debug(f"Duplicate operation id '{operation.operation_id}', keeping {method.value} {path}")
            operations[operation.operation_id] = operation

    debug(f"Built {len(operations)} operations for {info.title}@{info.version}")
    return Api(operations, context, version)


async def resolve_and_create(
    document: Mapping[str, Any],
    config: Optional[ApiConfig] = None,
    **overrides: Any,
) -> Api:
    """Build the API and dereference the whole document up front.

    Every external document is fetched before this returns, so later calls
    never wait on the network for references.

    Raises:
        ReferenceResolutionError: If any reference in the document is broken.
    """
    api = create_api(document, config, **overrides)
    await api.resolver.dereference(document)
    return api


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


async def hosted(
    source: str,
    config: Optional[ApiConfig] = None,
    **overrides: Any,
) -> Api:
    """Load a document from a URL or file path and build its API.

    *source* becomes the base for relative external references.  For
    remote documents the base URL of requests defaults to *source*'s
    origin, e.g. ``https://api.example.com`` for
    ``https://api.example.com/openapi.json``.

    Raises:
        SpecParseError: If the document cannot be loaded or is not OpenAPI 3.
    """
    config = _merge_config(config, overrides)
    defaults: dict[str, Any] = {}
    if not config.document_uri:
        defaults["document_uri"] = source
    if config.url is None and is_remote(source):
        defaults["url"] = _origin(source)
    if defaults:
        config = config.model_copy(update=defaults)

    loader = config.document_loader or load_document_async
    document = await loader(source)
    return create_api(document, config)


async def execute(environment: Optional[Environment], invocation: Invocation) -> Any:
    """Run a deferred *invocation* against *environment*."""
    return await invocation(environment)
