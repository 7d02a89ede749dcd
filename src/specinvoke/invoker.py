"""Operation invokers -- turn one OpenAPI operation into a callable.

Invoking an operation is a three-stage deferred pipeline:

1. **Build** -- :class:`Operation` is created once per ``(path, method)``
   when the API is assembled.  It keeps the raw, possibly unresolved,
   parameter lists, request body and security requirement.
2. **Call** -- ``operation(params, headers=..., body=...)`` captures the
   caller's values and returns an :class:`Invocation` without doing any
   work.
3. **Execution** -- ``await invocation(environment)`` dereferences
   parameters, request body and security schemes, builds the request and
   hands it to the request executor, returning its result unmodified.

:meth:`Invocation.prepare` stops after building the request, which is
useful for inspection and dry runs.

Everything an invoker needs from the built API lives in one immutable
:class:`InvocationContext`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import httpx

from specinvoke.auth import resolve_security
from specinvoke.models import (
    APIInfo,
    CallOptions,
    Environment,
    ParameterDefinition,
    ParameterLocation,
    PreparedRequest,
    parse_parameter,
    parse_request_body,
    parse_security_scheme,
)
from specinvoke.parser.resolver import ReferenceResolver
from specinvoke.request import (
    build_path,
    build_query,
    encode_component,
    negotiate_body,
    serialize_headers,
)

Warn = Callable[[str], None]


@dataclass(frozen=True)
class InvocationContext:
    """Shared, read-only state of one built API.

    Attributes:
        resolver: The API's reference resolver; owns the resolution cache.
        request_executor: Default ``async executor(request)``.
        validator: ``validator(schema, value) -> bool`` for advisory checks.
        expander: RFC 6570 template expander for path and header values.
        url: Default base URL, or ``None`` for relative request URLs.
        warn: Warning sink, already prefixed with the API title and
            version.  ``None`` when logging is disabled.
        info: Title and version of the document.
        security_schemes: ``components.securitySchemes``, unresolved.
        default_security: The document-level ``security`` requirement.
        credential_appliers: Per-scheme-name credential placement overrides.
    """

    resolver: ReferenceResolver
    request_executor: Callable[..., Any]
    validator: Callable[[Any, Any], bool]
    expander: Callable[[str, Mapping[str, Any]], str]
    url: Optional[str] = None
    warn: Optional[Warn] = None
    info: APIInfo = field(default_factory=APIInfo)
    security_schemes: Mapping[str, Any] = field(default_factory=dict)
    default_security: Sequence[Mapping[str, Any]] = ()
    credential_appliers: Mapping[str, Callable[..., Any]] = field(default_factory=dict)


def merge_parameters(
    shared: Sequence[ParameterDefinition],
    specific: Sequence[ParameterDefinition],
) -> list[ParameterDefinition]:
    """Merge path-item and operation parameters.

    Operation-level parameters override path-item parameters with the same
    name and location.  Path-item parameters keep their position; new
    operation parameters are appended in order.
    """
    overrides = {parameter.key: parameter for parameter in specific}
    merged: list[ParameterDefinition] = []
    seen: set[tuple[str, str]] = set()
    for parameter in shared:
        merged.append(overrides.get(parameter.key, parameter))
        seen.add(parameter.key)
    for parameter in specific:
        if parameter.key not in seen:
            merged.append(parameter)
            seen.add(parameter.key)
    return merged


class Operation:
    """A callable OpenAPI operation.

    Args:
        context: The shared state of the built API.
        method: HTTP method, any case.
        path: Path template, e.g. ``/users/{id}``.
        definition: The raw *Operation Object*.
        shared_parameters: The raw ``parameters`` of the enclosing path item.

    Example::

        invocation = api.getUser({"id": "foxfriends"})
        response = await invocation(Environment(credentials={"token": "abc"}))
    """

    def __init__(
        self,
        context: InvocationContext,
        method: str,
        path: str,
        definition: Mapping[str, Any],
        shared_parameters: Sequence[Any] = (),
    ) -> None:
        self.context = context
        self.method = method.lower()
        self.path = path
        self.definition = definition
        self.operation_id: str = definition.get("operationId") or f"{self.method} {path}"
        self.deprecated = bool(definition.get("deprecated", False))
        self.summary: Optional[str] = definition.get("summary")
        self._shared_parameters = list(shared_parameters)
        self._parameters = list(definition.get("parameters") or [])
        self.request_body = definition.get("requestBody")
        # An explicit empty list disables security for this operation.
        if "security" in definition:
            self.security: Sequence[Mapping[str, Any]] = definition["security"] or []
        else:
            self.security = context.default_security or []

    def __call__(
        self,
        params: Optional[Mapping[str, Any]] = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
        content_type: Optional[str] = None,
    ) -> Invocation:
        """Capture call-site values; nothing is resolved or sent yet."""
        options = CallOptions(headers=dict(headers or {}), body=body, content_type=content_type)
        return Invocation(self, dict(params or {}), options)

    def __repr__(self) -> str:
        return f"Operation({self.operation_id!r}, {self.method.upper()} {self.path})"

    async def parameters(self) -> list[ParameterDefinition]:
        """Dereference, parse and merge this operation's parameters.

        Raises:
            ReferenceResolutionError: If a parameter reference cannot be resolved.
            SpecParseError: If a parameter definition is malformed.
        """
        resolver = self.context.resolver
        shared, specific = await asyncio.gather(
            asyncio.gather(*(resolver.dereference(raw) for raw in self._shared_parameters)),
            asyncio.gather(*(resolver.dereference(raw) for raw in self._parameters)),
        )
        return merge_parameters(
            [parse_parameter(raw) for raw in shared],
            [parse_parameter(raw) for raw in specific],
        )


class Invocation:
    """A deferred call of an :class:`Operation` with fixed values.

    Awaiting ``invocation(environment)`` builds and sends the request.
    The same invocation may be run any number of times, against different
    environments.
    """

    def __init__(self, operation: Operation, params: dict[str, Any], options: CallOptions) -> None:
        self.operation = operation
        self.params = params
        self.options = options

    def __repr__(self) -> str:
        return f"Invocation({self.operation.operation_id!r}, params={sorted(self.params)})"

    async def __call__(self, environment: Optional[Environment] = None) -> Any:
        """Build the request and run it through the request executor.

        The executor of *environment* wins over the API's default.

        Returns:
            Whatever the request executor returns.
        """
        environment = environment or Environment()
        request = await self.prepare(environment)
        executor = environment.request_executor or self.operation.context.request_executor
        return await executor(request)

    async def prepare(self, environment: Optional[Environment] = None) -> PreparedRequest:
        """Build the request this invocation would send, without sending it.

        Raises:
            ReferenceResolutionError: If a reference cannot be resolved.
            SpecParseError: If a parameter, request body or security scheme
                is malformed.
        """
        environment = environment or Environment()
        operation = self.operation
        context = operation.context
        operation_id = operation.operation_id

        parameters, raw_body = await asyncio.gather(
            operation.parameters(),
            context.resolver.dereference(operation.request_body),
        )
        request_body = parse_request_body(raw_body)
        schemes = await self._security_schemes()

        warn = context.warn
        if warn is not None:
            self._check(parameters, warn)

        # Parameters are fully resolved before any serialization starts.
        headers = httpx.Headers(self.options.headers)
        serialize_headers(parameters, self.params, headers, context.expander)
        path = build_path(operation.path, parameters, self.params, context.expander)
        query = build_query(parameters, self.params)

        body = negotiate_body(
            operation.method,
            request_body,
            self.options,
            headers,
            operation_id,
            warn=warn,
            validator=context.validator,
        )

        if operation.security:
            result = resolve_security(
                operation.security,
                schemes,
                environment.credentials,
                context.credential_appliers,
            )
            if result is None:
                if warn is not None:
                    warn(f"No required set of security schemes was satisfied for {operation_id}")
            else:
                headers.update(result.headers)
                if result.params:
                    pairs = "&".join(
                        f"{encode_component(name)}={encode_component(value)}"
                        for name, value in result.params
                    )
                    query = "&".join(filter(None, [query, pairs]))

        base = environment.url or context.url or ""
        url = base.rstrip("/") + path
        if query:
            url = f"{url}?{query}"

        return PreparedRequest(
            method=operation.method.upper(),
            url=url,
            headers=headers,
            body=body,
            operation_id=operation_id,
        )

    async def _security_schemes(self) -> dict[str, Any]:
        """Dereference and parse the schemes named by the operation's requirement."""
        operation = self.operation
        if not operation.security:
            return {}
        resolved = await operation.context.resolver.dereference(
            operation.context.security_schemes
        )
        names = {name for requirement in operation.security for name in requirement}
        return {
            name: parse_security_scheme(resolved[name])
            for name in sorted(names)
            if name in resolved
        }

    def _check(self, parameters: Sequence[ParameterDefinition], warn: Warn) -> None:
        """Emit advisory warnings about the operation and parameter values."""
        operation = self.operation
        operation_id = operation.operation_id
        validator = operation.context.validator

        if operation.deprecated:
            warn(f"Invoking deprecated operation {operation_id}")

        for parameter in parameters:
            value = self.params.get(parameter.name)
            if value is None:
                # Cookies are managed by the client and cannot be checked.
                if parameter.required and parameter.location is not ParameterLocation.COOKIE:
                    warn(f"Missing required parameter {parameter.name} to {operation_id}")
                continue
            schema = parameter.schema_for_validation()
            if schema is not None and not validator(schema, value):
                warn(
                    f"Value provided for {parameter.name} to {operation_id} "
                    "does not satisfy the expected schema"
                )
