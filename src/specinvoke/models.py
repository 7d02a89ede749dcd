"""Canonical models shared across all specinvoke modules.

This is the single source of truth for data shapes in the project.  The
models fall into three groups:

**OpenAPI definition models** -- typed views over fully dereferenced pieces
of the document, built at call time:
    :class:`ParameterDefinition`, :class:`MediaTypeDefinition`,
    :class:`RequestBodyDefinition`, the security scheme variants
    (:class:`HttpSecurityScheme`, :class:`ApiKeySecurityScheme`,
    :class:`OAuth2SecurityScheme`, :class:`OpenIdConnectSecurityScheme`),
    :class:`BasicCredentials` and :class:`APIInfo`.

**Configuration models** -- supplied by the caller when building an API or
invoking an operation:
    :class:`ApiConfig`, :class:`Environment` and :class:`CallOptions`.

**Request model** -- handed to the request executor:
    :class:`PreparedRequest`.

All models use Pydantic v2.  Definition models accept OpenAPI's camelCase
keys through aliases and keep unknown keys (``description``, ``example``,
...) in ``model_extra``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Annotated, Any, Callable, Literal, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from specinvoke.exceptions import SpecParseError


# --- OpenAPI enums ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI 3.x path-item objects."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    HEAD = "head"
    OPTIONS = "options"
    TRACE = "trace"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per OpenAPI ``in`` field."""

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"


_DEFAULT_STYLES: dict[ParameterLocation, str] = {
    ParameterLocation.PATH: "simple",
    ParameterLocation.QUERY: "form",
    ParameterLocation.HEADER: "simple",
    ParameterLocation.COOKIE: "form",
}


# --- Definition models ---


class MediaTypeDefinition(BaseModel):
    """An OpenAPI *Media Type Object* (one entry of a ``content`` map)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    schema_: Optional[Any] = Field(default=None, alias="schema")


class ParameterDefinition(BaseModel):
    """An OpenAPI *Parameter Object* after dereferencing.

    ``style`` and ``explode`` stay ``None`` when the document omits them;
    :attr:`effective_style` and :attr:`effective_explode` apply the OpenAPI
    defaults for the parameter's location.  Exactly one of ``schema`` and
    ``content`` must be present.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    location: ParameterLocation = Field(alias="in")
    description: Optional[str] = None
    required: bool = False
    deprecated: bool = False
    style: Optional[str] = None
    explode: Optional[bool] = None
    allow_reserved: bool = Field(default=False, alias="allowReserved")
    allow_empty_value: bool = Field(default=False, alias="allowEmptyValue")
    schema_: Optional[Any] = Field(default=None, alias="schema")
    content: Optional[dict[str, MediaTypeDefinition]] = None

    @model_validator(mode="after")
    def _schema_xor_content(self) -> ParameterDefinition:
        if (self.schema_ is None) == (self.content is None):
            raise ValueError(
                f"parameter '{self.name}' must define exactly one of 'schema' or 'content'"
            )
        return self

    @property
    def key(self) -> tuple[str, str]:
        """The ``(name, in)`` pair that identifies the parameter within an operation."""
        return self.name, self.location.value

    @property
    def effective_style(self) -> str:
        return self.style or _DEFAULT_STYLES[self.location]

    @property
    def effective_explode(self) -> bool:
        if self.explode is not None:
            return self.explode
        return self.effective_style == "form"

    def schema_for_validation(self) -> Any:
        """Return the schema a value for this parameter should satisfy.

        Parameters described with ``content`` use the schema of their first
        (and, per OpenAPI, only) media type.
        """
        if self.content:
            first = next(iter(self.content.values()))
            return first.schema_
        return self.schema_


class RequestBodyDefinition(BaseModel):
    """An OpenAPI *Request Body Object* after dereferencing."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    required: bool = False
    description: Optional[str] = None
    content: dict[str, MediaTypeDefinition] = Field(default_factory=dict)


class HttpSecurityScheme(BaseModel):
    """``type: http`` scheme -- ``basic``, ``bearer`` or any other RFC 7235 scheme."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: Literal["http"] = "http"
    scheme: str
    bearer_format: Optional[str] = Field(default=None, alias="bearerFormat")
    description: Optional[str] = None


class ApiKeySecurityScheme(BaseModel):
    """``type: apiKey`` scheme -- a named key sent in a header, query or cookie."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: Literal["apiKey"] = "apiKey"
    name: str
    location: Literal["query", "header", "cookie"] = Field(alias="in")
    description: Optional[str] = None


class OAuth2SecurityScheme(BaseModel):
    """``type: oauth2`` scheme.  Flows are kept for reference only."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: Literal["oauth2"] = "oauth2"
    flows: dict[str, Any] = Field(default_factory=dict)
    description: Optional[str] = None


class OpenIdConnectSecurityScheme(BaseModel):
    """``type: openIdConnect`` scheme."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: Literal["openIdConnect"] = "openIdConnect"
    open_id_connect_url: Optional[str] = Field(default=None, alias="openIdConnectUrl")
    description: Optional[str] = None


SecurityScheme = Annotated[
    Union[
        HttpSecurityScheme,
        ApiKeySecurityScheme,
        OAuth2SecurityScheme,
        OpenIdConnectSecurityScheme,
    ],
    Field(discriminator="type"),
]

_SECURITY_SCHEME_ADAPTER: TypeAdapter[Any] = TypeAdapter(SecurityScheme)


class BasicCredentials(BaseModel):
    """Username/password pair for ``http`` ``basic`` schemes.

    A plain mapping with ``user`` and ``pass`` keys is accepted wherever
    this model is.
    """

    model_config = ConfigDict(populate_by_name=True)

    user: str
    password: str = Field(alias="pass")


class APIInfo(BaseModel):
    """The parts of the *Info Object* used to label warnings."""

    model_config = ConfigDict(extra="allow")

    title: str = ""
    version: str = ""


# --- Parsing helpers ---


def parse_parameter(raw: Any) -> ParameterDefinition:
    """Validate a dereferenced parameter into a :class:`ParameterDefinition`.

    Raises:
        SpecParseError: If the parameter object is malformed.
    """
    try:
        return ParameterDefinition.model_validate(raw)
    except ValidationError as exc:
        raise SpecParseError(f"Invalid parameter definition: {exc}") from exc


def parse_request_body(raw: Any) -> Optional[RequestBodyDefinition]:
    """Validate a dereferenced request body, passing ``None`` through.

    Raises:
        SpecParseError: If the request body object is malformed.
    """
    if raw is None:
        return None
    try:
        return RequestBodyDefinition.model_validate(raw)
    except ValidationError as exc:
        raise SpecParseError(f"Invalid request body definition: {exc}") from exc


def parse_security_scheme(raw: Any) -> Any:
    """Validate a dereferenced security scheme into its tagged variant.

    Returns:
        One of :class:`HttpSecurityScheme`, :class:`ApiKeySecurityScheme`,
        :class:`OAuth2SecurityScheme` or :class:`OpenIdConnectSecurityScheme`.

    Raises:
        SpecParseError: If ``type`` is unknown or required fields are missing.
    """
    try:
        return _SECURITY_SCHEME_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise SpecParseError(f"Invalid security scheme definition: {exc}") from exc


# --- Configuration models ---


class ApiConfig(BaseModel):
    """Construction-time configuration for :func:`~specinvoke.api.create_api`.

    Every capability is optional; ``None`` selects the built-in default,
    chosen once when the API is built:

    * ``logger`` -- the global :class:`~specinvoke.output.OutputManager`.
    * ``request_executor`` -- :func:`~specinvoke.client.executor.send_request`
      (``httpx.AsyncClient``).
    * ``validator`` -- :func:`~specinvoke.validation.make_validator` for the
      document's OpenAPI version (``jsonschema``).
    * ``expander`` -- :func:`~specinvoke.request.params.expand_template`
      (``uritemplate``).
    * ``document_loader`` -- :func:`~specinvoke.parser.loader.load_document_async`.

    ``credential_appliers`` maps a security scheme *name* to a callable
    ``(scheme, credential) -> SecurityResult`` replacing the built-in
    placement for that scheme, e.g. an OAuth2 API expecting its token in a
    query parameter.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    url: Optional[str] = Field(default=None, description="Base URL prepended to every path")
    logging: bool = Field(default=False, description="Emit advisory warnings")
    logger: Optional[Any] = Field(
        default=None, description="Object with a warning(message) method"
    )
    request_executor: Optional[Callable[..., Any]] = None
    validator: Optional[Callable[..., Any]] = None
    expander: Optional[Callable[..., Any]] = None
    document_loader: Optional[Callable[..., Any]] = None
    document_uri: str = Field(
        default="", description="URI of the document, base for relative external $refs"
    )
    credential_appliers: dict[str, Callable[..., Any]] = Field(default_factory=dict)


class Environment(BaseModel):
    """Call-time environment supplied when a deferred invocation runs."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    credentials: dict[str, Any] = Field(default_factory=dict)
    url: Optional[str] = Field(default=None, description="Overrides the API base URL")
    request_executor: Optional[Callable[..., Any]] = None


class CallOptions(BaseModel):
    """Request options captured when an operation is called."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    content_type: Optional[str] = None


# --- Request model ---


@dataclass
class PreparedRequest:
    """A fully formed request, ready for the request executor.

    Attributes:
        method: Upper-case HTTP method.
        url: Absolute URL including the serialized query string.
        headers: Case-insensitive request headers.
        body: Request body -- a JSON string for ``application/json``,
            otherwise whatever the caller supplied.
        operation_id: The operation this request was built for.
    """

    method: str
    url: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: Any = None
    operation_id: str = ""
