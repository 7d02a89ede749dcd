"""Choose the request body's Content-Type and serialize JSON bodies.

The negotiator never invents a media type from the body's Python type.  The
Content-Type comes from, in order:

1. an explicit ``content_type`` call option or ``Content-Type`` header,
2. the only media type declared by the operation's ``requestBody``.

If neither applies the body is sent untouched and a warning is logged.
Only ``application/json`` bodies are transformed (``json.dumps``), after an
advisory validation against the declared schema.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

import httpx

from specinvoke.models import CallOptions, RequestBodyDefinition

# DELETE bodies are discouraged by OpenAPI but still allowed here.
CAN_HAVE_BODY = frozenset({"put", "post", "delete", "patch"})

Warn = Callable[[str], None]
SchemaValidator = Callable[[Any, Any], bool]


def _essence(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


def is_json_media_type(content_type: str) -> bool:
    """Return True for ``application/json``, ignoring parameters and case."""
    return _essence(content_type) == "application/json"


def negotiate_body(
    method: str,
    request_body: Optional[RequestBodyDefinition],
    options: CallOptions,
    headers: httpx.Headers,
    operation_id: str,
    warn: Optional[Warn] = None,
    validator: Optional[SchemaValidator] = None,
) -> Any:
    """Resolve the body to send and set its ``Content-Type`` header.

    Args:
        method: Lower-case HTTP method of the operation.
        request_body: The operation's dereferenced request body, if any.
        options: Call options holding the body and an optional content type.
        headers: Request headers; ``Content-Type`` is set here when resolved.
        operation_id: Used in warning messages.
        warn: Warning sink; ``None`` when logging is disabled.
        validator: ``validator(schema, value) -> bool`` used for the
            advisory JSON schema check.  Skipped when *warn* is ``None``.

    Returns:
        The body to send: a JSON string for ``application/json``, otherwise
        ``options.body`` unchanged.
    """
    body = options.body
    if method.lower() not in CAN_HAVE_BODY or request_body is None:
        return body

    def _warn(message: str) -> None:
        if warn is not None:
            warn(message)

    if body is None:
        if request_body.required:
            _warn(f"Missing required request body for {operation_id}")
        return body

    content_type = options.content_type or headers.get("content-type")
    if content_type is None and len(request_body.content) == 1:
        content_type = next(iter(request_body.content))
    if content_type is None:
        _warn(f"Could not determine Content-Type for {operation_id}")
        return body

    headers["Content-Type"] = content_type
    media_type = request_body.content.get(content_type)
    if media_type is None:
        # "application/json; charset=utf-8" still matches "application/json".
        essence = _essence(content_type)
        for declared, media in request_body.content.items():
            if _essence(declared) == essence:
                media_type = media
                break
    if media_type is None:
        _warn(f"Unsupported Content-Type {content_type} for {operation_id}")
        return body

    if not is_json_media_type(content_type):
        return body

    schema = media_type.schema_
    if warn is not None and validator is not None and schema is not None:
        if not validator(schema, body):
            warn(f"Provided JSON request body does not match schema for {operation_id}")
    return json.dumps(body)
