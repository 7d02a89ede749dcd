"""Advisory JSON Schema validation of parameter values and request bodies.

The invocation engine only ever *warns* about values that do not match
their schema; it never rejects a request.  :func:`make_validator` returns
the default ``validator(schema, value) -> bool`` capability for a document:
OpenAPI 3.0 schemas are checked with :class:`jsonschema.Draft4Validator`
(the closest draft to the 3.0 schema dialect, with ``nullable`` honoured),
OpenAPI 3.1 schemas with :class:`jsonschema.Draft202012Validator`.

A schema that :mod:`jsonschema` itself rejects counts as a mismatch.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable

from jsonschema import Draft4Validator, Draft202012Validator
from jsonschema.exceptions import SchemaError, UnknownType

from specinvoke.output import debug

SchemaValidator = Callable[[Any, Any], bool]


def make_validator(openapi_version: str = "3.0.0") -> SchemaValidator:
    """Return a schema validator for documents of *openapi_version*."""
    is_31 = openapi_version.startswith("3.1")
    validator_cls = Draft202012Validator if is_31 else Draft4Validator

    def validate(schema: Any, value: Any) -> bool:
        if isinstance(schema, bool):
            return schema
        if not is_31 and value is None and isinstance(schema, Mapping) and schema.get("nullable"):
            return True
        try:
            return validator_cls(schema).is_valid(value)
        except (SchemaError, UnknownType) as exc:
            debug(f"Schema could not be used for validation: {exc}")
            return False

    return validate
