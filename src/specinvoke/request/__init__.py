"""Request construction -- parameter serialization and content negotiation.

* :mod:`~specinvoke.request.params` -- path, query and header parameter
  serialization per OpenAPI ``style``/``explode`` rules.
* :mod:`~specinvoke.request.body` -- request body Content-Type selection
  and JSON serialization.
"""

from specinvoke.request.body import CAN_HAVE_BODY, negotiate_body
from specinvoke.request.params import (
    IGNORED_HEADERS,
    build_path,
    build_query,
    encode_component,
    expand_template,
    serialize_headers,
    serialize_path,
    serialize_query,
)

__all__ = [
    "CAN_HAVE_BODY",
    "IGNORED_HEADERS",
    "build_path",
    "build_query",
    "encode_component",
    "expand_template",
    "negotiate_body",
    "serialize_headers",
    "serialize_path",
    "serialize_query",
]
