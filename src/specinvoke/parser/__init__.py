"""OpenAPI document handling -- load documents and resolve ``$ref`` pointers.

Sub-modules:

* :mod:`~specinvoke.parser.loader` -- I/O layer (URL or file) plus format
  detection and OpenAPI version validation.
* :mod:`~specinvoke.parser.resolver` -- lazy, memoized, cycle-tolerant
  ``$ref`` resolution, including external documents.
"""

from specinvoke.parser.loader import load_document, load_document_async, validate_openapi_version
from specinvoke.parser.resolver import ReferenceResolver, is_reference

__all__ = [
    "ReferenceResolver",
    "is_reference",
    "load_document",
    "load_document_async",
    "validate_openapi_version",
]
