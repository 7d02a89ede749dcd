"""Load OpenAPI documents from a URL or local file.

This module handles all I/O for fetching raw OpenAPI documents -- the root
document as well as external documents named by ``$ref`` pointers -- and
converting them into Python dictionaries.  It supports both JSON and YAML
with automatic format detection, and validates that a root document
declares a supported OpenAPI version.

The public functions are:

* :func:`load_document` -- blocking load, used by the command line.
* :func:`load_document_async` -- non-blocking load, the default
  ``document_loader`` of the reference resolver and of
  :func:`~specinvoke.api.hosted`.
* :func:`validate_openapi_version` -- check and return the ``openapi``
  version string.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlsplit

import httpx
import yaml

from specinvoke.exceptions import SpecParseError


def is_remote(uri: str) -> bool:
    """Return True if *uri* is an ``http://`` or ``https://`` URL."""
    return uri.startswith(("http://", "https://"))


def load_document(source: str) -> dict[str, Any]:
    """Load a document from a URL or file path.

    Args:
        source: A URL (http/https), a ``file://`` URI, or a file path.

    Returns:
        The parsed document as a dictionary.

    Raises:
        SpecParseError: If the source cannot be loaded or parsed.
    """
    if is_remote(source):
        try:
            response = httpx.get(source, timeout=30.0, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SpecParseError(
                f"HTTP {exc.response.status_code} fetching document from {source}"
            ) from exc
        except httpx.RequestError as exc:
            raise SpecParseError(f"Failed to fetch document from {source}: {exc}") from exc
        return _parse_content(response.text, hint=_hint_from_content_type(response))
    return _load_from_file(source)


async def load_document_async(source: str) -> dict[str, Any]:
    """Load a document from a URL or file path without blocking the event loop.

    Remote documents are fetched with :class:`httpx.AsyncClient`.  Local
    files are read and parsed in a worker thread.

    Args:
        source: A URL (http/https), a ``file://`` URI, or a file path.

    Returns:
        The parsed document as a dictionary.

    Raises:
        SpecParseError: If the source cannot be loaded or parsed.
    """
    if not is_remote(source):
        return await asyncio.to_thread(_load_from_file, source)

    try:
        async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
            response = await client.get(source)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching document from {source}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch document from {source}: {exc}") from exc
    return _parse_content(response.text, hint=_hint_from_content_type(response))


def _hint_from_content_type(response: httpx.Response) -> str:
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        return "json"
    if "yaml" in content_type or "yml" in content_type:
        return "yaml"
    return ""


def _load_from_file(source: str) -> dict[str, Any]:
    """Load a document from a local file.

    Supports .json, .yaml, and .yml extensions.  Falls back to content-based
    detection if the extension is not recognized.
    """
    if source.startswith("file://"):
        source = unquote(urlsplit(source).path)
    file_path = Path(source)
    if not file_path.is_file():
        raise SpecParseError(f"Document not found: {source}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read document {source}: {exc}") from exc

    if not content.strip():
        raise SpecParseError(f"Document is empty: {source}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.
    Valid JSON is also valid YAML, but JSON parsing is stricter and faster.

    Raises:
        SpecParseError: If the content cannot be parsed as either format.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
        else:
            if not isinstance(result, dict):
                raise SpecParseError(
                    f"Document must be a JSON/YAML object (got {type(result).__name__})"
                )
            return result

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        yaml_error = exc
    else:
        if not isinstance(result, dict):
            got = type(result).__name__ if result is not None else "empty document"
            raise SpecParseError(f"Document must be a JSON/YAML object (got {got})")
        return result

    msg = "Failed to parse document as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise SpecParseError(msg)


def validate_openapi_version(document: Any) -> str:
    """Validate and return the OpenAPI version string.

    Any ``3.x`` version is accepted.  Swagger 2.x documents, documents
    without an ``openapi`` marker, and other major versions are rejected.

    Args:
        document: The parsed document.

    Returns:
        The OpenAPI version string (e.g. ``'3.0.3'``).

    Raises:
        SpecParseError: If the document is not an OpenAPI 3 document.
    """
    if not isinstance(document, dict):
        raise SpecParseError("Invalid OpenAPI spec object")

    if "swagger" in document:
        raise SpecParseError(
            f"Swagger {document['swagger']} is not supported. "
            "Only OpenAPI 3.x documents are supported."
        )

    openapi_version = document.get("openapi")
    if not openapi_version:
        raise SpecParseError("Invalid OpenAPI spec object: missing 'openapi' field")

    version_str = str(openapi_version)
    major = version_str.split(".", 1)[0]
    if major != "3":
        raise SpecParseError(f"Unsupported openapi version {version_str}")
    return version_str
