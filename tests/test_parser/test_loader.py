"""Tests for specinvoke.parser.loader."""

from __future__ import annotations

import textwrap
import threading
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from specinvoke.exceptions import SpecParseError
from specinvoke.parser.loader import (
    _load_from_file,
    _parse_content,
    is_remote,
    load_document,
    load_document_async,
    validate_openapi_version,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"

_RealAsyncClient = httpx.AsyncClient


def _async_client_with(handler):
    """Return an AsyncClient factory that routes requests to *handler*."""

    def factory(**kwargs):
        return _RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    return factory


# ---------------------------------------------------------------------------
# load_document dispatch
# ---------------------------------------------------------------------------


class TestLoadDocument:
    """Test load_document routes to the correct loader."""

    def test_loads_from_file_json(self) -> None:
        result = load_document(str(FIXTURES_DIR / "petstore.json"))
        assert result["openapi"] == "3.0.3"
        assert result["info"]["title"] == "Petstore"

    def test_loads_from_file_yaml(self, tmp_path: Path) -> None:
        yaml_content = textwrap.dedent("""\
            openapi: "3.0.3"
            info:
              title: YAML Test
              version: "1.0.0"
            paths: {}
        """)
        yaml_file = tmp_path / "spec.yaml"
        yaml_file.write_text(yaml_content, encoding="utf-8")
        result = load_document(str(yaml_file))
        assert result["info"]["title"] == "YAML Test"

    def test_loads_from_file_uri(self) -> None:
        uri = (FIXTURES_DIR / "petstore.json").resolve().as_uri()
        result = load_document(uri)
        assert result["info"]["title"] == "Petstore"

    def test_loads_from_url(self) -> None:
        spec = {"openapi": "3.0.3", "info": {"title": "URL test", "version": "1.0"}}
        mock_response = httpx.Response(
            status_code=200,
            json=spec,
            request=httpx.Request("GET", "https://example.com/spec.json"),
        )
        with patch("specinvoke.parser.loader.httpx.get", return_value=mock_response):
            result = load_document("https://example.com/spec.json")
        assert result["info"]["title"] == "URL test"

    def test_http_error_raises(self) -> None:
        mock_response = httpx.Response(
            status_code=404,
            request=httpx.Request("GET", "https://example.com/missing.json"),
        )
        with patch("specinvoke.parser.loader.httpx.get", return_value=mock_response):
            with pytest.raises(SpecParseError, match="HTTP 404"):
                load_document("https://example.com/missing.json")

    def test_connection_error_raises(self) -> None:
        with patch(
            "specinvoke.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("Connection refused"),
        ):
            with pytest.raises(SpecParseError, match="Failed to fetch"):
                load_document("https://unreachable.example.com/spec.json")


class TestLoadDocumentAsync:
    """Test the non-blocking loader used for external references."""

    @pytest.mark.asyncio
    async def test_loads_yaml_from_url(self) -> None:
        yaml_body = "Pet:\n  type: object\n"

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/common.yaml"
            return httpx.Response(200, text=yaml_body, headers={"content-type": "application/x-yaml"})

        with patch("specinvoke.parser.loader.httpx.AsyncClient", _async_client_with(handler)):
            result = await load_document_async("https://example.com/common.yaml")

        assert result == {"Pet": {"type": "object"}}

    @pytest.mark.asyncio
    async def test_http_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        with patch("specinvoke.parser.loader.httpx.AsyncClient", _async_client_with(handler)):
            with pytest.raises(SpecParseError, match="HTTP 500"):
                await load_document_async("https://example.com/common.json")

    @pytest.mark.asyncio
    async def test_loads_from_file(self) -> None:
        result = await load_document_async(str(FIXTURES_DIR / "petstore.json"))
        assert "paths" in result

    @pytest.mark.asyncio
    async def test_file_is_read_off_the_event_loop_thread(self) -> None:
        threads: list[int] = []

        def recording_load(source: str) -> dict:
            threads.append(threading.get_ident())
            return _load_from_file(source)

        with patch("specinvoke.parser.loader._load_from_file", recording_load):
            result = await load_document_async(str(FIXTURES_DIR / "petstore.json"))

        assert "paths" in result
        assert threads and threads[0] != threading.get_ident()

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SpecParseError):
            await load_document_async(str(tmp_path / "missing.json"))


class TestIsRemote:
    def test_http_and_https(self) -> None:
        assert is_remote("http://example.com/spec.json")
        assert is_remote("https://example.com/spec.json")

    def test_paths_and_file_uris(self) -> None:
        assert not is_remote("./spec.json")
        assert not is_remote("file:///tmp/spec.json")


# ---------------------------------------------------------------------------
# _load_from_file
# ---------------------------------------------------------------------------


class TestLoadFromFile:
    """Test loading documents from local files."""

    def test_file_not_found_raises(self) -> None:
        with pytest.raises(SpecParseError, match="not found"):
            _load_from_file("/nonexistent/path/to/spec.json")

    def test_empty_file_raises(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.json"
        empty.write_text("", encoding="utf-8")
        with pytest.raises(SpecParseError, match="empty"):
            _load_from_file(str(empty))

    def test_invalid_json_file_raises(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("{invalid json", encoding="utf-8")
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            _load_from_file(str(bad))

    def test_non_object_json_raises(self, tmp_path: Path) -> None:
        array_file = tmp_path / "array.json"
        array_file.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(SpecParseError, match="must be a JSON/YAML object"):
            _load_from_file(str(array_file))


# ---------------------------------------------------------------------------
# _parse_content
# ---------------------------------------------------------------------------


class TestParseContent:
    """Test content parsing with format detection."""

    def test_parses_json(self) -> None:
        assert _parse_content('{"key": "value"}') == {"key": "value"}

    def test_parses_yaml(self) -> None:
        result = _parse_content("key: value\nnested:\n  a: 1")
        assert result == {"key": "value", "nested": {"a": 1}}

    def test_json_hint_forces_json_only(self) -> None:
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            _parse_content("not: valid: json: {{{", hint="json")

    def test_invalid_content_raises(self) -> None:
        with pytest.raises(SpecParseError, match="Failed to parse"):
            _parse_content("}{not valid at all][", hint="")

    def test_null_yaml_raises(self) -> None:
        with pytest.raises(SpecParseError, match="must be a JSON/YAML object"):
            _parse_content("---\n", hint="yaml")


# ---------------------------------------------------------------------------
# validate_openapi_version
# ---------------------------------------------------------------------------


class TestValidateOpenAPIVersion:
    """Test OpenAPI version validation."""

    def test_accepts_3_0_3(self) -> None:
        assert validate_openapi_version({"openapi": "3.0.3"}) == "3.0.3"

    def test_accepts_3_1_0(self) -> None:
        assert validate_openapi_version({"openapi": "3.1.0"}) == "3.1.0"

    def test_rejects_non_mapping(self) -> None:
        with pytest.raises(SpecParseError, match="Invalid OpenAPI spec object"):
            validate_openapi_version(["openapi", "3.0.0"])

    def test_rejects_swagger_2_0(self) -> None:
        with pytest.raises(SpecParseError, match="Swagger 2.0.*not supported"):
            validate_openapi_version({"swagger": "2.0"})

    def test_rejects_missing_openapi_field(self) -> None:
        with pytest.raises(SpecParseError, match="missing 'openapi' field"):
            validate_openapi_version({"info": {"title": "test"}})

    def test_rejects_other_major_versions(self) -> None:
        with pytest.raises(SpecParseError, match="Unsupported openapi version 4.0.0"):
            validate_openapi_version({"openapi": "4.0.0"})
        with pytest.raises(SpecParseError, match="Unsupported openapi version 2.0.0"):
            validate_openapi_version({"openapi": "2.0.0"})
