"""Tests for specinvoke.request.body."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from specinvoke.models import CallOptions, RequestBodyDefinition
from specinvoke.request.body import is_json_media_type, negotiate_body


def _body_def(content: dict[str, Any], required: bool = False) -> RequestBodyDefinition:
    return RequestBodyDefinition.model_validate({"required": required, "content": content})


JSON_PET = {"application/json": {"schema": {"type": "object", "required": ["name"]}}}


class _Warnings(list):
    def __call__(self, message: str) -> None:
        self.append(message)


def _always(result: bool):
    return lambda schema, value: result


class TestIsJsonMediaType:
    def test_plain_and_parameterised(self) -> None:
        assert is_json_media_type("application/json")
        assert is_json_media_type("Application/JSON; charset=utf-8")

    def test_other_types(self) -> None:
        assert not is_json_media_type("application/x-www-form-urlencoded")
        assert not is_json_media_type("application/problem+json")


class TestNegotiateBody:
    def test_sole_content_type_is_used(self) -> None:
        headers = httpx.Headers()
        body = negotiate_body(
            "post", _body_def(JSON_PET), CallOptions(body={"name": "Rex"}), headers, "addPet"
        )
        assert headers["content-type"] == "application/json"
        assert json.loads(body) == {"name": "Rex"}

    def test_explicit_header_wins(self) -> None:
        content = {"application/json": {}, "application/x-www-form-urlencoded": {}}
        headers = httpx.Headers({"Content-Type": "application/x-www-form-urlencoded"})
        body = negotiate_body(
            "post", _body_def(content), CallOptions(body={"name": "Rex"}), headers, "addPet"
        )
        assert body == {"name": "Rex"}
        assert headers["content-type"] == "application/x-www-form-urlencoded"

    def test_content_type_option_wins(self) -> None:
        content = {"application/json": {}, "text/plain": {}}
        headers = httpx.Headers()
        body = negotiate_body(
            "put",
            _body_def(content),
            CallOptions(body="hello", content_type="text/plain"),
            headers,
            "updateNote",
        )
        assert body == "hello"
        assert headers["content-type"] == "text/plain"

    def test_ambiguous_content_type_aborts_with_warning(self) -> None:
        content = {"image/png": {}, "image/jpeg": {}}
        headers = httpx.Headers()
        warnings = _Warnings()
        body = negotiate_body(
            "post", _body_def(content), CallOptions(body=b"\x89PNG"), headers, "upload", warn=warnings
        )
        assert body == b"\x89PNG"
        assert "content-type" not in headers
        assert warnings == ["Could not determine Content-Type for upload"]

    def test_parameterised_json_header_is_serialized(self) -> None:
        headers = httpx.Headers({"Content-Type": "application/json; charset=utf-8"})
        body = negotiate_body(
            "post", _body_def(JSON_PET), CallOptions(body={"name": "Rex"}), headers, "addPet"
        )
        assert body == '{"name": "Rex"}'

    def test_undeclared_content_type_warns_and_passes_through(self) -> None:
        headers = httpx.Headers()
        warnings = _Warnings()
        body = negotiate_body(
            "post",
            _body_def(JSON_PET),
            CallOptions(body={"name": "Rex"}, content_type="application/xml"),
            headers,
            "addPet",
            warn=warnings,
        )
        assert body == {"name": "Rex"}
        assert headers["content-type"] == "application/xml"
        assert warnings == ["Unsupported Content-Type application/xml for addPet"]

    def test_missing_required_body_warns(self) -> None:
        headers = httpx.Headers()
        warnings = _Warnings()
        body = negotiate_body(
            "post", _body_def(JSON_PET, required=True), CallOptions(), headers, "addPet", warn=warnings
        )
        assert body is None
        assert "content-type" not in headers
        assert warnings == ["Missing required request body for addPet"]

    def test_missing_optional_body_is_silent(self) -> None:
        warnings = _Warnings()
        negotiate_body("post", _body_def(JSON_PET), CallOptions(), httpx.Headers(), "addPet", warn=warnings)
        assert warnings == []

    @pytest.mark.parametrize("method", ["get", "head", "options", "trace"])
    def test_methods_without_body_are_skipped(self, method: str) -> None:
        headers = httpx.Headers()
        body = negotiate_body(method, _body_def(JSON_PET), CallOptions(body={"a": 1}), headers, "op")
        assert body == {"a": 1}
        assert "content-type" not in headers

    def test_no_request_body_definition_passes_through(self) -> None:
        headers = httpx.Headers()
        body = negotiate_body("post", None, CallOptions(body={"a": 1}), headers, "op")
        assert body == {"a": 1}
        assert "content-type" not in headers

    def test_schema_mismatch_warns_but_serializes(self) -> None:
        warnings = _Warnings()
        body = negotiate_body(
            "post",
            _body_def(JSON_PET),
            CallOptions(body={"tag": "x"}),
            httpx.Headers(),
            "addPet",
            warn=warnings,
            validator=_always(False),
        )
        assert json.loads(body) == {"tag": "x"}
        assert warnings == ["Provided JSON request body does not match schema for addPet"]

    def test_validation_skipped_without_logging(self) -> None:
        calls: list[Any] = []

        def validator(schema: Any, value: Any) -> bool:
            calls.append(value)
            return False

        negotiate_body(
            "post",
            _body_def(JSON_PET),
            CallOptions(body={"tag": "x"}),
            httpx.Headers(),
            "addPet",
            validator=validator,
        )
        assert calls == []

    def test_non_json_body_is_not_validated(self) -> None:
        warnings = _Warnings()
        content = {"text/plain": {"schema": {"type": "integer"}}}
        body = negotiate_body(
            "post",
            _body_def(content),
            CallOptions(body="not a number"),
            httpx.Headers(),
            "note",
            warn=warnings,
            validator=_always(False),
        )
        assert body == "not a number"
        assert warnings == []
