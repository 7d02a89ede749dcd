"""Tests for the response formatting bridge."""

from __future__ import annotations

import httpx
import pytest

from specinvoke.client.response import extract_response_data, format_api_response, raise_for_status
from specinvoke.exceptions import AuthError, NotFoundError, ServerError
from specinvoke.exit_codes import EXIT_AUTH_FAILURE, EXIT_NOT_FOUND, EXIT_SERVER_ERROR
from specinvoke.output import OutputFormat, OutputManager, set_output


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_response(status_code: int = 200, **kwargs) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        request=httpx.Request("GET", "https://api.example.com/pets/1"),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# extract_response_data
# ---------------------------------------------------------------------------


class TestExtractResponseData:
    def test_json_body(self) -> None:
        assert extract_response_data(_make_response(json={"id": 1})) == {"id": 1}

    def test_text_body(self) -> None:
        assert extract_response_data(_make_response(text="plain text")) == "plain text"

    def test_empty_body(self) -> None:
        assert extract_response_data(_make_response(204)) is None


# ---------------------------------------------------------------------------
# format_api_response
# ---------------------------------------------------------------------------


class TestFormatApiResponse:
    def test_body_to_stdout_status_to_stderr(self, capsys) -> None:
        set_output(OutputManager(format=OutputFormat.JSON, no_color=True))

        format_api_response(_make_response(json={"name": "Rex"}))

        captured = capsys.readouterr()
        assert '"name": "Rex"' in captured.out
        assert "HTTP 200 OK" in captured.err
        assert "HTTP 200" not in captured.out

    def test_empty_body_prints_nothing_to_stdout(self, capsys) -> None:
        set_output(OutputManager(format=OutputFormat.JSON, no_color=True))

        format_api_response(_make_response(204))

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "HTTP 204 No Content" in captured.err

    def test_quiet_suppresses_status_line(self, capsys) -> None:
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True))

        format_api_response(_make_response(text="hello"))

        captured = capsys.readouterr()
        assert captured.out.strip() == "hello"
        assert captured.err == ""


# ---------------------------------------------------------------------------
# raise_for_status
# ---------------------------------------------------------------------------


class TestRaiseForStatus:
    @pytest.mark.parametrize("status", [200, 201, 204, 302])
    def test_success_and_redirect_pass(self, status: int) -> None:
        raise_for_status(_make_response(status))

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failures(self, status: int) -> None:
        with pytest.raises(AuthError) as exc_info:
            raise_for_status(_make_response(status))
        assert exc_info.value.exit_code == EXIT_AUTH_FAILURE

    def test_not_found(self) -> None:
        with pytest.raises(NotFoundError, match="GET https://api.example.com/pets/1 returned HTTP 404") as exc_info:
            raise_for_status(_make_response(404))
        assert exc_info.value.exit_code == EXIT_NOT_FOUND

    @pytest.mark.parametrize("status", [400, 409, 500, 503])
    def test_other_errors(self, status: int) -> None:
        with pytest.raises(ServerError) as exc_info:
            raise_for_status(_make_response(status))
        assert exc_info.value.exit_code == EXIT_SERVER_ERROR
