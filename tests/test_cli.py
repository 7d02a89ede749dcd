"""Integration tests for the specinvoke command line.

Runs the Typer app end-to-end against the petstore fixture.  Requests are
either previewed with ``--dry-run`` or answered by an httpx MockTransport.
"""

from __future__ import annotations

import functools
import json
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from specinvoke import __version__
from specinvoke.app import app
from specinvoke.client import RequestExecutor
from specinvoke.config import BASE_URL_ENV


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _no_base_url_env(monkeypatch) -> None:
    monkeypatch.delenv(BASE_URL_ENV, raising=False)


def _answer_with(monkeypatch, response: httpx.Response) -> list[httpx.Request]:
    """Route ``specinvoke call`` through a MockTransport returning *response*."""
    sent: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return response

    monkeypatch.setattr(
        "specinvoke.commands.call.RequestExecutor",
        functools.partial(RequestExecutor, transport=httpx.MockTransport(handler)),
    )
    return sent


class TestRoot:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"specinvoke {__version__}" in result.output

    def test_no_args_shows_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, [])
        assert "operations" in result.output
        assert "call" in result.output


class TestOperationsCommand:
    def test_plain_table(self, runner: CliRunner, petstore_path: Path) -> None:
        result = runner.invoke(app, ["--plain", "operations", str(petstore_path)])

        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines[0] == "Operation\tMethod\tPath\tSummary\tDeprecated"
        assert "getUser\tGET\t/users/{id}\tFetch one user\t" in lines
        assert "deleteUser\tDELETE\t/users/{id}\t-\tYes" in lines
        assert "get /shops\tGET\t/shops\tList shops\t" in lines

    def test_json_records(self, runner: CliRunner, petstore_path: Path) -> None:
        result = runner.invoke(app, ["--json", "operations", str(petstore_path)])

        assert result.exit_code == 0
        records = json.loads(result.stdout)
        assert len(records) == 8
        assert [r["Path"] for r in records] == sorted(r["Path"] for r in records)

    def test_missing_document(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--no-color", "operations", str(tmp_path / "nope.json")])

        assert result.exit_code == 7
        assert "Error:" in result.output

    def test_swagger_document_rejected(self, runner: CliRunner, tmp_path: Path) -> None:
        spec = tmp_path / "swagger.json"
        spec.write_text(json.dumps({"swagger": "2.0", "info": {}, "paths": {}}))

        result = runner.invoke(app, ["--no-color", "operations", str(spec)])

        assert result.exit_code == 7
        assert "Swagger 2.0" in result.output


class TestCallCommand:
    def test_dry_run_prints_request(self, runner: CliRunner, petstore_path: Path) -> None:
        result = runner.invoke(
            app,
            ["--no-color", "call", str(petstore_path), "getUser", "-p", "id=foxfriends", "--dry-run"],
        )

        assert result.exit_code == 0
        assert "[dry-run] GET /users/foxfriends" in result.output

    def test_base_url_and_query(self, runner: CliRunner, petstore_path: Path) -> None:
        result = runner.invoke(
            app,
            [
                "--no-color", "call", str(petstore_path), "listPets",
                "-p", "limit=5",
                "-p", 'tags=["a","b"]',
                "-c", "api_key=k-1",
                "--base-url", "https://api.example.com/v1",
                "--dry-run",
            ],
        )

        assert result.exit_code == 0
        assert "[dry-run] GET https://api.example.com/v1/pets?limit=5&tags=a&tags=b" in result.output
        assert "x-api-key: k-1" in result.output

    def test_env_base_url(self, runner: CliRunner, petstore_path: Path, monkeypatch) -> None:
        monkeypatch.setenv(BASE_URL_ENV, "https://env.example.com")

        result = runner.invoke(
            app,
            ["--no-color", "call", str(petstore_path), "get /stores", "--dry-run"],
        )

        assert result.exit_code == 0
        assert "[dry-run] GET https://env.example.com/shops" in result.output

    def test_basic_credentials_and_body(self, runner: CliRunner, petstore_path: Path) -> None:
        result = runner.invoke(
            app,
            [
                "--no-color", "call", str(petstore_path), "getPetById",
                "-p", "petId=7",
                "-c", "basic_auth=ann:pw",
                "-n",
            ],
        )

        assert result.exit_code == 0
        assert "/pets/7" in result.output
        assert "authorization: Basic YW5uOnB3" in result.output

    def test_advisory_warnings_go_to_stderr(self, runner: CliRunner, petstore_path: Path) -> None:
        result = runner.invoke(
            app,
            ["--no-color", "call", str(petstore_path), "getPetById", "-n"],
        )

        assert result.exit_code == 0
        assert "Missing required parameter petId to getPetById" in result.output
        assert "No required set of security schemes was satisfied for getPetById" in result.output

    def test_unknown_operation(self, runner: CliRunner, petstore_path: Path) -> None:
        result = runner.invoke(app, ["--no-color", "call", str(petstore_path), "nope"])

        assert result.exit_code == 2
        assert "Unknown operation 'nope'" in result.output

    def test_malformed_param(self, runner: CliRunner, petstore_path: Path) -> None:
        result = runner.invoke(app, ["--no-color", "call", str(petstore_path), "getUser", "-p", "id"])

        assert result.exit_code == 2
        assert "name=value" in result.output

    def test_malformed_credential(self, runner: CliRunner, petstore_path: Path) -> None:
        result = runner.invoke(
            app, ["--no-color", "call", str(petstore_path), "getUser", "-c", "api_key"]
        )

        assert result.exit_code == 1
        assert "scheme=source" in result.output

    def test_response_body_is_printed(
        self, runner: CliRunner, petstore_path: Path, monkeypatch
    ) -> None:
        sent = _answer_with(monkeypatch, httpx.Response(200, json={"id": 7, "name": "Rex"}))

        result = runner.invoke(
            app,
            [
                "--json", "--no-color", "call", str(petstore_path), "getPetById",
                "-p", "petId=7",
                "-c", "basic_auth=ann:pw",
                "--base-url", "https://api.example.com",
            ],
        )

        assert result.exit_code == 0
        assert str(sent[0].url) == "https://api.example.com/pets/7"
        assert sent[0].headers["Authorization"] == "Basic YW5uOnB3"
        assert '"name": "Rex"' in result.stdout
        assert "HTTP 200 OK" in result.output

    @pytest.mark.parametrize("status, exit_code", [(401, 3), (404, 4), (500, 5)])
    def test_http_errors_map_to_exit_codes(
        self, runner: CliRunner, petstore_path: Path, monkeypatch, status: int, exit_code: int
    ) -> None:
        _answer_with(monkeypatch, httpx.Response(status, json={"error": "nope"}))

        result = runner.invoke(
            app,
            [
                "--no-color", "call", str(petstore_path), "getPetById",
                "-p", "petId=7",
                "-c", "basic_auth=ann:pw",
                "--base-url", "https://api.example.com",
            ],
        )

        assert result.exit_code == exit_code
        assert f"returned HTTP {status}" in result.output
