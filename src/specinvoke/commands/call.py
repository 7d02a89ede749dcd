"""``specinvoke call`` -- build and send the request of one operation.

Parameters, headers and credentials are given as repeatable options::

    specinvoke call ./petstore.yaml getPetById -p petId=7 -c api_key=env:PETSTORE_KEY
    specinvoke call ./petstore.yaml findPetsByStatus -p 'status=["available","sold"]'
    specinvoke call ./petstore.yaml addPet --body '{"name": "Rex"}' --dry-run

Parameter values are decoded as JSON when they parse, so arrays and objects
can be passed; anything else is sent as a string.  Advisory warnings about
the request go to stderr.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from typing import Any, Optional

import httpx
import typer

from specinvoke.api import create_api
from specinvoke.client import DryRunExecutor, RequestExecutor, format_api_response, raise_for_status
from specinvoke.config import resolve_base_url, resolve_credentials
from specinvoke.exceptions import InvalidUsageError, SpecinvokeError
from specinvoke.invoker import Invocation
from specinvoke.models import Environment
from specinvoke.output import debug, error
from specinvoke.parser.loader import load_document


def _decode(value: str) -> Any:
    """Parse *value* as JSON if possible, returning the raw string on failure."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def parse_params(pairs: list[str]) -> dict[str, Any]:
    """Parse ``name=value`` pairs, decoding JSON values.

    Raises:
        InvalidUsageError: If a pair has no ``=`` or no name.
    """
    params: dict[str, Any] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise InvalidUsageError(f"Parameter must be given as 'name=value', got '{pair}'")
        params[name] = _decode(value)
    return params


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Parse ``Name: value`` header lines.

    Raises:
        InvalidUsageError: If a line has no ``:`` or no name.
    """
    headers: dict[str, str] = {}
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise InvalidUsageError(f"Header must be given as 'Name: value', got '{line}'")
        headers[name.strip()] = value.strip()
    return headers


async def _send(
    invocation: Invocation,
    environment: Environment,
    dry_run: bool,
    timeout: float,
    retries: int,
) -> Any:
    if dry_run:
        executor = DryRunExecutor()
        return await invocation(environment.model_copy(update={"request_executor": executor}))
    async with RequestExecutor(timeout=timeout, max_retries=retries) as executor:
        return await invocation(environment.model_copy(update={"request_executor": executor}))


def call_command(
    spec: str = typer.Argument(..., help="OpenAPI document URL or file path."),
    operation_id: str = typer.Argument(..., help="Operation id, or 'method path' for unnamed operations."),
    param: Optional[list[str]] = typer.Option(
        None, "--param", "-p", help="Parameter value as name=value (repeatable)."
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra header as 'Name: value' (repeatable)."
    ),
    body: Optional[str] = typer.Option(
        None, "--body", "-b", help="Request body; JSON is decoded."
    ),
    content_type: Optional[str] = typer.Option(
        None, "--content-type", help="Content-Type of the request body."
    ),
    credential: Optional[list[str]] = typer.Option(
        None, "--credential", "-c", help="Credential as scheme=source (env:VAR, file:PATH, prompt or a literal)."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Base URL of the API (overrides SPECINVOKE_BASE_URL)."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Print the request instead of sending it."
    ),
    timeout: float = typer.Option(30.0, "--timeout", help="Request timeout in seconds."),
    retries: int = typer.Option(0, "--retries", help="Retries after connection errors."),
) -> None:
    """Call one operation and print the response body.

    HTTP 401/403 exit with code 3, 404 with code 4 and other HTTP errors
    with code 5.
    """
    try:
        document = load_document(spec)
        api = create_api(
            document,
            url=resolve_base_url(base_url, spec),
            document_uri=spec,
            logging=True,
        )
        if operation_id not in api:
            raise InvalidUsageError(
                f"Unknown operation '{operation_id}'. Run: specinvoke operations {spec}"
            )

        raw_schemes = api.context.security_schemes
        schemes: dict[str, Any] = {}
        if isinstance(raw_schemes, Mapping):
            schemes = {name: api.resolver.follow(raw) for name, raw in raw_schemes.items()}
        environment = Environment(credentials=resolve_credentials(credential or [], schemes))

        invocation = api[operation_id](
            parse_params(param or []),
            headers=parse_headers(header or []),
            body=_decode(body) if body is not None else None,
            content_type=content_type,
        )
        debug(f"Calling {invocation!r}")
        response = asyncio.run(_send(invocation, environment, dry_run, timeout, retries))

        if isinstance(response, httpx.Response):
            format_api_response(response)
            raise_for_status(response)
    except SpecinvokeError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
