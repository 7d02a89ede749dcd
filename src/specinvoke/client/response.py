"""Response handling for the command line -- print bodies, map status codes.

The invocation engine returns the executor's response unmodified; turning
it into output is the caller's job.  The ``specinvoke call`` command uses
:func:`format_api_response` to print the body to stdout and the status line
to stderr, then :func:`raise_for_status` to map HTTP errors onto
:mod:`specinvoke.exit_codes`.
"""

from __future__ import annotations

from typing import Any

import httpx

from specinvoke.exceptions import AuthError, NotFoundError, ServerError
from specinvoke.output import get_output


def format_api_response(response: httpx.Response) -> None:
    """Print the status line to stderr and the body to stdout."""
    output = get_output()
    output.info(f"HTTP {response.status_code} {response.reason_phrase or ''}".rstrip())

    data = extract_response_data(response)
    if data is not None:
        output.format_response(data)


def extract_response_data(response: httpx.Response) -> Any:
    """Return the decoded JSON body, the raw text, or ``None`` when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def raise_for_status(response: httpx.Response) -> None:
    """Raise the exception matching an HTTP error status.

    * 401, 403 -- :class:`~specinvoke.exceptions.AuthError`
    * 404 -- :class:`~specinvoke.exceptions.NotFoundError`
    * any other 4xx or 5xx -- :class:`~specinvoke.exceptions.ServerError`
    """
    if not response.is_error:
        return
    message = f"{response.request.method} {response.request.url} returned HTTP {response.status_code}"
    if response.status_code in (401, 403):
        raise AuthError(message)
    if response.status_code == 404:
        raise NotFoundError(message)
    raise ServerError(message)
