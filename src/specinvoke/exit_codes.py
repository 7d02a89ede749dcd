"""Numeric process exit codes used by the ``specinvoke`` command line.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specinvoke.exceptions.SpecinvokeError` subclass.
Shell scripts can inspect the exit code to tell a rejected credential from
an unreachable server without parsing stderr.

Example::

    $ specinvoke call openapi.json getUser -p id=foxfriends
    $ echo $?
    4   # EXIT_NOT_FOUND -- the server answered 404
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or an unknown operation."""

EXIT_AUTH_FAILURE = 3
"""The server rejected the request with HTTP 401 or 403."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an HTTP error other than 401, 403 or 404."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_SPEC_PARSE_ERROR = 7
"""The OpenAPI document could not be loaded, parsed, or dereferenced."""
