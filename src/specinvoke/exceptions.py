"""Exception hierarchy for specinvoke.

All exceptions inherit from :class:`SpecinvokeError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specinvoke.exit_codes`.
Only structural problems are raised: a document that is not OpenAPI 3, a
malformed definition, or a ``$ref`` that cannot be followed.  Imperfect
caller input (missing parameters, bodies that fail their schema, unsatisfied
security requirements) is reported through the logger instead.

Subclass hierarchy::

    SpecinvokeError (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- AuthError                (exit 3)
    +-- NotFoundError            (exit 4)
    +-- ServerError              (exit 5)
    +-- ConnectionError_         (exit 6)
    +-- SpecParseError           (exit 7)
    |   +-- ReferenceResolutionError
    +-- ConfigError              (exit 1)
"""

from specinvoke.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
    EXIT_SPEC_PARSE_ERROR,
)


class SpecinvokeError(Exception):
    """Base exception for all specinvoke errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`specinvoke.exit_codes`.  The CLI entry point
    catches this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecinvokeError):
    """Raised for invalid CLI arguments or an unknown operation id."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(SpecinvokeError):
    """Raised by the CLI when the API answers 401 or 403."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(SpecinvokeError):
    """Raised by the CLI when the API answers 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(SpecinvokeError):
    """Raised by the CLI for any other HTTP error status."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(SpecinvokeError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class SpecParseError(SpecinvokeError):
    """Raised when an OpenAPI document cannot be parsed or is not OpenAPI 3."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class ReferenceResolutionError(SpecParseError):
    """Raised when a ``$ref`` pointer cannot be followed.

    Covers pointers to locations that do not exist, external documents that
    cannot be fetched or parsed, and ``$ref`` chains that loop back onto
    themselves without passing through an object or array.
    """


class ConfigError(SpecinvokeError):
    """Raised for configuration problems such as an unresolvable credential source."""

    exit_code = EXIT_GENERIC_FAILURE
