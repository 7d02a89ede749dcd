"""Security scheme satisfaction and credential placement.

The main entry points are:

- :func:`resolve_security` -- pick the first fully satisfiable security
  requirement alternative and produce the headers and query parameters it
  adds to the request.
- :class:`SecurityResult` -- the container for those mutations.

Typical usage::

    from specinvoke.auth import resolve_security

    result = resolve_security(operation_security, schemes, {"petstore_auth": "tok"})
    if result is not None:
        headers.update(result.headers)
"""

from specinvoke.auth.base import CredentialApplier, SecurityResult
from specinvoke.auth.security import apply_credential, is_satisfiable, resolve_security

__all__ = [
    "CredentialApplier",
    "SecurityResult",
    "apply_credential",
    "is_satisfiable",
    "resolve_security",
]
