"""Containers for the request mutations produced by security resolution.

:class:`SecurityResult` collects the HTTP headers and query parameters that
satisfying an operation's security requirement adds to a request.  It is
produced by :func:`~specinvoke.auth.security.resolve_security` and applied
by the invocation builder.

:data:`CredentialApplier` is the signature of a per-scheme placement
override, registered through
:attr:`~specinvoke.models.ApiConfig.credential_appliers`.
"""

from __future__ import annotations

from typing import Any, Callable


class SecurityResult:
    """Headers and query parameters to add to an outgoing request.

    Args:
        headers: HTTP headers to set (e.g. ``{"Authorization": "Bearer ..."}``).
        params: Query-string pairs to append, in order.

    Example::

        result = SecurityResult(headers={"Authorization": "Bearer tok123"})
        assert result.headers["Authorization"] == "Bearer tok123"
    """

    def __init__(
        self,
        headers: dict[str, str] | None = None,
        params: list[tuple[str, str]] | None = None,
    ):
        self.headers = headers or {}
        self.params = params or []

    def merge(self, other: SecurityResult) -> None:
        """Add *other*'s headers (overwriting) and query pairs (appending)."""
        self.headers.update(other.headers)
        self.params.extend(other.params)

    def __repr__(self) -> str:
        return f"SecurityResult(headers={sorted(self.headers)}, params={[k for k, _ in self.params]})"


CredentialApplier = Callable[[Any, Any], SecurityResult]
"""``applier(scheme, credential) -> SecurityResult`` for one security scheme."""
