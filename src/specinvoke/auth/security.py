"""Match security requirements against supplied credentials.

An operation's ``security`` field is an ordered list of *alternatives*; each
alternative maps scheme names to scopes and is satisfied only when every
scheme it names is satisfiable.  :func:`resolve_security` walks the
alternatives in order, stops at the first one that is fully satisfied, and
applies the credential of each of its schemes:

======================  ====================================================
Scheme                  Placement
======================  ====================================================
``apiKey`` header       ``<name>: <credential>``
``apiKey`` query        ``<name>=<credential>`` appended to the query string
``apiKey`` cookie       nothing (the cookie is assumed to be set already)
``http`` ``bearer``     ``Authorization: Bearer <credential>``
``http`` ``basic``      ``Authorization: Basic base64(user:pass)``
other ``http``          ``Authorization: <credential>``
``oauth2``              ``Authorization: Bearer <credential>``
``openIdConnect``       ``Authorization: Bearer <credential>``
======================  ====================================================

OAuth2 does not say where a token goes; the bearer placement is an
assumption that can be replaced per scheme name with a
:data:`~specinvoke.auth.base.CredentialApplier`.

When no alternative is satisfiable the caller sends the request without
credentials.  That is a warning, not an error.
"""

from __future__ import annotations

import base64
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from specinvoke.auth.base import CredentialApplier, SecurityResult
from specinvoke.models import (
    ApiKeySecurityScheme,
    BasicCredentials,
    HttpSecurityScheme,
    OAuth2SecurityScheme,
    OpenIdConnectSecurityScheme,
)
from specinvoke.output import debug


def _basic_pair(credential: Any) -> Optional[tuple[str, str]]:
    if isinstance(credential, BasicCredentials):
        return credential.user, credential.password
    if isinstance(credential, Mapping) and "user" in credential and "pass" in credential:
        return str(credential["user"]), str(credential["pass"])
    return None


def is_satisfiable(name: str, scheme: Any, credentials: Mapping[str, Any]) -> bool:
    """Return True if *credentials* can satisfy the scheme registered as *name*.

    * ``http`` ``basic`` needs a credential with both a user and a password.
    * other ``http`` schemes, ``apiKey`` in a header or query, ``oauth2`` and
      ``openIdConnect`` need any credential under *name*.
    * ``apiKey`` in a cookie is always satisfiable; HTTP-only cookies cannot
      be inspected.
    """
    if isinstance(scheme, HttpSecurityScheme):
        if name not in credentials:
            return False
        if scheme.scheme.lower() == "basic":
            return _basic_pair(credentials[name]) is not None
        # Only basic and bearer are checked; other schemes trust the caller.
        return True
    if isinstance(scheme, ApiKeySecurityScheme):
        if scheme.location == "cookie":
            return True
        return name in credentials
    if isinstance(scheme, (OAuth2SecurityScheme, OpenIdConnectSecurityScheme)):
        return name in credentials
    raise TypeError(f"Unhandled security scheme type: {type(scheme).__name__}")


def apply_credential(scheme: Any, credential: Any) -> SecurityResult:
    """Build the request mutations for one satisfied scheme.

    Args:
        scheme: A security scheme variant from :mod:`specinvoke.models`.
        credential: The credential supplied under the scheme's name.  Unused
            for ``apiKey`` cookies.

    Returns:
        A :class:`~specinvoke.auth.base.SecurityResult` with the headers
        and query pairs to add.
    """
    if isinstance(scheme, ApiKeySecurityScheme):
        if scheme.location == "header":
            return SecurityResult(headers={scheme.name: str(credential)})
        if scheme.location == "query":
            return SecurityResult(params=[(scheme.name, str(credential))])
        return SecurityResult()

    if isinstance(scheme, HttpSecurityScheme):
        kind = scheme.scheme.lower()
        if kind == "bearer":
            return SecurityResult(headers={"Authorization": f"Bearer {credential}"})
        if kind == "basic":
            pair = _basic_pair(credential)
            if pair is None:
                raise TypeError("http basic credentials need 'user' and 'pass'")
            raw = f"{pair[0]}:{pair[1]}"
            encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
            return SecurityResult(headers={"Authorization": f"Basic {encoded}"})
        return SecurityResult(headers={"Authorization": str(credential)})

    if isinstance(scheme, (OAuth2SecurityScheme, OpenIdConnectSecurityScheme)):
        return SecurityResult(headers={"Authorization": f"Bearer {credential}"})

    raise TypeError(f"Unhandled security scheme type: {type(scheme).__name__}")


def resolve_security(
    requirements: Sequence[Mapping[str, Any]],
    schemes: Mapping[str, Any],
    credentials: Mapping[str, Any],
    appliers: Optional[Mapping[str, CredentialApplier]] = None,
) -> Optional[SecurityResult]:
    """Apply the first security requirement alternative that *credentials* satisfy.

    Args:
        requirements: Ordered alternatives; each maps scheme names to scopes.
        schemes: Parsed security schemes keyed by name.
        credentials: Caller-supplied credentials keyed by scheme name.
        appliers: Per-scheme-name replacements for :func:`apply_credential`.

    Returns:
        The mutations of the winning alternative, or ``None`` when no
        alternative is satisfiable.  An empty alternative (``{}``) wins with
        an empty result, meaning security is optional.
    """
    appliers = appliers or {}
    for position, requirement in enumerate(requirements):
        names = list(requirement)
        unknown = [name for name in names if name not in schemes]
        if unknown:
            debug(f"Security alternative {position} names unknown schemes: {', '.join(unknown)}")
            continue
        if not all(is_satisfiable(name, schemes[name], credentials) for name in names):
            continue

        debug(f"Using security alternative {position}: {', '.join(names) or '(none)'}")
        result = SecurityResult()
        for name in names:
            applier = appliers.get(name, apply_credential)
            result.merge(applier(schemes[name], credentials.get(name)))
        return result
    return None
