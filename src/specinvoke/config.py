"""Command-line configuration: base URL precedence and credential sources.

The library itself is configured with :class:`~specinvoke.models.ApiConfig`
and :class:`~specinvoke.models.Environment`.  This module turns command-line
input into those values:

* **Base URL** -- :func:`resolve_base_url` applies the precedence chain
  ``--base-url`` flag > ``SPECINVOKE_BASE_URL`` > origin of a remote spec.
* **Credentials** -- :func:`resolve_credential` reads a secret from an
  environment variable, a file, an interactive prompt, or takes it
  literally.  :func:`resolve_credentials` parses ``scheme=source`` pairs and
  shapes each secret for its security scheme.
"""

from __future__ import annotations

import getpass
import json
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlsplit

from specinvoke.exceptions import ConfigError
from specinvoke.models import BasicCredentials
from specinvoke.parser.loader import is_remote

BASE_URL_ENV = "SPECINVOKE_BASE_URL"


def resolve_base_url(cli_base_url: Optional[str], spec_source: str) -> Optional[str]:
    """Resolve the base URL requests are sent to.

    Precedence (high to low):
        1. CLI flag (``cli_base_url``)
        2. Environment variable (``SPECINVOKE_BASE_URL``)
        3. Origin of *spec_source* when it is an http(s) URL

    Returns:
        The base URL, or ``None`` when nothing applies.
    """
    if cli_base_url is not None:
        return cli_base_url
    env_base_url = os.environ.get(BASE_URL_ENV)
    if env_base_url:
        return env_base_url
    if is_remote(spec_source):
        parts = urlsplit(spec_source)
        return f"{parts.scheme}://{parts.netloc}"
    return None


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)
        - anything else -- used as the credential itself

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter credential: ")

    return source


def _is_basic(scheme: Any) -> bool:
    return (
        isinstance(scheme, Mapping)
        and scheme.get("type") == "http"
        and str(scheme.get("scheme", "")).lower() == "basic"
    )


def shape_credential(secret: str, scheme: Any = None) -> Any:
    """Turn a resolved secret into the credential value a scheme expects.

    A JSON object is decoded (``{"user": ..., "pass": ...}``).  For ``http``
    ``basic`` schemes a ``user:pass`` string becomes
    :class:`~specinvoke.models.BasicCredentials`.  Anything else stays a
    string.
    """
    if secret.lstrip().startswith("{"):
        try:
            decoded = json.loads(secret)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Credential looks like JSON but cannot be decoded: {exc}") from exc
        if _is_basic(scheme) and isinstance(decoded, Mapping):
            try:
                return BasicCredentials.model_validate(decoded)
            except ValueError as exc:
                raise ConfigError(f"Invalid basic credentials: {exc}") from exc
        return decoded
    if _is_basic(scheme):
        user, sep, password = secret.partition(":")
        if not sep:
            raise ConfigError("Basic credentials must be given as 'user:pass'")
        return BasicCredentials(user=user, password=password)
    return secret


def resolve_credentials(
    pairs: Sequence[str],
    schemes: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Build a credential set from ``scheme=source`` pairs.

    Args:
        pairs: Values of the repeated ``--credential`` option.
        schemes: Raw security schemes by name, used to shape each credential.

    Raises:
        ConfigError: If a pair is malformed or a source can't be resolved.
    """
    schemes = schemes or {}
    credentials: dict[str, Any] = {}
    for pair in pairs:
        name, sep, source = pair.partition("=")
        if not sep or not name:
            raise ConfigError(f"Credential must be given as 'scheme=source', got '{pair}'")
        credentials[name] = shape_credential(resolve_credential(source), schemes.get(name))
    return credentials
