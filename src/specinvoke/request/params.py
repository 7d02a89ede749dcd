"""Serialize parameter values into path segments, query strings and headers.

OpenAPI controls how a value is flattened into a string with the
parameter's ``style`` and ``explode`` fields.  This module implements those
rules as pure functions: the same definition and value always produce the
same string.

* **Path** (``simple``, ``label``, ``matrix``) -- expanded with an RFC 6570
  URI template (``{id}``, ``{.id*}``, ``{;id}``...) and substituted for the
  ``{name}`` placeholder of the path template.
* **Query** (``form``, ``spaceDelimited``, ``pipeDelimited``,
  ``deepObject``) -- produces ``name=value`` fragments that are joined with
  ``&`` by :func:`build_query`.
* **Header** (``simple``) -- expanded with ``{name}`` or ``{name*}`` and set
  on the request headers.  ``Accept``, ``Content-Type`` and
  ``Authorization`` header parameters are ignored: the caller and the
  security resolver own those headers.

Cookie parameters are not serialized; cookies are managed by the client.

Example::

    >>> build_query([ParameterDefinition(name="id", location="query", schema={})], {"id": [1, 2]})
    'id=1&id=2'
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Iterable
from urllib.parse import quote

import httpx
from uritemplate import URITemplate

from specinvoke.models import ParameterDefinition, ParameterLocation

TemplateExpander = Callable[[str, Mapping[str, Any]], str]

IGNORED_HEADERS = frozenset({"accept", "content-type", "authorization"})

# Characters encodeURIComponent leaves alone besides letters and digits.
_COMPONENT_SAFE = "-_.!~*'()"

_PATH_PREFIXES = {"matrix": ";", "label": "."}
_QUERY_DELIMITERS = {"spaceDelimited": "%20", "pipeDelimited": "|"}


def stringify(value: Any) -> str:
    """Render a scalar the way it appears in a URL.

    Booleans become ``true``/``false``, integral floats lose their ``.0``
    and ``None`` becomes the empty string.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def encode_component(value: Any) -> str:
    """Percent-encode *value* like JavaScript's ``encodeURIComponent``."""
    return quote(stringify(value), safe=_COMPONENT_SAFE)


def expand_template(template: str, values: Mapping[str, Any]) -> str:
    """Expand an RFC 6570 URI template with :mod:`uritemplate`.

    This is the default template expander of a built API.
    """
    return URITemplate(template).expand(dict(values))


def _template_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Mapping):
        return {str(key): stringify(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [stringify(item) for item in value]
    return stringify(value)


def _encoder(allow_reserved: bool) -> Callable[[Any], str]:
    return stringify if allow_reserved else encode_component


# --------------------------------------------------------------------------- #
# Path
# --------------------------------------------------------------------------- #


def serialize_path(
    path: str,
    parameter: ParameterDefinition,
    values: Mapping[str, Any],
    expander: TemplateExpander = expand_template,
) -> str:
    """Substitute one path parameter into *path*.

    ``matrix`` style expands with a ``;`` prefix, ``label`` with ``.``, and
    ``simple`` with none; ``explode`` adds the ``*`` modifier.

    Args:
        path: The path template, e.g. ``/users/{id}``.
        parameter: A path parameter definition.
        values: Caller-supplied parameter values keyed by name.
        expander: URI template expander.

    Returns:
        *path* with every ``{name}`` placeholder replaced.
    """
    name = parameter.name
    prefix = _PATH_PREFIXES.get(parameter.effective_style, "")
    suffix = "*" if parameter.effective_explode else ""
    expansion = expander(
        f"{{{prefix}{name}{suffix}}}",
        {name: _template_value(values.get(name))},
    )
    return path.replace(f"{{{name}}}", expansion)


def build_path(
    path: str,
    parameters: Iterable[ParameterDefinition],
    values: Mapping[str, Any],
    expander: TemplateExpander = expand_template,
) -> str:
    """Substitute every path parameter in *parameters* into *path*."""
    for parameter in parameters:
        if parameter.location is ParameterLocation.PATH:
            path = serialize_path(path, parameter, values, expander)
    return path


# --------------------------------------------------------------------------- #
# Query
# --------------------------------------------------------------------------- #


def _deep_object_pairs(
    prefix: str,
    value: Any,
    encode: Callable[[Any], str],
) -> list[tuple[str, str]]:
    if isinstance(value, Mapping):
        items = [(str(key), item) for key, item in value.items()]
    elif isinstance(value, (list, tuple)):
        items = [(str(position), item) for position, item in enumerate(value)]
    else:
        return [(prefix, encode(value))]

    pairs: list[tuple[str, str]] = []
    for key, item in items:
        pairs.extend(_deep_object_pairs(f"{prefix}[{encode(key)}]", item, encode))
    return pairs


def serialize_query(
    parameter: ParameterDefinition,
    values: Mapping[str, Any],
) -> list[str]:
    """Serialize one query parameter into ``key=value`` fragments.

    Rules, with ``name`` the parameter name:

    * ``None`` or missing -- ``name=`` when ``allowEmptyValue``, otherwise
      nothing.
    * ``deepObject`` -- ``name[key]=value`` per leaf, nested objects and
      arrays adding one bracket segment per level.
    * array, exploded -- one ``name=item`` per element.
    * array, not exploded -- one ``name=`` fragment with the elements joined
      by ``%20`` (``spaceDelimited``), ``|`` (``pipeDelimited``) or ``,``.
    * object, exploded -- one ``key=value`` per entry; the parameter name is
      not used.
    * object, not exploded -- ``name=key,value,key,value``.
    * scalar -- ``name=value``.

    Names are always percent-encoded; values are too unless
    ``allowReserved`` is set.

    Returns:
        The fragments in order, possibly empty.
    """
    name = parameter.name
    key = encode_component(name)
    value = values.get(name)
    encode = _encoder(parameter.allow_reserved)
    style = parameter.effective_style

    if value is None:
        return [f"{key}="] if parameter.allow_empty_value else []

    if style == "deepObject":
        return [f"{k}={v}" for k, v in _deep_object_pairs(key, value, encode)]

    if isinstance(value, (list, tuple)):
        if parameter.effective_explode:
            return [f"{key}={encode(item)}" for item in value]
        delimiter = _QUERY_DELIMITERS.get(style, ",")
        return [f"{key}={delimiter.join(encode(item) for item in value)}"]

    if isinstance(value, Mapping):
        # Object members are not defined to be anything but scalars.
        if parameter.effective_explode:
            return [f"{encode_component(k)}={encode(v)}" for k, v in value.items()]
        flattened = ",".join(f"{encode(k)},{encode(v)}" for k, v in value.items())
        return [f"{key}={flattened}"]

    return [f"{key}={encode(value)}"]


def build_query(
    parameters: Iterable[ParameterDefinition],
    values: Mapping[str, Any],
) -> str:
    """Serialize every query parameter and join the fragments with ``&``."""
    fragments: list[str] = []
    for parameter in parameters:
        if parameter.location is ParameterLocation.QUERY:
            fragments.extend(serialize_query(parameter, values))
    return "&".join(fragments)


# --------------------------------------------------------------------------- #
# Headers
# --------------------------------------------------------------------------- #


def serialize_headers(
    parameters: Iterable[ParameterDefinition],
    values: Mapping[str, Any],
    headers: httpx.Headers,
    expander: TemplateExpander = expand_template,
) -> httpx.Headers:
    """Set every header parameter with a supplied value on *headers*.

    Parameters named ``Accept``, ``Content-Type`` or ``Authorization``
    (any case) are skipped, as are parameters without a value.

    Returns:
        *headers*, mutated in place.
    """
    for parameter in parameters:
        if parameter.location is not ParameterLocation.HEADER:
            continue
        name = parameter.name
        if name.lower() in IGNORED_HEADERS:
            continue
        value = values.get(name)
        if value is None:
            continue
        suffix = "*" if parameter.effective_explode else ""
        headers[name] = expander(f"{{{name}{suffix}}}", {name: _template_value(value)})
    return headers
