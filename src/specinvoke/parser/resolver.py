"""Lazy, memoized ``$ref`` resolution over an in-memory OpenAPI document graph.

OpenAPI documents use ``$ref`` pointers (e.g.
``{"$ref": "#/components/schemas/Pet"}`` or
``{"$ref": "common.yaml#/components/parameters/Limit"}``) to avoid
repetition.  :class:`ReferenceResolver` turns any subtree of such a document
into a *resolved value*: the same structure with every reference node
replaced by the value it points to, recursively.

Resolution is on demand.  Nothing is dereferenced until a caller asks for a
node, and unused branches (or external documents only they reference) are
never touched.  The resolver keeps three structures, all owned by one
instance and released with :meth:`ReferenceResolver.clear`:

* **Pointer index** -- built once per loaded document, maps an absolute
  pointer (``"<document-uri>#/json/pointer"``) to the node at that
  location.  Lookups never walk the document.
* **Resolution arena** -- maps the *identity* of every input node already
  resolved to its resolved value.  The entry for an object or array is
  installed before its children are resolved, so a schema that contains
  itself (directly or through other schemas) resolves to a cyclic Python
  structure that shares one value instead of recursing forever.  A
  reference node takes the value of the first non-reference node its
  ``$ref`` chain reaches; only a chain that loops through reference nodes
  alone is an error.
* **Fetch table** -- one task per external document URI, so concurrent
  callers share a single download.

:meth:`ReferenceResolver.dereference` runs in two phases.  First it walks
the requested subtree, following references, to find external documents
that are not loaded yet, and fetches all of them concurrently (repeating
until the reachable graph is complete).  Then it resolves the subtree
synchronously.  The second phase never suspends, so no other task can
observe a half-built entry of the arena.

The source document is never mutated.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import unquote, urljoin

import httpx

from specinvoke.exceptions import ReferenceResolutionError, SpecParseError
from specinvoke.output import debug
from specinvoke.parser.loader import load_document_async

DocumentLoader = Callable[[str], Awaitable[Any]]


def is_reference(node: Any) -> bool:
    """Return True if *node* is a reference node (``{"$ref": "<pointer>"}``)."""
    return isinstance(node, dict) and isinstance(node.get("$ref"), str)


def _escape_token(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def _unescape_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def _strip_fragment(uri: str) -> str:
    return uri.split("#", 1)[0]


class _DocumentNotLoaded(ReferenceResolutionError):
    """A pointer leads into an external document that is not loaded yet."""

    def __init__(self, uri: str, ref: str) -> None:
        super().__init__(f"Cannot resolve $ref '{ref}': external document '{uri}' is not loaded")
        self.uri = uri


class ReferenceResolver:
    """Resolve ``$ref`` pointers lazily, with identity-keyed memoization.

    Args:
        document: The root document.  Never mutated.
        document_uri: URI (or file path) of the root document.  Relative
            external references are resolved against it.  An empty string
            suits documents that only use internal references.
        loader: Coroutine function ``loader(uri) -> dict`` used to fetch
            external documents.  Defaults to
            :func:`~specinvoke.parser.loader.load_document_async`.

    Example::

        resolver = ReferenceResolver(spec)
        schema = await resolver.dereference({"$ref": "#/components/schemas/Pet"})
    """

    def __init__(
        self,
        document: Any,
        document_uri: str = "",
        loader: Optional[DocumentLoader] = None,
    ) -> None:
        self._root_uri = _strip_fragment(document_uri)
        self._loader: DocumentLoader = loader or load_document_async
        self._documents: dict[str, Any] = {}
        self._index: dict[str, Any] = {}
        self._origins: dict[int, str] = {}
        self._fetches: dict[str, asyncio.Future[None]] = {}
        # id(node) -> (node, resolved); the node is kept so its id stays unique.
        self._resolved: dict[int, tuple[Any, Any]] = {}
        self._walking: set[str] = set()
        self._journal: list[int] = []
        self._add_document(self._root_uri, document)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    @property
    def document(self) -> Any:
        """The root document this resolver was created for."""
        return self._documents[self._root_uri]

    @property
    def cache_size(self) -> int:
        """Number of input nodes with a memoized resolved value."""
        return len(self._resolved)

    async def dereference(self, node: Any) -> Any:
        """Return the fully resolved form of *node*.

        Scalars are returned unchanged.  Objects and arrays are resolved
        recursively; reference nodes are replaced by the resolved value of
        their target.  Calling this twice with the same node object returns
        the same resolved object.

        Args:
            node: Any value taken from (or built around) the document.

        Returns:
            The resolved value, free of reference nodes.

        Raises:
            ReferenceResolutionError: If a pointer does not exist, an
                external document cannot be loaded, or a ``$ref`` chain
                loops onto itself.
        """
        if not isinstance(node, (dict, list)):
            return node
        cached = self._resolved.get(id(node))
        if cached is not None:
            return cached[1]

        await self._load_external(node)
        return self._resolve_root(node)

    def follow(self, node: Any) -> Any:
        """Follow a chain of reference nodes to the first non-reference target.

        Unlike :meth:`dereference`, nested references inside the target are
        left untouched and nothing is fetched: every document on the chain
        must already be loaded.  Used at build time, where no event loop is
        available, for path items that are references.

        Raises:
            ReferenceResolutionError: If the chain leaves the loaded
                documents, points nowhere, or loops.
        """
        base = self._origins.get(id(node), self._root_uri)
        target, _, _ = self._follow_chain(node, base)
        return target

    def clear(self) -> None:
        """Drop every memoized resolved value.

        Loaded documents and their pointer index are kept, so later calls
        re-resolve without fetching again.
        """
        self._resolved.clear()

    # ------------------------------------------------------------------ #
    # Document loading and indexing
    # ------------------------------------------------------------------ #

    def _add_document(self, uri: str, document: Any) -> None:
        """Register *document* under *uri* and index every node by pointer."""
        self._documents[uri] = document
        visited: set[int] = set()
        stack: list[tuple[str, Any]] = [("", document)]
        while stack:
            pointer, value = stack.pop()
            self._index[f"{uri}#{pointer}"] = value
            if not isinstance(value, (dict, list)) or id(value) in visited:
                continue
            visited.add(id(value))
            self._origins.setdefault(id(value), uri)
            if isinstance(value, dict):
                for key, child in value.items():
                    stack.append((f"{pointer}/{_escape_token(str(key))}", child))
            else:
                for position, child in enumerate(value):
                    stack.append((f"{pointer}/{position}", child))

    async def _load_external(self, node: Any) -> None:
        """Fetch every external document reachable from *node*."""
        missing = self._missing_documents(node)
        while missing:
            await asyncio.gather(*(self._fetch(uri) for uri in sorted(missing)))
            missing = self._missing_documents(node)

    def _missing_documents(self, node: Any) -> set[str]:
        missing: set[str] = set()
        visited: set[int] = set()
        stack: list[tuple[Any, str]] = [(node, self._root_uri)]
        while stack:
            value, base = stack.pop()
            if not isinstance(value, (dict, list)) or id(value) in visited:
                continue
            visited.add(id(value))
            if id(value) in self._resolved:
                continue
            base = self._origins.get(id(value), base)
            if is_reference(value):
                uri, pointer = self._locate(value["$ref"], base)
                try:
                    target, target_base = self._lookup(uri, pointer, value["$ref"])
                except _DocumentNotLoaded as exc:
                    missing.add(exc.uri)
                    continue
                except ReferenceResolutionError:
                    # Reported when the node is resolved.
                    continue
                stack.append((target, target_base))
                continue
            children = value.values() if isinstance(value, dict) else value
            stack.extend((child, base) for child in children)
        return missing

    async def _fetch(self, uri: str) -> None:
        future = self._fetches.get(uri)
        if future is None:
            future = asyncio.ensure_future(self._load(uri))
            self._fetches[uri] = future
        try:
            await future
        except ReferenceResolutionError:
            if self._fetches.get(uri) is future:
                del self._fetches[uri]
            raise

    async def _load(self, uri: str) -> None:
        debug(f"Fetching external document {uri}")
        try:
            document = await self._loader(uri)
        except (SpecParseError, httpx.HTTPError, OSError) as exc:
            raise ReferenceResolutionError(
                f"Cannot load external document '{uri}': {exc}"
            ) from exc
        if uri not in self._documents:
            self._add_document(uri, document)

    # ------------------------------------------------------------------ #
    # Pointer handling
    # ------------------------------------------------------------------ #

    def _locate(self, ref: str, base: str) -> tuple[str, str]:
        """Split *ref* into an absolute document URI and a JSON pointer."""
        location, _, fragment = ref.partition("#")
        uri = _strip_fragment(urljoin(base, location)) if location else base
        pointer = unquote(fragment)
        if pointer and not pointer.startswith("/"):
            raise ReferenceResolutionError(
                f"Unsupported $ref '{ref}': only JSON pointer fragments are handled"
            )
        return uri, pointer

    def _lookup(self, uri: str, pointer: str, ref: str) -> tuple[Any, str]:
        """Return the node at *pointer* in document *uri*, and the URI it lives in.

        Pointers usually name a location of the document itself and are
        answered from the index.  A pointer may also pass through reference
        nodes (``#/components/schemas/Alias/properties/id`` where ``Alias``
        is a ``$ref``); those are followed token by token.
        """
        if uri not in self._documents:
            raise _DocumentNotLoaded(uri, ref)
        key = f"{uri}#{pointer}"
        if key in self._index:
            return self._index[key], uri
        if key in self._walking:
            raise ReferenceResolutionError(f"Circular $ref chain through '{ref}'")

        self._walking.add(key)
        try:
            node, base = self._documents[uri], uri
            for token in pointer.split("/")[1:]:
                node, base, _ = self._follow_chain(node, base)
                token = _unescape_token(token)
                if isinstance(node, dict) and token in node:
                    node = node[token]
                elif isinstance(node, list) and token.isdigit() and int(token) < len(node):
                    node = node[int(token)]
                else:
                    raise ReferenceResolutionError(f"Cannot resolve $ref '{ref}': no value at '{key}'")
                base = self._origins.get(id(node), base)
            return node, base
        finally:
            self._walking.discard(key)

    def _follow_chain(self, node: Any, base: str) -> tuple[Any, str, list[Any]]:
        """Follow reference nodes from *node* to the first non-reference target.

        Returns:
            The target, the URI of the document it lives in, and the
            reference nodes passed on the way.

        Raises:
            ReferenceResolutionError: If the chain loops through reference
                nodes only.
        """
        chain: list[Any] = []
        seen: set[int] = set()
        while is_reference(node):
            if id(node) in seen:
                raise ReferenceResolutionError(f"Circular $ref chain through '{node['$ref']}'")
            seen.add(id(node))
            chain.append(node)
            base = self._origins.get(id(node), base)
            node, base = self._lookup(*self._locate(node["$ref"], base), node["$ref"])
        return node, base, chain

    # ------------------------------------------------------------------ #
    # Resolution
    # ------------------------------------------------------------------ #

    def _resolve_root(self, node: Any) -> Any:
        """Resolve *node*, rolling the arena back if resolution fails."""
        self._journal = []
        try:
            return self._resolve(node, self._root_uri)
        except ReferenceResolutionError:
            for key in self._journal:
                self._resolved.pop(key, None)
            raise
        finally:
            self._journal = []

    def _install(self, node: Any, value: Any) -> None:
        self._resolved[id(node)] = (node, value)
        self._journal.append(id(node))

    def _resolve(self, node: Any, base: str) -> Any:
        if not isinstance(node, (dict, list)):
            return node
        key = id(node)
        cached = self._resolved.get(key)
        if cached is not None:
            return cached[1]
        base = self._origins.get(key, base)

        if is_reference(node):
            # The target container is installed before its children resolve,
            # so a cycle back to this reference node finds it in the arena.
            target, target_base, chain = self._follow_chain(node, base)
            value = self._resolve(target, target_base)
            for reference in chain:
                self._install(reference, value)
            return value

        if isinstance(node, list):
            items: list[Any] = []
            self._install(node, items)
            for item in node:
                items.append(self._resolve(item, base))
            return items

        mapping: dict[Any, Any] = {}
        self._install(node, mapping)
        for name, value in node.items():
            mapping[name] = self._resolve(value, base)
        return mapping
