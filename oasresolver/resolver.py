"""
The reference resolution engine.

A :class:`ReferenceResolver` performs exactly one top-level resolution:
it walks a :class:`~oasresolver.model.Document`'s component registry and
path table, filling in :attr:`RefNode.value <oasresolver.model.RefNode.value>`
for every reachable reference node, loading and resolving foreign documents
as references lead into them.  Its visited state and document caches live
only as long as the resolver, which :class:`~oasresolver.loader.OASLoader`
creates fresh for each call.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING, Any, Callable, Dict, FrozenSet, Iterable, Optional, Set,
    Tuple, Type,
)

import jschon.exc

from oasresolver import location as loc
from oasresolver.exceptions import (
    BadReferenceDataError,
    DocumentFormatError,
    ExternalRefNotAllowedError,
    FragmentPartNotFoundError,
    MalformedFragmentError,
    MalformedReferenceError,
    ResourceLoadError,
    SchemaContentConflictError,
)
from oasresolver.location import URI, URIError
from oasresolver.model import (
    Document,
    Example,
    Header,
    Link,
    MediaType,
    Parameter,
    PathItem,
    PathItemRef,
    RefNode,
    RequestBody,
    Response,
    Schema,
    SchemaRef,
    SecurityScheme,
)
from oasresolver.pointer import PointerNavigationError, drill, parse_fragment

if TYPE_CHECKING:
    from oasresolver.loader import OASLoader

__all__ = [
    'ReferenceResolver',
    'Scope',
]

logger = logging.getLogger(__name__)


AliasKey = Tuple[int, str]
"""Identity of a reference target: (id of scope root, JSON pointer)."""


@dataclass(frozen=True)
class Scope:
    """
    Where a node lives.

    :param root: The :class:`~oasresolver.model.Document` fragment-only
        references are navigated from
    :param location: Where relative references are resolved from; either
        the document's own location or a directory inside which it lives
    """
    root: Any
    location: loc.Location

    def rebased(self, reference: str = '') -> Scope:
        return Scope(self.root, loc.rebase(self.location, reference))


class ReferenceResolver:
    """
    Resolve every reference reachable from a document, once.

    :param loader: Supplies the external-reference policy, the fetcher,
        and parsing for foreign documents
    """
    def __init__(self, loader: OASLoader) -> None:
        self._loader = loader

        self._visited: Set[RefNode] = set()
        self._visited_values: Dict[Type[RefNode], Dict[int, Any]] = (
            defaultdict(dict)
        )
        self._visited_paths: Set[Tuple[str, str]] = set()

        self._documents: Dict[str, Document] = {}
        self._elements: Dict[Tuple[str, Type[RefNode]], RefNode] = {}
        self._decoded: Dict[Tuple[int, str, Type[RefNode]], RefNode] = {}

        self._child_walkers: Dict[type, Callable[[Any, Scope], None]] = {
            Schema: self._walk_schema,
            Parameter: self._walk_parameter,
            Header: self._walk_parameter,
            RequestBody: self._walk_request_body,
            Response: self._walk_response,
            PathItem: self._walk_path_item,
            Example: self._walk_nothing,
            Link: self._walk_nothing,
            SecurityScheme: self._walk_nothing,
        }

    def resolve_document(
        self,
        document: Document,
        location: loc.Location = None,
    ) -> None:
        """Resolve the component registry and path table of ``document``."""
        key = loc.location_key(location)
        if location is not None:
            self._documents.setdefault(key, document)
        logger.info(f'Resolving references in document <{key}>')

        scope = Scope(document, location)
        components = document.components
        for registry in (
            components.headers,
            components.parameters,
            components.request_bodies,
            components.responses,
            components.schemas,
            components.security_schemes,
            components.examples,
            components.links,
        ):
            self._resolve_all(registry.values(), scope)

        for template, path_item in document.paths.items():
            self.resolve_path_item(template, path_item, scope)

    def resolve_path_item(
        self,
        template: str,
        node: PathItemRef,
        scope: Scope,
    ) -> None:
        """Resolve a path table entry at most once per (location, template)."""
        key = (loc.location_key(scope.location), template)
        if key in self._visited_paths:
            return
        self._visited_paths.add(key)
        self.resolve_node(node, scope)

    def resolve_node(
        self,
        node: Optional[RefNode],
        scope: Scope,
        aliases: FrozenSet[AliasKey] = frozenset(),
    ) -> None:
        """
        Resolve one reference node and, for inline values, its children.

        :param aliases: Targets already followed by the chain of pure
            references that led here; reset whenever a value is entered
        """
        if node is None:
            raise BadReferenceDataError('invalid reference node: missing')

        if node in self._visited:
            return
        if self._is_visited_value(node):
            return
        self._visited.add(node)
        self._record_value(node)

        if node.ref:
            logger.debug(f'Following {node.kind} reference {node.ref!r}')
            target = self._follow(node, scope, aliases)
            if target is not None:
                node.value = target.value
            self._record_value(node)
            return

        if node.value is None:
            raise BadReferenceDataError(
                f'invalid {node.kind}: neither "$ref" nor a value present',
            )
        self._walk_children(node.value, scope.rebased())

    def _is_visited_value(self, node: RefNode) -> bool:
        return (
            node.value is not None and
            id(node.value) in self._visited_values[type(node)]
        )

    def _record_value(self, node: RefNode) -> None:
        if node.value is not None:
            self._visited_values[type(node)][id(node.value)] = node.value

    def _follow(
        self,
        node: RefNode,
        scope: Scope,
        aliases: FrozenSet[AliasKey],
    ) -> Optional[RefNode]:
        ref = node.ref
        is_local = ref.startswith('#')
        if not is_local and not self._loader.allow_external_refs:
            raise ExternalRefNotAllowedError(ref)

        uri = self._parse_reference(ref)
        if not is_local and not uri.fragment:
            target_scope, candidate = self.load_single_element(
                type(node), ref, scope,
            )
            alias = (id(candidate), '')
        else:
            fragment = uri.fragment or ''
            if not fragment.startswith('/'):
                raise MalformedFragmentError(
                    f"expected fragment prefix '#/' in URI {ref!r}",
                    ref,
                )

            target_scope = scope
            if not is_local:
                target_scope = self._load_foreign_scope(ref, uri, scope)
            cursor, pointer = self._navigate(target_scope.root, ref, fragment)
            alias = (id(target_scope.root), str(pointer))
            candidate = self._coerce(type(node), cursor, ref, alias)

        if alias in aliases:
            logger.warning(
                f'Reference {ref!r} only leads back to itself through other '
                'references; leaving it unresolved',
            )
            return None

        # Resolve a copy so that the addressed node keeps its own place
        # (and visited state) in the document it came from.
        resolved = type(node)(ref=candidate.ref, value=candidate.value)
        self.resolve_node(resolved, target_scope, aliases | {alias})
        return resolved

    def _parse_reference(self, ref: str) -> URI:
        try:
            return URI(ref)
        except (URIError, ValueError) as e:
            raise MalformedReferenceError(
                f'cannot parse reference: {ref!r}: {e}',
                ref,
            ) from e

    def _navigate(
        self,
        root: Any,
        ref: str,
        fragment: str,
    ) -> Tuple[Any, jschon.JSONPointer]:
        try:
            pointer = parse_fragment(fragment)
        except jschon.exc.JSONPointerError as e:
            raise MalformedFragmentError(
                f'invalid JSON pointer fragment in URI {ref!r}: {e}',
                ref,
            ) from e

        cursor = root
        for index, part in enumerate(pointer):
            try:
                cursor = drill(cursor, part)
            except PointerNavigationError as e:
                raise FragmentPartNotFoundError(
                    ref, str(pointer[:index]), part,
                ) from e
            if cursor is None:
                raise FragmentPartNotFoundError(
                    ref, str(pointer[:index]), part,
                )
        return cursor, pointer

    def _coerce(
        self,
        ref_cls: Type[RefNode],
        cursor: Any,
        ref: str,
        target: AliasKey,
    ) -> RefNode:
        if type(cursor) is ref_cls:
            return cursor
        if type(cursor) is ref_cls.value_class:
            return ref_cls(value=cursor)
        if isinstance(cursor, dict):
            # Generic data is decoded once per target and kind.
            key = (*target, ref_cls)
            if (decoded := self._decoded.get(key)) is not None:
                return decoded
            try:
                decoded = ref_cls.from_data(cursor)
            except DocumentFormatError as e:
                raise BadReferenceDataError(
                    f'bad data in {ref!r}: {e}',
                    ref,
                ) from e
            self._decoded[key] = decoded
            return decoded
        raise BadReferenceDataError(
            f'bad data in {ref!r}: expected {ref_cls.kind}, '
            f'found {type(cursor).__name__}',
            ref,
        )

    def _load_foreign_scope(self, ref: str, uri: URI, scope: Scope) -> Scope:
        target = loc.resolve(scope.location, uri.copy(fragment=None))
        logger.debug(f'Reference {ref!r} leads into document <{target}>')
        return Scope(self.load_document(target, ref), target)

    def _fetch_and_parse(
        self,
        ref: str,
        location: URI,
        parse: Callable[[bytes, URI], Any],
    ) -> Any:
        try:
            content = self._loader.fetch(location)
        except ResourceLoadError as e:
            raise ResourceLoadError(
                f'error resolving reference {ref!r}: {e}',
                e.location,
            ) from e
        except Exception as e:
            raise ResourceLoadError(
                f'error resolving reference {ref!r}: '
                f'could not fetch <{location}>: {e!r}',
                str(location),
            ) from e

        try:
            return parse(content, location)
        except DocumentFormatError as e:
            raise DocumentFormatError(
                f'error resolving reference {ref!r}: {e}',
                e.location,
            ) from e

    def load_document(self, location: URI, ref: str) -> Document:
        """
        Return the fully resolved document at ``location``.

        Each location is fetched at most once per resolver.  A document is
        cached before its own references are resolved, so documents that
        refer to each other see the in-progress instance instead of
        loading again.

        :param ref: The reference that led here, reported with any
            fetching or parsing error
        """
        key = loc.location_key(location)
        if (document := self._documents.get(key)) is not None:
            return document

        logger.info(f'Loading referenced document <{key}>')
        document = self._fetch_and_parse(
            ref, location, self._loader.parse_document,
        )
        self._documents[key] = document
        self.resolve_document(document, location)
        return document

    def load_single_element(
        self,
        ref_cls: Type[RefNode],
        ref: str,
        scope: Scope,
    ) -> Tuple[Scope, RefNode]:
        """
        Load a file holding exactly one ``ref_cls`` element.

        The returned scope keeps the referring root, so fragment-only
        references inside the file address the referring document, while
        relative references resolve from the file's own location.
        """
        if not self._loader.allow_external_refs:
            raise ExternalRefNotAllowedError(ref)

        uri = self._parse_reference(ref)
        if uri.fragment:
            raise MalformedReferenceError(
                'references to files which contain more than one element '
                f'definition are not supported: {ref!r}',
                ref,
            )

        target = loc.resolve(scope.location, uri.copy(fragment=None))
        key = (loc.location_key(target), ref_cls)
        if (element := self._elements.get(key)) is None:
            logger.info(f'Loading {ref_cls.kind} from <{target}>')

            def parse_element(content, location):
                data = self._loader.parse(content, location)
                try:
                    return ref_cls.from_data(data)
                except DocumentFormatError as e:
                    raise DocumentFormatError(
                        f'Could not load {ref_cls.kind} from <{location}>: '
                        f'{e}',
                        str(location),
                    ) from e

            element = self._fetch_and_parse(ref, target, parse_element)
            self._elements[key] = element

        return Scope(scope.root, target), element

    def _resolve_all(self, nodes: Iterable[RefNode], scope: Scope) -> None:
        for node in nodes:
            self.resolve_node(node, scope)

    def _walk_children(self, value: Any, scope: Scope) -> None:
        self._child_walkers[type(value)](value, scope)

    def _walk_nothing(self, value: Any, scope: Scope) -> None:
        pass

    def _walk_schema(self, schema: Schema, scope: Scope) -> None:
        if schema.items is not None:
            self.resolve_node(schema.items, scope)
        self._resolve_all(schema.properties.values(), scope)
        if isinstance(schema.additional_properties, SchemaRef):
            self.resolve_node(schema.additional_properties, scope)
        if schema.not_ is not None:
            self.resolve_node(schema.not_, scope)
        for subschemas in (schema.all_of, schema.any_of, schema.one_of):
            self._resolve_all(subschemas, scope)

    def _walk_parameter(self, parameter: Header, scope: Scope) -> None:
        kind = 'parameter' if isinstance(parameter, Parameter) else 'header'
        if parameter.schema is not None and parameter.content:
            raise SchemaContentConflictError(
                f'cannot contain both schema and content in a {kind}',
            )
        if parameter.schema is not None:
            self.resolve_node(parameter.schema, scope)
        for media_type in parameter.content.values():
            self._walk_media_type(media_type, scope)
        self._resolve_all(parameter.examples.values(), scope)

    def _walk_media_type(self, media_type: MediaType, scope: Scope) -> None:
        if media_type.schema is not None:
            self.resolve_node(media_type.schema, scope)
        self._resolve_all(media_type.examples.values(), scope)

    def _walk_request_body(self, body: RequestBody, scope: Scope) -> None:
        for media_type in body.content.values():
            self._walk_media_type(media_type, scope)

    def _walk_response(self, response: Response, scope: Scope) -> None:
        self._resolve_all(response.headers.values(), scope)
        for media_type in response.content.values():
            self._walk_media_type(media_type, scope)
        self._resolve_all(response.links.values(), scope)

    def _walk_path_item(self, path_item: PathItem, scope: Scope) -> None:
        self._resolve_all(path_item.parameters, scope)
        for method, operation in path_item.operations().items():
            logger.debug(f'Resolving {method.upper()} operation')
            self._resolve_all(operation.parameters, scope)
            if operation.request_body is not None:
                self.resolve_node(operation.request_body, scope)
            self._resolve_all(operation.responses.values(), scope)
