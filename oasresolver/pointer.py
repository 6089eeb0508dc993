"""
Walk one JSON pointer segment at a time through typed or generic nodes.

:func:`drill` understands four node shapes: mappings, sequences, records
(:class:`~oasresolver.model.OASObject` dataclasses) and ref wrappers
(:class:`~oasresolver.model.RefNode`).  A ref wrapper that does not itself
have the requested field is transparent, so a pointer such as
``/components/schemas/Pet/properties/name`` can pass from the wrapper
stored under ``Pet`` into its resolved :class:`~oasresolver.model.Schema`.
"""
import re
import logging
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from typing import Any

import jschon

from oasresolver.model import OASObject, RefNode

__all__ = [
    'drill',
    'parse_fragment',
    'PointerNavigationError',
    'KeyNotFoundError',
    'IndexOutOfBoundsError',
    'FieldNotFoundError',
    'NotNavigableError',
]

logger = logging.getLogger(__name__)


ARRAY_INDEX = re.compile(r'[0-9]+')


class PointerNavigationError(Exception):
    pass


class KeyNotFoundError(PointerNavigationError):
    pass


class IndexOutOfBoundsError(PointerNavigationError):
    pass


class FieldNotFoundError(PointerNavigationError):
    pass


class NotNavigableError(PointerNavigationError):
    pass


def parse_fragment(fragment: str) -> jschon.JSONPointer:
    """
    Parse a URI fragment into a JSON pointer of unescaped segments.

    Percent-encoding is decoded first, then ``~1`` and ``~0`` become ``/``
    and ``~``.

    :raises jschon.exc.JSONPointerError: if the fragment is not a valid
        JSON pointer
    """
    return jschon.JSONPointer.parse_uri_fragment(fragment)


def _drill_record(node: Any, part: str) -> Any:
    for f in fields(node):
        if f.metadata.get('oas_name') == part:
            return getattr(node, f.name)

    if isinstance(node, RefNode):
        if node.value is None:
            raise FieldNotFoundError(
                f'field {part!r} not found in unresolved '
                f'{type(node).__name__} {node.ref!r}',
            )
        return drill(node.value, part)

    if isinstance(node, OASObject) and part in node.extensions:
        return node.extensions[part]

    raise FieldNotFoundError(
        f'field {part!r} not found in {type(node).__name__}',
    )


def drill(node: Any, part: str) -> Any:
    """
    Return the child of ``node`` addressed by one unescaped pointer segment.

    :raises PointerNavigationError: (a subclass of) if the child does not
        exist or ``node`` cannot have children
    """
    if isinstance(node, Mapping):
        try:
            return node[part]
        except KeyError:
            raise KeyNotFoundError(f'map key {part!r} not found') from None

    if isinstance(node, (list, tuple)):
        if not ARRAY_INDEX.fullmatch(part):
            raise IndexOutOfBoundsError(f'{part!r} is not an array index')
        index = int(part)
        if index >= len(node):
            raise IndexOutOfBoundsError(
                f'index {index} out of bounds for length {len(node)}',
            )
        return node[index]

    if is_dataclass(node) and not isinstance(node, type):
        return _drill_record(node, part)

    raise NotNavigableError(
        f'cannot look up {part!r} in {type(node).__name__}: '
        'not a map, sequence, nor record',
    )
