"""
Location arithmetic for references that cross document boundaries.

All functions here are pure: they take and return :class:`URI` values (or
``None`` for documents with no known origin) and never touch the network
or the filesystem.
"""
from __future__ import annotations

import logging
import posixpath
from typing import Optional, Union

import jschon
import jschon.exc


__all__ = [
    'URI',
    'URIError',
    'Location',
    'join',
    'resolve',
    'rebase',
    'location_key',
    'is_network_location',
]


logger = logging.getLogger(__name__)


URI = jschon.URI
"""URI alias for modules that otherwise have no need for jschon."""


URIError = jschon.exc.URIError
"""URI error alias for modules that otherwise have no need for jschon."""


Location = Optional[URI]
"""Where a document was loaded from; ``None`` for in-memory documents."""


def _as_uri(value: Union[str, URI]) -> URI:
    return value if isinstance(value, URI) else URI(str(value))


def _directory(path: str) -> str:
    # Go-style path.Dir semantics: a bare file name lives in "./"
    if path.endswith('/'):
        return path
    parent = posixpath.dirname(path)
    if not parent:
        return './'
    return parent if parent.endswith('/') else parent + '/'


def is_network_location(location: URI) -> bool:
    return bool(location.scheme) and bool(location.authority)


def join(base: Location, relative: Union[str, URI]) -> URI:
    """
    Join ``relative`` onto the directory of ``base``.

    The result keeps the scheme and authority of ``base``.  With no base,
    ``relative`` is returned unchanged.
    """
    relative = _as_uri(relative)
    if base is None:
        return relative

    base_dir = posixpath.dirname(base.path or '')
    joined = posixpath.normpath(posixpath.join(base_dir, relative.path or ''))
    if joined == '.':
        joined = ''
    logger.debug(f'Joined <{relative}> onto <{base}> as "{joined}"')
    return base.copy(
        path=joined,
        query=relative.query if relative.query else None,
        fragment=None,
    )


def resolve(base: Location, candidate: Union[str, URI]) -> URI:
    """
    Resolve ``candidate`` against ``base`` unless it is already absolute.

    A candidate with a scheme or authority is a complete network (or other
    scheme) location, and a candidate whose path starts with ``/`` is an
    absolute filesystem path; both are returned as-is.
    """
    candidate = _as_uri(candidate)
    if candidate.scheme or candidate.authority:
        return candidate
    if (candidate.path or '').startswith('/'):
        return candidate
    return join(base, candidate)


def rebase(location: Location, reference: str) -> Location:
    """
    Return the directory against which the target of ``reference`` resolves
    its own relative references.

    For a fragment-only reference that is the directory of ``location``
    itself; otherwise it is the directory of the document the reference
    points into.  The result always has a path ending in ``/``.
    """
    if location is None:
        return None

    target = _as_uri(reference).copy(fragment=None)
    if target.scheme or target.authority or target.path:
        target = resolve(location, target)
    else:
        target = location

    if not target.path and target.authority:
        directory = '/'
    else:
        directory = _directory(target.path or '')
    return target.copy(path=directory, query=None, fragment=None)


def location_key(location: Location) -> str:
    """Normalized string key for caches; ``'_'`` for absent locations."""
    if location is None:
        return '_'
    return str(location.copy(fragment=None))
