from __future__ import annotations

import logging
import pathlib
import posixpath
import urllib.parse
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Union
import json

import jschon.utils
import requests
import yaml

from oasresolver.exceptions import DocumentFormatError, ResourceLoadError
from oasresolver.location import URI, is_network_location

__all__ = [
    'LoadedContent',
    'ResourceLoader',
    'FileLoader',
    'HttpLoader',
    'DefaultLoader',
    'ContentParser',
    'Fetcher',
]

logger = logging.getLogger(__name__)


Fetcher = Callable[[URI], bytes]
"""Anything that turns a location into raw document bytes."""


@dataclass(frozen=True)
class LoadedContent:
    content: bytes
    location: URI


class ResourceLoader:
    """
    Base class for byte fetchers.

    Instances are callable, so a loader can be passed anywhere a
    :data:`Fetcher` is accepted.
    """
    def load(self, location: URI) -> LoadedContent:
        raise NotImplementedError

    def can_load(self, location: URI) -> bool:
        raise NotImplementedError

    def __call__(self, location: URI) -> bytes:
        return self.load(location).content


class FileLoader(ResourceLoader):
    def can_load(self, location: URI) -> bool:
        return not (location.scheme or location.authority or location.query)

    def load(self, location: URI) -> LoadedContent:
        """Read a local file named by the (percent-decoded) location path."""
        path = pathlib.Path(urllib.parse.unquote(location.path or ''))
        logger.info(f'Reading "{path}"...')
        try:
            content = path.read_bytes()
        except OSError as e:
            raise ResourceLoadError(
                f'Could not read "{path}": {e}',
                str(location),
            ) from e
        return LoadedContent(content=content, location=location)


class HttpLoader(ResourceLoader):
    """
    Fetch over HTTP(S) with :func:`requests.get`.

    :param session: An optional :class:`requests.Session` to reuse
        connections or configure authentication
    """
    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self._session = session

    def can_load(self, location: URI) -> bool:
        return is_network_location(location)

    def load(self, location: URI) -> LoadedContent:
        url = str(location.copy(fragment=None))
        logger.info(f'Fetching <{url}>...')
        get = requests.get if self._session is None else self._session.get
        try:
            response = get(url)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ResourceLoadError(
                f'Could not fetch <{url}>: {e}',
                url,
            ) from e
        return LoadedContent(content=response.content, location=location)


class DefaultLoader(ResourceLoader):
    """
    Dispatch to the first of several loaders that accepts the location.

    By default network locations (scheme and host) go over HTTP, bare
    paths are read from the local filesystem, and anything else (such as
    a scheme without a host) is rejected.
    """
    def __init__(self, loaders: Optional[Tuple[ResourceLoader, ...]] = None):
        self._loaders = (
            (HttpLoader(), FileLoader()) if loaders is None else loaders
        )

    def can_load(self, location: URI) -> bool:
        return any(loader.can_load(location) for loader in self._loaders)

    def load(self, location: URI) -> LoadedContent:
        for loader in self._loaders:
            if loader.can_load(location):
                return loader.load(location)
        raise ResourceLoadError(f'unsupported URI: <{location}>', str(location))


class ContentParser:
    """Turn raw bytes into JSON-compatible data, choosing by file suffix."""

    SUPPORTED_SUFFIXES = ('.json', '.yaml', '.yml')
    """Suffixes for which we have parsers, when a media type is unavailable"""

    def get_parser(self, suffix: Optional[str]) -> Callable[[str, str], Any]:
        """Map of file suffixes to parsing functions."""
        return {
            '.json': self._json_parse,
            '.yaml': self._yaml_parse,
            '.yml': self._yaml_parse,
        }.get(suffix, self._unknown_parse)

    @staticmethod
    def suffix_of(location: Optional[URI]) -> str:
        if location is None:
            return ''
        return posixpath.splitext(location.path or '')[1].lower()

    def parse(
        self,
        content: Union[bytes, str],
        location: Optional[URI] = None,
    ) -> Any:
        if isinstance(content, bytes):
            try:
                content = content.decode('utf-8')
            except UnicodeDecodeError as e:
                raise DocumentFormatError(
                    f'Content of <{location}> is not UTF-8: {e}',
                    None if location is None else str(location),
                ) from e
        return self.get_parser(self.suffix_of(location))(content, location)

    def _json_parse(self, content: str, location: Optional[URI]) -> Any:
        logger.debug(f'Parsing <{location}> as JSON...')
        try:
            return jschon.utils.json_loads(content)
        except json.JSONDecodeError as e:
            raise DocumentFormatError(
                f'Could not parse <{location}> as JSON: {e}',
                None if location is None else str(location),
            ) from e

    def _yaml_parse(self, content: str, location: Optional[URI]) -> Any:
        logger.debug(f'Parsing <{location}> as YAML...')
        try:
            return yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise DocumentFormatError(
                f'Could not parse <{location}> as YAML: {e}',
                None if location is None else str(location),
            ) from e

    def _unknown_parse(self, content: str, location: Optional[URI]) -> Any:
        """
        Parse content of unknown type by trying first JSON then YAML.
        """
        try:
            return self._json_parse(content, location)
        except DocumentFormatError as e1:
            logger.debug(
                f'Failed to parse <{location}> of unknown type '
                f'as JSON:\n\t{e1}',
            )
            return self._yaml_parse(content, location)
