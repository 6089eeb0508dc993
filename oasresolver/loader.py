from __future__ import annotations

import logging
import pathlib
import urllib.parse
from typing import Any, Optional, Union

from oasresolver.exceptions import DocumentFormatError
from oasresolver.location import URI, Location
from oasresolver.model import Document
from oasresolver.resolver import ReferenceResolver
from oasresolver.source import ContentParser, DefaultLoader, Fetcher

__all__ = [
    'OASLoader',
]

logger = logging.getLogger(__name__)


class OASLoader:
    """
    Load OpenAPI 3.0 documents and resolve every reference in them.

    Each entry point performs one complete resolution with fresh visited
    state, so a single loader may be reused for any number of documents.

    :param allow_external_refs: Whether references may leave the document
        they appear in; when ``False`` (the default) any reference that
        does not start with ``#`` fails without anything being fetched
    :param fetcher: Turns a location into document bytes; defaults to
        :class:`~oasresolver.source.DefaultLoader`
    :param parser: Turns bytes into JSON-compatible data
    """
    def __init__(
        self,
        allow_external_refs: bool = False,
        fetcher: Optional[Fetcher] = None,
        parser: Optional[ContentParser] = None,
    ) -> None:
        self.allow_external_refs = allow_external_refs
        self._fetcher = DefaultLoader() if fetcher is None else fetcher
        self._parser = ContentParser() if parser is None else parser

    def fetch(self, location: URI) -> bytes:
        return self._fetcher(location)

    def parse(self, content: Union[bytes, str], location: Location) -> Any:
        return self._parser.parse(content, location)

    def parse_document(
        self,
        content: Union[bytes, str],
        location: Location,
    ) -> Document:
        """Parse and decode a whole document without resolving it."""
        data = self.parse(content, location)
        try:
            return Document.from_data(data)
        except DocumentFormatError as e:
            where = '<memory>' if location is None else f'<{location}>'
            raise DocumentFormatError(
                f'Could not load document {where}: {e}',
                None if location is None else str(location),
            ) from e

    def load_from_data(self, data: Union[bytes, str]) -> Document:
        """Parse and resolve a document that has no known location."""
        return self.load_from_data_with_location(data, None)

    def load_from_data_with_location(
        self,
        data: Union[bytes, str],
        location: Location,
    ) -> Document:
        """
        Parse and resolve a document, resolving relative references
        against ``location``.
        """
        if location is not None and not isinstance(location, URI):
            location = URI(str(location))
        document = self.parse_document(data, location)
        self.resolve_refs_in(document, location)
        return document

    def load_from_file(self, path: Union[str, pathlib.Path]) -> Document:
        """Read a local file and resolve it with the file as its location."""
        location = URI(urllib.parse.quote(pathlib.Path(path).as_posix()))
        logger.info(f'Loading document from file "{path}"')
        return self.load_from_data_with_location(
            self.fetch(location),
            location,
        )

    def load_from_uri(self, uri: Union[str, URI]) -> Document:
        """Fetch a document and resolve it with ``uri`` as its location."""
        location = uri if isinstance(uri, URI) else URI(uri)
        logger.info(f'Loading document from <{location}>')
        return self.load_from_data_with_location(
            self.fetch(location),
            location,
        )

    def resolve_refs_in(
        self,
        document: Document,
        location: Location = None,
    ) -> None:
        """
        Resolve references in an already-decoded document, in place.

        Errors propagate and leave the document partially resolved.
        """
        ReferenceResolver(self).resolve_document(document, location)
        logger.info('References resolved.')
