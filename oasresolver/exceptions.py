from typing import Optional

__all__ = [
    'OASResolverError',
    'ResolutionError',
    'ExternalRefNotAllowedError',
    'MalformedReferenceError',
    'MalformedFragmentError',
    'FragmentPartNotFoundError',
    'BadReferenceDataError',
    'SchemaContentConflictError',
    'ResourceLoadError',
    'DocumentFormatError',
]


class OASResolverError(Exception):
    pass


class ResolutionError(OASResolverError):
    """
    Base class for errors caused by a specific ``$ref`` value.

    :param message: Human-readable description of the problem
    :param reference: The offending ``$ref`` string, if known
    """
    def __init__(self, message: str, reference: Optional[str] = None):
        super().__init__(message, reference)

    def __str__(self):
        return self.args[0]

    @property
    def reference(self) -> Optional[str]:
        return self.args[1]


class ExternalRefNotAllowedError(ResolutionError):
    def __init__(self, reference: str):
        super().__init__(
            f'encountered non-allowed external reference: {reference!r}',
            reference,
        )


class MalformedReferenceError(ResolutionError):
    pass


class MalformedFragmentError(ResolutionError):
    pass


class FragmentPartNotFoundError(ResolutionError):
    """Raised when a fragment segment cannot be navigated."""
    def __init__(self, reference: str, path: str, part: str):
        message = (
            f'failed to resolve {part!r} in fragment in URI: {reference!r}'
        )
        if path:
            message += f' (after "{path}")'
        super().__init__(message, reference)
        self._path = path
        self._part = part

    @property
    def path(self) -> str:
        """The escaped JSON pointer walked before the failing segment."""
        return self._path

    @property
    def part(self) -> str:
        return self._part


class BadReferenceDataError(ResolutionError):
    pass


class SchemaContentConflictError(ResolutionError):
    pass


class ResourceLoadError(OASResolverError):
    def __init__(self, message: str, location: Optional[str] = None):
        super().__init__(message, location)

    def __str__(self):
        return self.args[0]

    @property
    def location(self) -> Optional[str]:
        return self.args[1]


class DocumentFormatError(ResourceLoadError):
    pass
