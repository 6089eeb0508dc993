"""
:mod:`oasresolver` package initialization

Logging for the whole package is configured here.
"""
import os
import sys
import logging
import coloredlog

from oasresolver.exceptions import (
    OASResolverError,
    ResolutionError,
    ResourceLoadError,
    DocumentFormatError,
)
from oasresolver.loader import OASLoader

__all__ = [
    'OASLoader',
    'OASResolverError',
    'ResolutionError',
    'ResourceLoadError',
    'DocumentFormatError',
]

_oasresolver_logger = logging.getLogger('oasresolver')
_log_formatter = logging.Formatter(
    '%(asctime)s %(filename)s:%(lineno)d [%(levelname)s] %(message)s',
)
_log_handler = (
    coloredlog.ConsoleHandler(stream=sys.stderr)
    if sys.stderr.isatty() or os.getenv('OASRESOLVER_COLOR') == '1'
    else logging.StreamHandler()
)
_log_handler.setFormatter(_log_formatter)
_oasresolver_logger.addHandler(_log_handler)
