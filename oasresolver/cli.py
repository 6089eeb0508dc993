import argparse
import logging
import sys
from typing import Optional, Sequence

from oasresolver.exceptions import OASResolverError
from oasresolver.loader import OASLoader
from oasresolver.location import URI, URIError, is_network_location
from oasresolver.model import Document


logger = logging.getLogger(__name__)


HELP_PROLOG = """
Load an OpenAPI 3.0 description and resolve all of its references.

LOCATION is either a local file path or an http(s) URL.  Relative
references in the description are resolved against LOCATION.

References leading outside of the initial document (anything not starting
with "#") are rejected unless -x (--allow-external-refs) is given.
"""


def _add_verbose_option(parser):
    parser.add_argument(
        '-v',
        '--verbose',
        action='count',
        default=0,
        help="Increase verbosity; can passed twice for full debug output.",
    )


def parse_logging(argv: Optional[Sequence[str]] = None) -> Sequence[str]:
    """
    Parse logging options and configure logging before parsing everything else.

    The options are re-added to the main parsing pass so that they appear
    in the help output.
    """
    verbosity_parser = argparse.ArgumentParser(add_help=False)
    _add_verbose_option(verbosity_parser)
    v_args, remaining_args = verbosity_parser.parse_known_args(argv)

    oasresolver_logger = logging.getLogger('oasresolver')
    if v_args.verbose:
        if v_args.verbose == 1:
            oasresolver_logger.setLevel(logging.INFO)
        else:
            oasresolver_logger.setLevel(logging.DEBUG)
    else:
        oasresolver_logger.setLevel(logging.WARNING)
    return remaining_args


def parse_non_logging(remaining_args: Sequence[str]) -> argparse.Namespace:
    """
    Parse everything except for logging and return the resulting namespace.
    """
    parser = argparse.ArgumentParser(
        prog='oasresolve',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=HELP_PROLOG,
    )
    parser.add_argument(
        'location',
        metavar='LOCATION',
        help="File path or URL of the initial document.",
    )
    parser.add_argument(
        '-x',
        '--allow-external-refs',
        action='store_true',
        help="Allow references to other documents, which are loaded from "
            "the filesystem or over HTTP(S) as needed.",
    )
    # Already parsed, but listed again for the help output.
    _add_verbose_option(parser)
    return parser.parse_args(remaining_args)


def summarize(document: Document) -> str:
    components = document.components
    counts = {
        'schemas': len(components.schemas),
        'parameters': len(components.parameters),
        'headers': len(components.headers),
        'requestBodies': len(components.request_bodies),
        'responses': len(components.responses),
        'examples': len(components.examples),
        'securitySchemes': len(components.security_schemes),
        'links': len(components.links),
    }
    return (
        f'{len(document.paths)} paths; components: ' +
        ', '.join(f'{count} {name}' for name, count in counts.items())
    )


def _is_url(location: str) -> bool:
    try:
        return is_network_location(URI(location))
    except (URIError, ValueError):
        return False


def load(argv: Optional[Sequence[str]] = None):
    remaining_args = parse_logging(argv)
    args = parse_non_logging(remaining_args)

    loader = OASLoader(allow_external_refs=args.allow_external_refs)
    try:
        if _is_url(args.location):
            document = loader.load_from_uri(args.location)
        else:
            document = loader.load_from_file(args.location)
    except OASResolverError as e:
        logger.critical(f'Could not resolve "{args.location}": {e}')
        sys.stderr.write('\nAPI description contains errors\n\n')
        sys.exit(1)

    sys.stderr.write(f'{summarize(document)}\n')
    sys.stderr.write('References resolved.\n')
