import json
import logging
from typing import Any, Dict, List

import jschon


logging.getLogger('oasresolver').setLevel(logging.DEBUG)


BASE_URI = jschon.URI('https://example.com/')
API_URI = BASE_URI.copy(path='/apis/petstore/openapi.yaml')
SHARED_URI = BASE_URI.copy(path='/apis/shared.yaml')

MAIN_PATH = jschon.URI('/specs/a/main.yaml')
OTHER_PATH = jschon.URI('/specs/a/other.yaml')
SHARED_PATH = jschon.URI('/specs/shared.yaml')


def api_doc(components=None, paths=None, **kwargs) -> Dict[str, Any]:
    doc = {
        'openapi': '3.0.3',
        'info': {'title': 'Test', 'version': '1.0.0'},
        'paths': {} if paths is None else paths,
    }
    if components is not None:
        doc['components'] = components
    doc.update(kwargs)
    return doc


def as_json(data: Any) -> bytes:
    return json.dumps(data).encode('utf-8')


class FakeFetcher:
    """Serve documents from a dict keyed by location string."""

    def __init__(self, documents: Dict[str, Any]) -> None:
        self.documents = {
            k: v if isinstance(v, bytes) else as_json(v)
            for k, v in documents.items()
        }
        self.calls: List[str] = []

    def __call__(self, location: jschon.URI) -> bytes:
        self.calls.append(str(location))
        return self.documents[str(location)]
