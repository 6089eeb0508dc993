from dataclasses import FrozenInstanceError
from unittest import mock

import pytest
import requests

from oasresolver.exceptions import DocumentFormatError, ResourceLoadError
from oasresolver.source import (
    LoadedContent,
    ResourceLoader,
    FileLoader,
    HttpLoader,
    DefaultLoader,
    ContentParser,
)
from oasresolver.location import URI

from . import API_URI, MAIN_PATH


def test_loaded_content():
    lc = LoadedContent(b'{}', MAIN_PATH)
    assert lc.content == b'{}'
    assert lc.location is MAIN_PATH

    with pytest.raises(FrozenInstanceError):
        lc.content = b''


def test_resource_loader_is_abstract():
    with pytest.raises(NotImplementedError):
        ResourceLoader()(MAIN_PATH)


@pytest.mark.parametrize('suffix,parser', (
    (None, '_unknown_parse'),
    ('', '_unknown_parse'),
    ('.json', '_json_parse'),
    ('.yaml', '_yaml_parse'),
    ('.yml', '_yaml_parse'),
))
def test_get_parser(suffix, parser):
    cp = ContentParser()
    assert cp.get_parser(suffix) == getattr(cp, parser)


@pytest.mark.parametrize('location,parser', (
    (URI('/specs/openapi.json'), '_json_parse'),
    (URI('/specs/openapi.YAML'), '_yaml_parse'),
    (URI('https://example.com/openapi.yml?v=1'), '_yaml_parse'),
    (URI('https://example.com/openapi'), '_unknown_parse'),
    (None, '_unknown_parse'),
))
def test_parse_dispatch(location, parser):
    cp = ContentParser()
    with mock.patch.object(cp, parser) as mock_parser:
        cp.parse(b'{}', location)
        assert mock_parser.mock_calls == [mock.call('{}', location)]


@pytest.mark.parametrize('content,location,expected', (
    (b'{"a": [1, 2]}', URI('x.json'), {'a': [1, 2]}),
    ('a:\n  - 1\n  - 2\n', URI('x.yaml'), {'a': [1, 2]}),
    (b'{"a": 1}', None, {'a': 1}),
    (b'a: 1\n200: ok\n', None, {'a': 1, 200: 'ok'}),
))
def test_parse(content, location, expected):
    assert ContentParser().parse(content, location) == expected


@pytest.mark.parametrize('content,location,error', (
    (b'{"a": ', URI('x.json'), 'as JSON'),
    (b'a: [', URI('x.yaml'), 'as YAML'),
    (b'a: [', None, 'as YAML'),
    (b'\xff\xfe', URI('x.json'), 'not UTF-8'),
))
def test_parse_errors(content, location, error):
    with pytest.raises(DocumentFormatError, match=error):
        ContentParser().parse(content, location)


@pytest.mark.parametrize('location,expected', (
    (MAIN_PATH, True),
    (URI('main.yaml'), True),
    (API_URI, False),
    (URI('file:/specs/main.yaml'), False),
    (URI('/specs/main.yaml?v=1'), False),
))
def test_file_loader_can_load(location, expected):
    assert FileLoader().can_load(location) is expected


def test_file_loader(tmp_path):
    path = tmp_path / 'my api.yaml'
    path.write_bytes(b'openapi: 3.0.3\n')
    location = URI(path.as_posix().replace(' ', '%20'))

    loaded = FileLoader().load(location)
    assert loaded.content == b'openapi: 3.0.3\n'
    assert loaded.location is location


def test_file_loader_missing(tmp_path):
    location = URI((tmp_path / 'missing.yaml').as_posix())
    with pytest.raises(ResourceLoadError, match='Could not read') as exc_info:
        FileLoader().load(location)
    assert exc_info.value.location == str(location)


def test_http_loader():
    response = mock.Mock(content=b'openapi: 3.0.3\n')
    with mock.patch('requests.get', return_value=response) as mock_get:
        content = HttpLoader()(API_URI.copy(fragment='/paths'))

    assert content == b'openapi: 3.0.3\n'
    assert mock_get.mock_calls[0] == mock.call(str(API_URI))
    response.raise_for_status.assert_called_once_with()


def test_http_loader_session():
    session = mock.Mock()
    session.get.return_value = mock.Mock(content=b'{}')
    assert HttpLoader(session)(API_URI) == b'{}'
    session.get.assert_called_once_with(str(API_URI))


def test_http_loader_error():
    response = mock.Mock()
    response.raise_for_status.side_effect = requests.HTTPError('404 Not Found')
    with mock.patch('requests.get', return_value=response):
        with pytest.raises(ResourceLoadError, match='404') as exc_info:
            HttpLoader().load(API_URI)
    assert exc_info.value.location == str(API_URI)
    assert isinstance(exc_info.value.__cause__, requests.HTTPError)


@pytest.mark.parametrize('location,loader_cls', (
    (API_URI, HttpLoader),
    (MAIN_PATH, FileLoader),
))
def test_default_loader_dispatch(location, loader_cls):
    dl = DefaultLoader()
    with mock.patch.object(loader_cls, 'load') as mock_load:
        dl.load(location)
    assert mock_load.mock_calls == [mock.call(location)]


@pytest.mark.parametrize('location', (
    URI('file:/specs/main.yaml'),
    URI('//example.com/main.yaml'),
    URI('/specs/main.yaml?v=1'),
))
def test_default_loader_unsupported(location):
    dl = DefaultLoader()
    assert dl.can_load(location) is False
    with pytest.raises(ResourceLoadError, match='unsupported URI'):
        dl.load(location)
