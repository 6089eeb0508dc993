import pytest

from oasresolver.location import (
    URI,
    join,
    resolve,
    rebase,
    location_key,
    is_network_location,
)

from . import BASE_URI, MAIN_PATH, OTHER_PATH, SHARED_PATH


@pytest.mark.parametrize('base,relative,expected', (
    (None, 'other.yaml', 'other.yaml'),
    (MAIN_PATH, 'other.yaml', '/specs/a/other.yaml'),
    (MAIN_PATH, '../shared.yaml', '/specs/shared.yaml'),
    (MAIN_PATH, './common/schemas.json', '/specs/a/common/schemas.json'),
    (
        URI('https://example.com/apis/openapi.yaml'),
        'shared.yaml',
        'https://example.com/apis/shared.yaml',
    ),
    (
        URI('https://example.com/apis/openapi.yaml#/paths'),
        'schemas.yaml?version=2',
        'https://example.com/apis/schemas.yaml?version=2',
    ),
))
def test_join(base, relative, expected):
    assert str(join(base, relative)) == expected


@pytest.mark.parametrize('base,candidate,expected', (
    (MAIN_PATH, 'other.yaml', str(OTHER_PATH)),
    (MAIN_PATH, str(SHARED_PATH), str(SHARED_PATH)),
    (MAIN_PATH, 'https://ex.com/x.yaml', 'https://ex.com/x.yaml'),
    (BASE_URI, '//other.com/x.yaml', '//other.com/x.yaml'),
    (None, 'other.yaml', 'other.yaml'),
))
def test_resolve(base, candidate, expected):
    assert str(resolve(base, URI(candidate))) == expected


@pytest.mark.parametrize('location,reference,expected', (
    (None, 'other.yaml#/a', None),
    (MAIN_PATH, '', '/specs/a/'),
    (MAIN_PATH, '#/components/schemas/Pet', '/specs/a/'),
    (MAIN_PATH, 'common/pet.yaml#/Pet', '/specs/a/common/'),
    (MAIN_PATH, '/specs/shared.yaml#/Pet', '/specs/'),
    (MAIN_PATH, '../header.yaml', '/specs/'),
    (URI('main.yaml'), '', './'),
    (URI('https://example.com'), '', 'https://example.com/'),
    (
        URI('https://example.com/apis/openapi.yaml?x=1'),
        '',
        'https://example.com/apis/',
    ),
))
def test_rebase(location, reference, expected):
    rebased = rebase(location, reference)
    if expected is None:
        assert rebased is None
    else:
        assert str(rebased) == expected
        assert rebased.path.endswith('/')


@pytest.mark.parametrize('location,key', (
    (None, '_'),
    (MAIN_PATH, '/specs/a/main.yaml'),
    (URI('/specs/a/main.yaml#/paths'), '/specs/a/main.yaml'),
))
def test_location_key(location, key):
    assert location_key(location) == key


@pytest.mark.parametrize('location,expected', (
    (BASE_URI, True),
    (MAIN_PATH, False),
    (URI('file:/specs/a/main.yaml'), False),
    (URI('//example.com/foo.yaml'), False),
))
def test_is_network_location(location, expected):
    assert is_network_location(location) is expected
