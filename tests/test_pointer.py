import jschon.exc
import pytest

from oasresolver.model import (
    Document,
    Parameter,
    ParameterRef,
    Schema,
    SchemaRef,
)
from oasresolver.pointer import (
    drill,
    parse_fragment,
    KeyNotFoundError,
    IndexOutOfBoundsError,
    FieldNotFoundError,
    NotNavigableError,
    PointerNavigationError,
)


@pytest.mark.parametrize('fragment,parts', (
    ('/components/schemas/Pet', ['components', 'schemas', 'Pet']),
    ('/paths/~1pets~1{id}/get', ['paths', '/pets/{id}', 'get']),
    ('/a~1b~0c', ['a/b~c']),
    ('/a%20b', ['a b']),
    ('/~01', ['~1']),
    ('', []),
))
def test_parse_fragment(fragment, parts):
    assert list(parse_fragment(fragment)) == parts


def test_parse_fragment_malformed():
    with pytest.raises(jschon.exc.JSONPointerError):
        parse_fragment('components')


@pytest.mark.parametrize('node,part,expected', (
    ({'a/b~c': 1}, 'a/b~c', 1),
    (['x', 'y', 'z'], '2', 'z'),
    (('x',), '0', 'x'),
))
def test_drill_generic(node, part, expected):
    assert drill(node, part) == expected


@pytest.mark.parametrize('node,part,error', (
    ({'a': 1}, 'b', KeyNotFoundError),
    (['x'], '1', IndexOutOfBoundsError),
    (['x'], '-', IndexOutOfBoundsError),
    (['x'], '-1', IndexOutOfBoundsError),
    ('scalar', 'a', NotNavigableError),
    (42, '0', NotNavigableError),
    (Schema(), 'nonexistent', FieldNotFoundError),
    (SchemaRef(ref='#/components/schemas/Pet'), 'type', FieldNotFoundError),
))
def test_drill_errors(node, part, error):
    with pytest.raises(error):
        drill(node, part)
    assert issubclass(error, PointerNavigationError)


def test_drill_record_uses_serialized_names():
    items = SchemaRef(value=Schema(type='string'))
    schema = Schema(type='array', items=items, additional_properties=False)

    assert drill(schema, 'type') == 'array'
    assert drill(schema, 'items') is items
    assert drill(schema, 'additionalProperties') is False
    with pytest.raises(FieldNotFoundError):
        drill(schema, 'additional_properties')


def test_drill_ref_wrapper_falls_through_to_value():
    param = Parameter(name='limit', location='query')
    wrapper = ParameterRef(value=param)

    assert drill(wrapper, '$ref') is None
    assert drill(wrapper, 'in') == 'query'
    assert drill(wrapper, 'name') == 'limit'


def test_drill_extensions():
    doc = Document.from_data({
        'openapi': '3.0.3',
        'x-schemas': {'Pet': {'type': 'object'}},
    })
    assert drill(drill(doc, 'x-schemas'), 'Pet') == {'type': 'object'}

    pet = SchemaRef.from_data({'type': 'object', 'x-owner': 'team'})
    assert drill(pet, 'x-owner') == 'team'
