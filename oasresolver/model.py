"""
Typed OpenAPI 3.0 nodes, limited to what reference resolution needs.

Records are dataclasses whose fields carry their serialized OAS name in
the ``oas_name`` metadata entry, which is what both :meth:`OASObject.from_data`
and the pointer navigator match against.  Keys that a record does not
declare, including ``x-`` extensions, are kept in its ``extensions``
side-table.

Every referencable kind has a :class:`RefNode` subclass wrapping either a
``$ref`` string or an inline value.  All nodes compare and hash by identity,
as resolved graphs may be cyclic and the resolver tracks visited nodes by
identity rather than by value.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import (
    Any, Callable, ClassVar, Dict, Generic, List, Mapping, Optional, Type,
    TypeVar, Union,
)

from oasresolver.exceptions import DocumentFormatError

__all__ = [
    'OASObject',
    'RefNode',
    'SchemaRef',
    'ParameterRef',
    'HeaderRef',
    'RequestBodyRef',
    'ResponseRef',
    'ExampleRef',
    'SecuritySchemeRef',
    'LinkRef',
    'PathItemRef',
    'Schema',
    'MediaType',
    'Parameter',
    'Header',
    'RequestBody',
    'Response',
    'Example',
    'Link',
    'SecurityScheme',
    'Operation',
    'PathItem',
    'Components',
    'Document',
    'HTTP_METHODS',
    'REF_KINDS',
]

logger = logging.getLogger(__name__)

T = TypeVar('T', bound='OASObject')

Decoder = Callable[[Any], Any]

HTTP_METHODS = (
    'get', 'put', 'post', 'delete', 'options', 'head', 'patch', 'trace',
)


def oas_field(
    name: str,
    decode: Optional[Decoder] = None,
    *,
    factory: Optional[Callable[[], Any]] = None,
):
    """Declare a record field serialized as ``name`` in OAS documents."""
    metadata = {'oas_name': name, 'decode': decode}
    if factory is None:
        return field(default=None, metadata=metadata)
    return field(default_factory=factory, metadata=metadata)


def _require_mapping(data: Any, what: str) -> Mapping:
    if not isinstance(data, Mapping):
        raise DocumentFormatError(
            f'invalid {what}: value MUST be a JSON object, '
            f'got {type(data).__name__}',
        )
    return data


def map_of(decode: Decoder, *, skip_extensions: bool = False) -> Decoder:
    def decode_map(data):
        _require_mapping(data, 'map')
        # YAML turns unquoted keys such as response codes into integers
        return {
            str(k): decode(v) for k, v in data.items()
            if not (skip_extensions and str(k).startswith('x-'))
        }
    return decode_map


def list_of(decode: Decoder) -> Decoder:
    def decode_list(data):
        if not isinstance(data, list):
            raise DocumentFormatError(
                f'invalid list: value MUST be a JSON array, '
                f'got {type(data).__name__}',
            )
        return [decode(v) for v in data]
    return decode_list


@dataclass(eq=False, repr=False)
class RefNode(Generic[T]):
    """
    A referencable slot: either a ``$ref`` string or an inline value.

    Before resolution exactly one of :attr:`ref` and :attr:`value` is
    meaningful.  Resolution fills in :attr:`value` for reference nodes
    and leaves inline nodes untouched.
    """
    ref: Optional[str] = field(default=None, metadata={'oas_name': '$ref'})
    value: Optional[T] = None

    kind: ClassVar[str] = 'reference'
    value_class: ClassVar[Type[OASObject]]

    def __repr__(self):
        value = None if self.value is None else f'<{type(self.value).__name__}>'
        return f'{type(self).__name__}(ref={self.ref!r}, value={value})'

    @classmethod
    def from_data(cls, data: Any) -> RefNode:
        _require_mapping(data, cls.kind)
        if '$ref' in data:
            ref = data['$ref']
            if not isinstance(ref, str):
                raise DocumentFormatError(
                    f'invalid {cls.kind}: "$ref" MUST be a string, '
                    f'got {type(ref).__name__}',
                )
            return cls(ref=ref)
        return cls(value=cls.value_class.from_data(data))


class SchemaRef(RefNode['Schema']):
    kind = 'schema'


class ParameterRef(RefNode['Parameter']):
    kind = 'parameter'


class HeaderRef(RefNode['Header']):
    kind = 'header'


class RequestBodyRef(RefNode['RequestBody']):
    kind = 'requestBody'


class ResponseRef(RefNode['Response']):
    kind = 'response'


class ExampleRef(RefNode['Example']):
    kind = 'example'


class SecuritySchemeRef(RefNode['SecurityScheme']):
    kind = 'securityScheme'


class LinkRef(RefNode['Link']):
    kind = 'link'


class PathItemRef(RefNode['PathItem']):
    kind = 'path item'


@dataclass(eq=False)
class OASObject:
    """Base class for records decoded from OAS document data."""
    extensions: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def oas_fields(cls) -> Dict[str, Any]:
        """Map of serialized OAS names to dataclass fields."""
        return {
            f.metadata['oas_name']: f
            for f in fields(cls) if 'oas_name' in f.metadata
        }

    @classmethod
    def from_data(cls, data: Any):
        _require_mapping(data, cls.__name__)
        known = cls.oas_fields()
        kwargs = {}
        extensions = {}
        for key, value in data.items():
            key = str(key)
            if (f := known.get(key)) is None:
                extensions[key] = value
                continue

            decode = f.metadata['decode']
            if decode is None:
                kwargs[f.name] = value
            elif value is not None:
                kwargs[f.name] = decode(value)

        return cls(extensions=extensions, **kwargs)


def _decode_additional_properties(data: Any) -> Union[bool, SchemaRef]:
    if isinstance(data, bool):
        return data
    return SchemaRef.from_data(data)


@dataclass(eq=False)
class Schema(OASObject):
    title: Optional[str] = oas_field('title')
    multiple_of: Optional[float] = oas_field('multipleOf')
    maximum: Optional[float] = oas_field('maximum')
    exclusive_maximum: Optional[bool] = oas_field('exclusiveMaximum')
    minimum: Optional[float] = oas_field('minimum')
    exclusive_minimum: Optional[bool] = oas_field('exclusiveMinimum')
    max_length: Optional[int] = oas_field('maxLength')
    min_length: Optional[int] = oas_field('minLength')
    pattern: Optional[str] = oas_field('pattern')
    max_items: Optional[int] = oas_field('maxItems')
    min_items: Optional[int] = oas_field('minItems')
    unique_items: Optional[bool] = oas_field('uniqueItems')
    max_properties: Optional[int] = oas_field('maxProperties')
    min_properties: Optional[int] = oas_field('minProperties')
    required: Optional[List[str]] = oas_field('required')
    enum: Optional[List[Any]] = oas_field('enum')
    type: Optional[str] = oas_field('type')
    all_of: List[SchemaRef] = oas_field(
        'allOf', list_of(SchemaRef.from_data), factory=list,
    )
    one_of: List[SchemaRef] = oas_field(
        'oneOf', list_of(SchemaRef.from_data), factory=list,
    )
    any_of: List[SchemaRef] = oas_field(
        'anyOf', list_of(SchemaRef.from_data), factory=list,
    )
    not_: Optional[SchemaRef] = oas_field('not', SchemaRef.from_data)
    items: Optional[SchemaRef] = oas_field('items', SchemaRef.from_data)
    properties: Dict[str, SchemaRef] = oas_field(
        'properties', map_of(SchemaRef.from_data), factory=dict,
    )
    additional_properties: Union[bool, SchemaRef, None] = oas_field(
        'additionalProperties', _decode_additional_properties,
    )
    description: Optional[str] = oas_field('description')
    format: Optional[str] = oas_field('format')
    default: Any = oas_field('default')
    nullable: Optional[bool] = oas_field('nullable')
    discriminator: Optional[Dict[str, Any]] = oas_field('discriminator')
    read_only: Optional[bool] = oas_field('readOnly')
    write_only: Optional[bool] = oas_field('writeOnly')
    xml: Optional[Dict[str, Any]] = oas_field('xml')
    external_docs: Optional[Dict[str, Any]] = oas_field('externalDocs')
    example: Any = oas_field('example')
    deprecated: Optional[bool] = oas_field('deprecated')


@dataclass(eq=False)
class Example(OASObject):
    summary: Optional[str] = oas_field('summary')
    description: Optional[str] = oas_field('description')
    value: Any = oas_field('value')
    external_value: Optional[str] = oas_field('externalValue')


@dataclass(eq=False)
class MediaType(OASObject):
    schema: Optional[SchemaRef] = oas_field('schema', SchemaRef.from_data)
    example: Any = oas_field('example')
    examples: Dict[str, ExampleRef] = oas_field(
        'examples', map_of(ExampleRef.from_data), factory=dict,
    )
    encoding: Optional[Dict[str, Any]] = oas_field('encoding')


@dataclass(eq=False)
class Header(OASObject):
    description: Optional[str] = oas_field('description')
    required: Optional[bool] = oas_field('required')
    deprecated: Optional[bool] = oas_field('deprecated')
    allow_empty_value: Optional[bool] = oas_field('allowEmptyValue')
    style: Optional[str] = oas_field('style')
    explode: Optional[bool] = oas_field('explode')
    allow_reserved: Optional[bool] = oas_field('allowReserved')
    schema: Optional[SchemaRef] = oas_field('schema', SchemaRef.from_data)
    example: Any = oas_field('example')
    examples: Dict[str, ExampleRef] = oas_field(
        'examples', map_of(ExampleRef.from_data), factory=dict,
    )
    content: Dict[str, MediaType] = oas_field(
        'content', map_of(MediaType.from_data), factory=dict,
    )


@dataclass(eq=False)
class Parameter(Header):
    name: Optional[str] = oas_field('name')
    location: Optional[str] = oas_field('in')


@dataclass(eq=False)
class RequestBody(OASObject):
    description: Optional[str] = oas_field('description')
    content: Dict[str, MediaType] = oas_field(
        'content', map_of(MediaType.from_data), factory=dict,
    )
    required: Optional[bool] = oas_field('required')


@dataclass(eq=False)
class Link(OASObject):
    operation_ref: Optional[str] = oas_field('operationRef')
    operation_id: Optional[str] = oas_field('operationId')
    parameters: Optional[Dict[str, Any]] = oas_field('parameters')
    request_body: Any = oas_field('requestBody')
    description: Optional[str] = oas_field('description')
    server: Optional[Dict[str, Any]] = oas_field('server')


@dataclass(eq=False)
class Response(OASObject):
    description: Optional[str] = oas_field('description')
    headers: Dict[str, HeaderRef] = oas_field(
        'headers', map_of(HeaderRef.from_data), factory=dict,
    )
    content: Dict[str, MediaType] = oas_field(
        'content', map_of(MediaType.from_data), factory=dict,
    )
    links: Dict[str, LinkRef] = oas_field(
        'links', map_of(LinkRef.from_data), factory=dict,
    )


@dataclass(eq=False)
class SecurityScheme(OASObject):
    type: Optional[str] = oas_field('type')
    description: Optional[str] = oas_field('description')
    name: Optional[str] = oas_field('name')
    location: Optional[str] = oas_field('in')
    scheme: Optional[str] = oas_field('scheme')
    bearer_format: Optional[str] = oas_field('bearerFormat')
    flows: Optional[Dict[str, Any]] = oas_field('flows')
    open_id_connect_url: Optional[str] = oas_field('openIdConnectUrl')


@dataclass(eq=False)
class Operation(OASObject):
    tags: Optional[List[str]] = oas_field('tags')
    summary: Optional[str] = oas_field('summary')
    description: Optional[str] = oas_field('description')
    external_docs: Optional[Dict[str, Any]] = oas_field('externalDocs')
    operation_id: Optional[str] = oas_field('operationId')
    parameters: List[ParameterRef] = oas_field(
        'parameters', list_of(ParameterRef.from_data), factory=list,
    )
    request_body: Optional[RequestBodyRef] = oas_field(
        'requestBody', RequestBodyRef.from_data,
    )
    responses: Dict[str, ResponseRef] = oas_field(
        'responses',
        map_of(ResponseRef.from_data, skip_extensions=True),
        factory=dict,
    )
    callbacks: Optional[Dict[str, Any]] = oas_field('callbacks')
    deprecated: Optional[bool] = oas_field('deprecated')
    security: Optional[List[Dict[str, Any]]] = oas_field('security')
    servers: Optional[List[Dict[str, Any]]] = oas_field('servers')


@dataclass(eq=False)
class PathItem(OASObject):
    summary: Optional[str] = oas_field('summary')
    description: Optional[str] = oas_field('description')
    get: Optional[Operation] = oas_field('get', Operation.from_data)
    put: Optional[Operation] = oas_field('put', Operation.from_data)
    post: Optional[Operation] = oas_field('post', Operation.from_data)
    delete: Optional[Operation] = oas_field('delete', Operation.from_data)
    options: Optional[Operation] = oas_field('options', Operation.from_data)
    head: Optional[Operation] = oas_field('head', Operation.from_data)
    patch: Optional[Operation] = oas_field('patch', Operation.from_data)
    trace: Optional[Operation] = oas_field('trace', Operation.from_data)
    servers: Optional[List[Dict[str, Any]]] = oas_field('servers')
    parameters: List[ParameterRef] = oas_field(
        'parameters', list_of(ParameterRef.from_data), factory=list,
    )

    def operations(self) -> Dict[str, Operation]:
        """The operations present on this path item, keyed by HTTP verb."""
        return {
            method: op for method in HTTP_METHODS
            if (op := getattr(self, method)) is not None
        }


@dataclass(eq=False)
class Components(OASObject):
    schemas: Dict[str, SchemaRef] = oas_field(
        'schemas', map_of(SchemaRef.from_data), factory=dict,
    )
    responses: Dict[str, ResponseRef] = oas_field(
        'responses', map_of(ResponseRef.from_data), factory=dict,
    )
    parameters: Dict[str, ParameterRef] = oas_field(
        'parameters', map_of(ParameterRef.from_data), factory=dict,
    )
    examples: Dict[str, ExampleRef] = oas_field(
        'examples', map_of(ExampleRef.from_data), factory=dict,
    )
    request_bodies: Dict[str, RequestBodyRef] = oas_field(
        'requestBodies', map_of(RequestBodyRef.from_data), factory=dict,
    )
    headers: Dict[str, HeaderRef] = oas_field(
        'headers', map_of(HeaderRef.from_data), factory=dict,
    )
    security_schemes: Dict[str, SecuritySchemeRef] = oas_field(
        'securitySchemes', map_of(SecuritySchemeRef.from_data), factory=dict,
    )
    links: Dict[str, LinkRef] = oas_field(
        'links', map_of(LinkRef.from_data), factory=dict,
    )
    callbacks: Optional[Dict[str, Any]] = oas_field('callbacks')


@dataclass(eq=False)
class Document(OASObject):
    """The root OpenAPI object: component registry plus path table."""
    openapi: Optional[str] = oas_field('openapi')
    info: Optional[Dict[str, Any]] = oas_field('info')
    servers: Optional[List[Dict[str, Any]]] = oas_field('servers')
    paths: Dict[str, PathItemRef] = oas_field(
        'paths',
        map_of(PathItemRef.from_data, skip_extensions=True),
        factory=dict,
    )
    components: Components = oas_field(
        'components', Components.from_data, factory=Components,
    )
    security: Optional[List[Dict[str, Any]]] = oas_field('security')
    tags: Optional[List[Dict[str, Any]]] = oas_field('tags')
    external_docs: Optional[Dict[str, Any]] = oas_field('externalDocs')


REF_KINDS: Dict[Type[RefNode], Type[OASObject]] = {
    SchemaRef: Schema,
    ParameterRef: Parameter,
    HeaderRef: Header,
    RequestBodyRef: RequestBody,
    ResponseRef: Response,
    ExampleRef: Example,
    SecuritySchemeRef: SecurityScheme,
    LinkRef: Link,
    PathItemRef: PathItem,
}
"""Each ref wrapper class and the record class it resolves to."""

for _ref_cls, _value_cls in REF_KINDS.items():
    _ref_cls.value_class = _value_cls
