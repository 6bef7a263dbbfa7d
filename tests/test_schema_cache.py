'''
Field schema derivation and the per-type schema cache.

'''
from dataclasses import (
    dataclass,
    field,
)
from functools import partial
from typing import (
    Annotated,
    Optional,
)

import msgspec
import pytest
import trio

import qscodec
from qscodec import (
    FieldSchema,
    SchemaCache,
    ShapeError,
    Struct,
    Tag,
    TagError,
    UInt8,
    UnsupportedTypeError,
    build_schema,
)


class MaybeString(Struct):
    valid: bool = False
    value: str = ''

    def query_value(self) -> str|None:
        return self.value if self.valid else None

    def query_set(self, value: str) -> None:
        self.valid = True
        self.value = value


class Base(Struct):
    bar: Annotated[str, Tag('bar')] = ''


class Tagged(Base):
    baz: Annotated[int, Tag('baz,omitempty')] = 0
    qux: Annotated[list[str], Tag(' qux ')] = []
    dropped: Annotated[str, Tag('-')] = ''
    bare: Annotated[str, Tag()] = ''
    unnamed: Annotated[int, Tag(',omitempty')] = 0
    renamed: str = msgspec.field(default='', name='re')
    small: Annotated[int, Tag('small,,uint8')] = 0
    width: Annotated[UInt8, Tag('width')] = 0
    maybe: Annotated[Optional[float], Tag('maybe')] = None
    untagged: int = 0
    special: Annotated[
        MaybeString,
        Tag('special,omitempty,string'),
    ] = msgspec.field(default_factory=MaybeString)
    _private: Annotated[str, Tag('private')] = ''


@dataclass
class Plain:
    tagged: Annotated[str, Tag('t')] = ''
    meta: int = field(default=0, metadata={'qs': 'm,omitempty'})
    named: str = field(default='', metadata={'name': 'n'})
    untagged: str = ''


class Unsupported(Struct):
    ok: str = ''
    nested: Annotated[Base, Tag('nested')] = msgspec.field(
        default_factory=Base,
    )


class BadPretend(Struct):
    x: Annotated[str, Tag('x,,complex64')] = ''


def by_name(schema: tuple[FieldSchema, ...]) -> dict[str, FieldSchema]:
    return {fs.name: fs for fs in schema}


def test_struct_schema_fields_and_keys():
    schema = build_schema(Tagged)
    fields = by_name(schema)

    # declaration order, inherited fields first, private, untagged and
    # `-` dropped
    assert [fs.name for fs in schema] == [
        'bar',
        'baz',
        'qux',
        'bare',
        'unnamed',
        'renamed',
        'small',
        'width',
        'maybe',
        'special',
    ]
    assert fields['bar'].key == 'bar'
    assert fields['qux'].key == 'qux'
    assert fields['qux'].shape.token == '[]string'
    assert fields['bare'].key == 'bare'

    # empty name segment falls back to the attr name
    assert fields['unnamed'].key == 'unnamed'
    assert fields['unnamed'].omit_empty

    # fallback vocab: the struct's own wire name
    assert fields['renamed'].key == 're'

    # pretend type overrides the declared `int`
    assert fields['small'].shape.token == 'uint8'
    assert fields['width'].shape.token == 'uint8'

    assert fields['maybe'].optional
    assert fields['maybe'].shape.token == 'float64'


class Untagged(Struct):
    x: int = 0
    y: Annotated[int, Tag('y')] = 0


@pytest.mark.parametrize(
    'untagged, expected',
    [
        ('skip', {'y': 'y'}),
        ('name', {'x': 'x', 'y': 'y'}),
    ],
    ids=['skip_untagged', 'name_untagged'],
)
def test_struct_untagged_policy(untagged, expected):
    schema = build_schema(Untagged, untagged=untagged)
    assert {fs.name: fs.key for fs in schema} == expected


def test_hooks_detected_once_at_build():
    special = by_name(build_schema(Tagged))['special']
    assert special.hook_type is MaybeString
    assert special.has_valuer
    assert special.has_setter
    assert special.shape.token == 'string'
    assert special.omit_empty

    bar = by_name(build_schema(Tagged))['bar']
    assert bar.hook_type is None
    assert not (bar.has_valuer or bar.has_setter)


@pytest.mark.parametrize(
    'untagged, expected',
    [
        ('skip', {'tagged': 't', 'meta': 'm', 'named': 'n'}),
        (
            'name',
            {'tagged': 't', 'meta': 'm', 'named': 'n', 'untagged': 'untagged'},
        ),
    ],
    ids=['skip_untagged', 'name_untagged'],
)
def test_dataclass_tag_vocab(untagged, expected):
    schema = build_schema(Plain, untagged=untagged)
    assert {fs.name: fs.key for fs in schema} == expected
    assert by_name(schema)['meta'].omit_empty


def test_unsupported_field_fails_whole_schema():
    with pytest.raises(UnsupportedTypeError) as excinfo:
        build_schema(Unsupported)

    err = excinfo.value
    assert err.field == 'nested'
    assert 'Unsupported.nested' in str(err)


def test_unknown_pretend_type_is_a_schema_error():
    with pytest.raises(TagError):
        build_schema(BadPretend)


@pytest.mark.parametrize(
    'cls',
    [int, dict, object, Tagged()],
    ids=['int', 'dict', 'object', 'instance'],
)
def test_non_record_types_rejected(cls):
    with pytest.raises(ShapeError):
        build_schema(cls)


def test_cache_builds_once_per_type(cache: SchemaCache):
    assert Tagged not in cache
    first = cache.get(Tagged)
    assert Tagged in cache
    assert len(cache) == 1

    # identical object delivered on every later hit
    assert cache.get(Tagged) is first

    cache.clear()
    assert len(cache) == 0
    again = cache.get(Tagged)
    assert again is not first
    assert again == first


def test_failed_builds_are_not_cached(cache: SchemaCache):
    for _ in range(2):
        with pytest.raises(UnsupportedTypeError):
            cache.get(Unsupported)

    assert Unsupported not in cache


def test_apply_cache_scopes_current(cache: SchemaCache):
    assert qscodec.current_cache() is cache

    other = SchemaCache(untagged='name')
    with qscodec.apply_cache(other) as applied:
        assert applied is other
        assert qscodec.current_cache() is other
        qscodec.encode(Plain(untagged='x'))
        assert Plain in other

    assert qscodec.current_cache() is cache
    assert Plain not in cache


def test_invalid_untagged_policy():
    with pytest.raises(ValueError):
        SchemaCache(untagged='guess')


def test_concurrent_first_lookups_agree():
    '''
    Race many threads on the first lookup of an unseen type; every
    caller must get an equal schema and exactly one entry is kept.

    '''
    cache = SchemaCache()
    results: list[tuple[FieldSchema, ...]] = []

    def lookup(cls: type) -> None:
        results.append(cache.get(cls))

    async def main():
        async with trio.open_nursery() as tn:
            for _ in range(32):
                tn.start_soon(
                    partial(
                        trio.to_thread.run_sync,
                        lookup,
                        Tagged,
                    )
                )

    trio.run(main)

    assert len(results) == 32
    assert all(schema == results[0] for schema in results)
    assert len(cache) == 1
    assert cache.get(Tagged) == results[0]
