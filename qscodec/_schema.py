# qscodec: query-string <-> struct codec.
# Copyright 2018-eternity Tyler Goodlet.

# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.

# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

'''
Per-record-type field schemas and their (process wide) cache.

A schema is derived once per record type by walking its declared
fields, resolving each one's tag and classifying its (maybe
pretend) type. It is a pure function of the type so it's computed
lazily, shared by every later encode/decode and never evicted.

Record types are `msgspec.Struct` subtypes and `dataclasses`.

'''
from __future__ import annotations
from collections.abc import Mapping
from contextlib import (
    contextmanager as cm,
)
from contextvars import (
    ContextVar,
    Token,
)
import dataclasses
import threading
import typing
from typing import (
    Any,
    Iterator,
    Literal,
    TypeAlias,
)

import msgspec

from qscodec.log import get_logger
from qscodec.pretty_struct import Struct
from qscodec._exceptions import (
    ShapeError,
    UnsupportedTypeError,
)
from qscodec._classify import (
    Shape,
    classify_unwrapped,
    find_meta,
    unwrap_field_type,
)
from qscodec._tags import (
    Tag,
    TagSpec,
    parse_tag,
)
from qscodec.types import (
    Setter,
    Valuer,
)

log = get_logger(__name__)

# key in `dataclasses.field(metadata=...)` holding a tag spec str
TAG_METADATA_KEY: str = 'qs'

# fallback "generic" naming key for dataclass fields, the
# equivalent of a `msgspec` field `rename`
NAME_METADATA_KEY: str = 'name'

UntaggedPolicy: TypeAlias = Literal['skip', 'name']


class FieldSchema(
    Struct,
    frozen=True,
):
    '''
    How one record field maps to (and from) a query key.

    '''
    # attr name on the record, looked up by name such that
    # inherited fields resolve like any other
    name: str

    # the query key
    key: str

    shape: Shape
    omit_empty: bool = False

    # the field was declared `T|None`
    optional: bool = False

    # the field's declared class when it implements a value hook
    hook_type: type|None = None
    has_valuer: bool = False
    has_setter: bool = False


Schema: TypeAlias = tuple[FieldSchema, ...]


def is_record_type(cls: Any) -> bool:
    return (
        isinstance(cls, type)
        and (
            issubclass(cls, msgspec.Struct)
            or
            dataclasses.is_dataclass(cls)
        )
    )


def is_frozen(cls: type) -> bool:
    if issubclass(cls, msgspec.Struct):
        return cls.__struct_config__.frozen
    return cls.__dataclass_params__.frozen


def iter_record_fields(
    cls: type,
) -> Iterator[tuple[str, Any, str|None, Mapping]]:
    '''
    Yield `(attr_name, annotation, fallback_key, metadata)` for each
    declared field of record type `cls` in declaration order (base
    class fields first).

    '''
    try:
        hints: dict[str, Any] = typing.get_type_hints(
            cls,
            include_extras=True,
        )
    except NameError as nerr:
        raise ShapeError(
            f'Can not resolve field annotations of {cls.__qualname__!r}'
        ) from nerr

    if issubclass(cls, msgspec.Struct):
        fi: msgspec.structs.FieldInfo
        for fi in msgspec.structs.fields(cls):
            yield (
                fi.name,
                hints.get(fi.name, fi.type),
                # only an explicit `rename` counts as a key
                fi.encode_name if fi.encode_name != fi.name else None,
                {},
            )
        return

    f: dataclasses.Field
    for f in dataclasses.fields(cls):
        yield (
            f.name,
            hints.get(f.name, f.type),
            f.metadata.get(NAME_METADATA_KEY),
            f.metadata,
        )


def resolve_tag(
    name: str,
    meta: tuple,
    metadata: Mapping,
    fallback_key: str|None,
    untagged: UntaggedPolicy = 'skip',

) -> TagSpec|None:
    '''
    Pick the tag for a field from the first vocabulary which has
    one, `None` when the field should be left out.

    '''
    tag: Tag|None = find_meta(meta, Tag)
    if tag is not None:
        return parse_tag(tag.spec)

    spec_str: str|None = metadata.get(TAG_METADATA_KEY)
    if spec_str is not None:
        return parse_tag(spec_str)

    if fallback_key is not None:
        return TagSpec(key=fallback_key)

    if untagged == 'name':
        return TagSpec(key=name)

    return None


def build_schema(
    cls: type,
    untagged: UntaggedPolicy = 'skip',

) -> Schema:
    '''
    Derive the field schema for record type `cls`.

    Fails on the first field whose shape doesn't classify, there
    is no partial schema.

    '''
    if not is_record_type(cls):
        raise ShapeError(
            f'Target is not a record type: {cls!r}\n'
            f'Expected a `msgspec.Struct` or `dataclass` type.'
        )

    fields: list[FieldSchema] = []
    for (
        name,
        tp,
        fallback_key,
        metadata,
    ) in iter_record_fields(cls):

        # "private" attrs are never exposed
        if name.startswith('_'):
            continue

        base, meta, optional = unwrap_field_type(tp)
        spec: TagSpec|None = resolve_tag(
            name,
            meta,
            metadata,
            fallback_key,
            untagged=untagged,
        )
        if (
            spec is None
            or
            spec.skip
        ):
            continue

        shape: Shape|None = spec.pretend
        if shape is None:
            try:
                shape = classify_unwrapped(base, meta)
            except UnsupportedTypeError as uterr:
                raise UnsupportedTypeError(
                    f'Unsupported type on field '
                    f'{cls.__qualname__}.{name}: {tp!r}',
                    tp=tp,
                    field=name,
                ) from uterr

        hook_type: type|None = None
        has_valuer: bool = False
        has_setter: bool = False
        if (
            isinstance(base, type)
            and
            typing.get_origin(base) is None
        ):
            has_valuer = issubclass(base, Valuer)
            has_setter = issubclass(base, Setter)
            if (
                has_valuer
                or
                has_setter
            ):
                hook_type = base

        fields.append(
            FieldSchema(
                name=name,
                key=spec.key or name,
                shape=shape,
                omit_empty=spec.omit_empty,
                optional=optional,
                hook_type=hook_type,
                has_valuer=has_valuer,
                has_setter=has_setter,
            )
        )

    return tuple(fields)


class SchemaCache:
    '''
    Type -> `Schema` registry.

    Lookups are lock free, construction happens outside the lock
    and only the insert is serialized. Two threads racing on the
    same unseen type may both build it; the (equal) later insert
    wins.

    '''
    def __init__(
        self,
        untagged: UntaggedPolicy = 'skip',
    ) -> None:
        if untagged not in typing.get_args(UntaggedPolicy):
            raise ValueError(
                f'Invalid untagged-field policy: {untagged!r}'
            )
        self.untagged: UntaggedPolicy = untagged
        self._schemas: dict[type, Schema] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f'<{type(self).__name__}('
            f'untagged={self.untagged!r}, '
            f'types={len(self._schemas)})>'
        )

    def __len__(self) -> int:
        return len(self._schemas)

    def __contains__(self, cls: type) -> bool:
        return cls in self._schemas

    def get(
        self,
        cls: type,
    ) -> Schema:
        schema: Schema|None = self._schemas.get(cls)
        if schema is not None:
            return schema

        schema = build_schema(
            cls,
            untagged=self.untagged,
        )
        with self._lock:
            self._schemas[cls] = schema

        if log.at_least_level('runtime'):
            fields_str: str = '\n'.join(
                f' |_{fs.key!r} <- .{fs.name}: {fs.shape.token}'
                for fs in schema
            )
            log.runtime(
                f'Cached query schema for {cls.__qualname__!r}\n'
                f'{fields_str}\n'
            )
        return schema

    def clear(self) -> None:
        with self._lock:
            self._schemas.clear()


# the process-wide default, lives until exit.
_def_schema_cache: SchemaCache = SchemaCache()

_ctxvar_SchemaCache: ContextVar[SchemaCache] = ContextVar(
    'schema_cache',
    default=_def_schema_cache,
)


@cm
def apply_cache(
    cache: SchemaCache,
) -> Iterator[SchemaCache]:
    '''
    Dynamically apply a `SchemaCache` to the current (thread or
    task) context such that every codec call which doesn't carry
    its own cache uses it.

    Mostly for test isolation or a one-off untagged-field policy.

    '''
    var: ContextVar = _ctxvar_SchemaCache
    orig: SchemaCache = var.get()

    log.info(
        'Applying schema cache\n'
        f'{cache!r}\n'
    )
    token: Token = var.set(cache)
    try:
        yield var.get()
    finally:
        var.reset(token)
        log.info(
            'Reverted to last schema cache\n'
            f'{orig!r}\n'
        )


def current_cache() -> SchemaCache:
    '''
    Return the `SchemaCache` in effect for the current context.

    '''
    return _ctxvar_SchemaCache.get()
