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
The query-string codec: records and `str`-keyed mappings to (and
from) `application/x-www-form-urlencoded` text.

Encoding walks a record's (cached) field schema, or a mapping's
entries, into an ordered `{key: [value, ..]}` multi-map which the
`._query` layer then renders. Decoding goes the other way, parsing
the full text *before* touching the target.

'''
from __future__ import annotations
from collections.abc import (
    Collection,
    Mapping,
    MutableMapping,
)
import copy
import textwrap
from typing import (
    Any,
)

from qscodec.log import get_logger
from qscodec.pretty_struct import Struct
from qscodec._exceptions import (
    HookError,
    ShapeError,
)
from qscodec._classify import (
    Shape,
    classify_value,
)
from qscodec._scalars import (
    from_text,
    to_text,
)
from qscodec._schema import (
    FieldSchema,
    Schema,
    SchemaCache,
    UntaggedPolicy,
    current_cache,
    is_frozen,
    is_record_type,
)
from qscodec._query import (
    Query,
    parse_query,
    render_query,
)
from qscodec.types import (
    SelfDecoder,
    SelfEncoder,
)

log = get_logger(__name__)


def is_seq(value: Any) -> bool:
    return (
        isinstance(value, Collection)
        and
        not isinstance(value, (str, bytes))
    )


def add_value(
    query: Query,
    key: str,
    value: Any,
    shape: Shape,
) -> None:
    '''
    Append `value` (converted per `shape`) to `query[key]`, one
    entry per element for list shapes.

    '''
    values: list[str] = query.setdefault(key, [])
    if not shape.is_list:
        values.append(to_text(shape.kind, value))
        return

    if not is_seq(value):
        raise ShapeError(
            f'Expected a sequence for {shape.token} key {key!r}, '
            f'got {type(value).__name__}: {value!r}'
        )

    for elem in value:
        values.append(to_text(shape.kind, elem))


def is_empty(
    value: Any,
    shape: Shape,
) -> bool:
    '''
    Zero-value predicate backing `omitempty`.

    '''
    if shape.is_list:
        # non-sequences are rejected by `add_value()`
        return is_seq(value) and len(value) == 0

    return value == shape.kind.zero


def convert_values(
    values: list[str],
    shape: Shape,
) -> Any:
    '''
    Convert the decoded value list for a key per `shape`; only the
    first value counts for a scalar.

    '''
    if shape.is_list:
        return shape.container(
            from_text(shape.kind, text)
            for text in values
        )

    return from_text(shape.kind, values[0])


class QueryCodec(Struct):
    '''
    A query-string encoder + decoder pair bound to a schema cache.

    When no `_cache` is set the codec uses whatever
    `qscodec.current_cache()` returns at call time.

    '''
    _cache: SchemaCache|None = None

    def __repr__(self) -> str:
        body: str = textwrap.indent(
            f'|_cache: {self.cache!r}\n',
            prefix=' '*2,
        )
        return (
            f'<{type(self).__name__}(\n'
            f'{body}'
            ')>'
        )

    @property
    def cache(self) -> SchemaCache:
        if self._cache is not None:
            return self._cache
        return current_cache()

    def schema(
        self,
        cls: type,
    ) -> Schema:
        return self.cache.get(cls)

    def encode(
        self,
        value: Any,
    ) -> bytes:
        '''
        Encode a record or `str`-keyed mapping to query bytes.

        '''
        if isinstance(value, type):
            raise ShapeError(
                f'Can not encode a type, pass an instance: {value!r}'
            )

        if isinstance(value, SelfEncoder):
            return value.to_query()

        if value is None:
            raise ShapeError('Can not encode a `None` value')

        if isinstance(value, Mapping):
            query: Query = self._mapping_to_query(value)

        elif is_record_type(type(value)):
            query: Query = self._record_to_query(value)

        else:
            raise ShapeError(
                f'Unsupported type for query encoding: '
                f'{type(value).__qualname__}'
            )

        return render_query(query).encode('ascii')

    def _mapping_to_query(
        self,
        mapping: Mapping,
    ) -> Query:
        query: Query = {}
        for key, value in mapping.items():
            if not isinstance(key, str):
                raise ShapeError(
                    f'Mapping keys must be `str`, got '
                    f'{type(key).__name__}: {key!r}'
                )
            if value is None:
                raise ShapeError(
                    f'Can not encode `None` value for mapping key {key!r}'
                )

            add_value(
                query,
                key,
                value,
                classify_value(value),
            )

        return query

    def _record_to_query(
        self,
        record: Any,
    ) -> Query:
        query: Query = {}
        fs: FieldSchema
        for fs in self.schema(type(record)):
            value: Any = getattr(record, fs.name, None)

            # substitute whatever the wrapper type says it holds
            if (
                fs.has_valuer
                and
                isinstance(value, fs.hook_type)
            ):
                value = value.query_value()

            # no textual null, unset is always left out
            if value is None:
                continue

            if (
                fs.omit_empty
                and
                is_empty(value, fs.shape)
            ):
                continue

            add_value(
                query,
                fs.key,
                value,
                fs.shape,
            )

        return query

    def decode(
        self,
        data: str|bytes,
        target: Any,
    ) -> None:
        '''
        Decode query `data` into (mutable) `target`, a record
        instance or `MutableMapping`, in place.

        On error the target may have been partially written and
        should be discarded.

        '''
        if isinstance(target, type):
            raise ShapeError(
                f'Decode target must be an instance, not a type: '
                f'{target!r}'
            )

        if isinstance(target, SelfDecoder):
            target.from_query(
                data.encode('utf-8')
                if isinstance(data, str)
                else bytes(data)
            )
            return

        if isinstance(target, MutableMapping):
            self._query_to_mapping(
                parse_query(data),
                target,
            )
            return

        cls: type = type(target)
        if not is_record_type(cls):
            raise ShapeError(
                f'Unsupported decode target: {target!r}\n'
                f'Expected a (mutable) record instance or '
                f'`MutableMapping`.'
            )

        if is_frozen(cls):
            raise ShapeError(
                f'Can not decode into frozen record {cls.__qualname__!r}'
            )

        schema: Schema = self.schema(cls)
        self._query_to_record(
            parse_query(data),
            target,
            schema,
        )

    def _query_to_mapping(
        self,
        query: Query,
        target: MutableMapping,
    ) -> None:
        # NOTE, the original value types are unrecoverable, text
        # (or a list of it) is all we can deliver.
        for key, values in query.items():
            if len(values) == 1:
                target[key] = values[0]
            else:
                target[key] = values

    def _query_to_record(
        self,
        query: Query,
        target: Any,
        schema: Schema,
    ) -> None:
        fs: FieldSchema
        for fs in schema:
            values: list[str]|None = query.get(fs.key)
            if not values:
                continue

            value: Any = convert_values(values, fs.shape)

            if fs.has_setter:
                holder: Any = getattr(target, fs.name, None)
                if holder is None:
                    try:
                        holder = fs.hook_type()
                    except TypeError as ctor_err:
                        raise HookError(
                            f'Can not construct an empty '
                            f'{fs.hook_type.__qualname__!r} holder for '
                            f'field {fs.name!r}: {ctor_err}',
                            field=fs.name,
                        ) from ctor_err
                else:
                    # a (dataclass) default holder may be shared
                    # between instances
                    holder = copy.copy(holder)
                try:
                    holder.query_set(value)
                except (
                    ValueError,
                    TypeError,
                ) as hook_err:
                    raise HookError(
                        f'Field {fs.name!r} rejected decoded value '
                        f'{value!r}: {hook_err}',
                        field=fs.name,
                    ) from hook_err
                value = holder

            setattr(target, fs.name, value)


def mk_codec(
    cache: SchemaCache|None = None,
    untagged: UntaggedPolicy|None = None,

) -> QueryCodec:
    '''
    Convenience factory for codecs.

    Pass a `cache` to pin one, or an `untagged` field policy to get
    a fresh private cache with that policy; with neither the codec
    follows `current_cache()`.

    '''
    if (
        cache is not None
        and
        untagged is not None
    ):
        raise ValueError(
            'Pass either a `cache` or an `untagged` policy, not both'
        )

    if untagged is not None:
        cache = SchemaCache(untagged=untagged)

    codec = QueryCodec(_cache=cache)
    log.info(
        'Created query codec\n'
        f'{codec!r}\n'
    )
    return codec


# the default codec, follows `current_cache()`.
_def_codec: QueryCodec = QueryCodec()


def encode(value: Any) -> bytes:
    '''
    Encode a record or `str`-keyed mapping to query bytes with
    the default codec.

    '''
    return _def_codec.encode(value)


def decode(
    data: str|bytes,
    target: Any,
) -> None:
    '''
    Decode query `data` into `target` with the default codec.

    '''
    _def_codec.decode(data, target)
