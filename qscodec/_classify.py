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
Type classification: is a (field) type something we can flatten
into a query?

Only two shapes are encodable,

- a scalar: `str`, `bool`, `int`, `float` (or a width aliased
  variant from `qscodec.types`),
- a homogeneous list of scalars: `list[S]`, `Sequence[S]` or
  `tuple[S, ...]`.

Leaf (scalar) types are resolved with `msgspec.inspect.type_info()`
while container structure is walked with the `typing` introspection
API so that our own `Annotated` markers survive on list elements.

'''
from __future__ import annotations
from collections.abc import (
    MutableSequence,
    Sequence,
)
import types
from typing import (
    Annotated,
    Any,
    Union,
    get_args,
    get_origin,
)

import msgspec
from msgspec.inspect import (
    BoolType,
    FloatType,
    IntType,
    StrType,
)

from qscodec.pretty_struct import Struct
from qscodec._exceptions import UnsupportedTypeError
from qscodec import _scalars as sk
from qscodec._scalars import ScalarKind


class Shape(
    Struct,
    frozen=True,
):
    '''
    The declared shape of a field: one scalar kind or a list of it.

    `container` is the sequence type built on decode.

    '''
    kind: ScalarKind
    is_list: bool = False
    container: type = list

    @property
    def token(self) -> str:
        '''
        The pretend-type tag token for this shape, eg. `'[]int8'`.

        '''
        if self.is_list:
            return f'[]{self.kind.name}'
        return self.kind.name

    def __repr__(self) -> str:
        return f'<Shape {self.token}>'


_list_origins: tuple = (
    list,
    Sequence,
    MutableSequence,
)
_union_origins: tuple = (
    Union,
    types.UnionType,
)
_info2kind: dict[type, ScalarKind] = {
    StrType: sk.STRING,
    BoolType: sk.BOOL,
    IntType: sk.INT,
    FloatType: sk.FLOAT64,
}


def strip_annotated(tp: Any) -> tuple[Any, tuple]:
    '''
    Split `Annotated[T, *meta]` into `(T, meta)`; non-annotated
    types come back with empty `meta`.

    '''
    if get_origin(tp) is Annotated:
        return tp.__origin__, tp.__metadata__
    return tp, ()


def split_optional(tp: Any) -> tuple[Any, bool]:
    '''
    Unwrap exactly one level of optionality: `T|None` -> `(T, True)`.

    '''
    if get_origin(tp) in _union_origins:
        args: tuple = get_args(tp)
        if (
            type(None) in args
            and
            len(args) == 2
        ):
            inner, = (arg for arg in args if arg is not type(None))
            return inner, True

    return tp, False


def unwrap_field_type(tp: Any) -> tuple[Any, tuple, bool]:
    '''
    Strip any `Annotated` wrapping (collecting its metadata) and one
    level of `Optional`, in either nesting order.

    Returns `(base_type, metadata, optional)`.

    '''
    base, meta = strip_annotated(tp)
    base, optional = split_optional(base)
    base, inner_meta = strip_annotated(base)
    return base, meta + inner_meta, optional


def find_meta(
    meta: tuple,
    of_type: type,
) -> Any|None:
    for item in meta:
        if isinstance(item, of_type):
            return item
    return None


def _unsupported(tp: Any) -> UnsupportedTypeError:
    return UnsupportedTypeError(
        f'Unsupported type {tp!r}\n'
        f'Only `str`, `bool`, `int`, `float` or a homogeneous list '
        f'of one of those can be flattened into a query.',
        tp=tp,
    )


def _scalar_kind(
    tp: Any,
    meta: tuple = (),
) -> ScalarKind:
    try:
        info = msgspec.inspect.type_info(tp)
    except (TypeError, ValueError) as err:
        raise _unsupported(tp) from err

    kind: ScalarKind|None = _info2kind.get(type(info))
    if kind is None:
        raise _unsupported(tp)

    # width-alias marker, but only when it agrees with the real type
    marker: ScalarKind|None = find_meta(meta, ScalarKind)
    if marker is not None:
        if marker.pytype is not kind.pytype:
            raise UnsupportedTypeError(
                f'Scalar kind marker {marker.name!r} does not match '
                f'the annotated type {tp!r}',
                tp=tp,
            )
        return marker

    return kind


def classify_unwrapped(
    base: Any,
    meta: tuple = (),
) -> Shape:
    '''
    Classify an already `unwrap_field_type()`-ed type.

    '''
    origin = get_origin(base)
    container: type = list
    if origin is tuple:
        args: tuple = get_args(base)
        if not (
            len(args) == 2
            and
            args[1] is Ellipsis
        ):
            # fixed-length heterogenous tuples are records in disguise
            raise _unsupported(base)
        elem_tp: Any = args[0]
        container = tuple

    elif origin in _list_origins:
        args: tuple = get_args(base)
        elem_tp: Any = args[0] if args else Any

    else:
        return Shape(kind=_scalar_kind(base, meta))

    elem_base, elem_meta = strip_annotated(elem_tp)
    if get_origin(elem_base) is not None:
        # no nested lists (or other generics) as elements
        raise _unsupported(base)

    return Shape(
        kind=_scalar_kind(elem_base, elem_meta),
        is_list=True,
        container=container,
    )


def classify(tp: Any) -> Shape:
    '''
    Deliver the `Shape` of type `tp` or raise
    `UnsupportedTypeError`.

    A single level of `Optional` is unwrapped.

    '''
    base, meta, _ = unwrap_field_type(tp)
    return classify_unwrapped(base, meta)


def _value_kind(obj: Any) -> ScalarKind|None:
    # `bool` first since it's an `int` subtype
    if isinstance(obj, bool):
        return sk.BOOL
    if isinstance(obj, str):
        return sk.STRING
    if isinstance(obj, int):
        return sk.INT
    if isinstance(obj, float):
        return sk.FLOAT64
    return None


def classify_value(obj: Any) -> Shape:
    '''
    Classify a runtime value, used for the entries of (untyped)
    mappings which have no schema to consult.

    '''
    if isinstance(obj, (list, tuple)):
        kinds: set[ScalarKind|None] = {_value_kind(elem) for elem in obj}
        if not kinds:
            return Shape(kind=sk.STRING, is_list=True)

        if (
            len(kinds) > 1
            or
            None in kinds
        ):
            raise UnsupportedTypeError(
                f'Unsupported list value {obj!r}\n'
                f'Elements must all be one of `str`, `bool`, `int` '
                f'or `float`.',
                tp=type(obj),
            )
        kind, = kinds
        return Shape(
            kind=kind,
            is_list=True,
            container=type(obj),
        )

    kind: ScalarKind|None = _value_kind(obj)
    if kind is None:
        raise _unsupported(type(obj))

    return Shape(kind=kind)
