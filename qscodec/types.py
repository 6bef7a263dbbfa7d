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
Public field-type vocab: fixed width scalar aliases and the
(optional) hook protocols a field or record type may implement.

Width aliases carry both our `ScalarKind` marker (used by the
classifier) and an equivalent `msgspec.Meta` constraint so the same
record also validates through any `msgspec` decoder.

'''
from typing import (
    Annotated,
    Any,
    Protocol,
    runtime_checkable,
)

from msgspec import Meta

from qscodec import _scalars as sk


_i64_max: int = (1 << 63) - 1


def _bounded(kind: sk.ScalarKind) -> Any:
    # `msgspec` constraints are limited to the int64 range
    meta = (
        Meta(ge=kind.lo, le=kind.hi)
        if kind.hi <= _i64_max
        else Meta(ge=kind.lo)
    )
    return Annotated[
        int,
        kind,
        meta,
    ]


Int8 = _bounded(sk.INT8)
Int16 = _bounded(sk.INT16)
Int32 = _bounded(sk.INT32)
Int64 = _bounded(sk.INT64)

UInt = _bounded(sk.UINT)
UInt8 = _bounded(sk.UINT8)
UInt16 = _bounded(sk.UINT16)
UInt32 = _bounded(sk.UINT32)
UInt64 = _bounded(sk.UINT64)

Float32 = Annotated[float, sk.FLOAT32]
Float64 = Annotated[float, sk.FLOAT64]


@runtime_checkable
class Valuer(Protocol):
    '''
    Value-extraction hook: a field type whose natural shape can't
    be classified (say a "was it set" + value wrapper) hands back
    a substitute primitive to encode instead of itself.

    Returning `None` means "unset", the field is not emitted.

    '''
    def query_value(self) -> Any:
        ...


@runtime_checkable
class Setter(Protocol):
    '''
    Value-injection hook: accept a decoded primitive (already
    converted per the field's pretend-type) and store it.

    Raise `ValueError` or `TypeError` to reject the value.

    '''
    def query_set(self, value: Any) -> None:
        ...


@runtime_checkable
class SelfEncoder(Protocol):
    '''
    Whole-value encode override, bypasses the schema engine.

    '''
    def to_query(self) -> bytes:
        ...


@runtime_checkable
class SelfDecoder(Protocol):
    '''
    Whole-value decode override, bypasses the schema engine.

    '''
    def from_query(self, data: bytes) -> None:
        ...
