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
Scalar kinds and their text <-> python value conversion.

Every value which lands in a query is one of these kinds (or a list
of one of them). Integer kinds are bounds checked in both directions
so that the wire range of a width kind (eg. `uint8`) is honored even
though a python `int` is unbounded.

'''
from __future__ import annotations
from decimal import Decimal
import math
import re
import struct
from typing import (
    Any,
)

from qscodec.pretty_struct import Struct
from qscodec._exceptions import ConversionError


class ScalarKind(
    Struct,
    frozen=True,
):
    '''
    A named scalar kind; the name is also the pretend-type token
    accepted in a field tag (eg. `'uint16'`).

    '''
    name: str
    family: str  # 'string' | 'bool' | 'int' | 'uint' | 'float'
    pytype: type
    bits: int|None = None

    @property
    def lo(self) -> int|None:
        if self.family == 'uint':
            return 0
        if self.family == 'int':
            return -(1 << (self.bits - 1))
        return None

    @property
    def hi(self) -> int|None:
        if self.family == 'uint':
            return (1 << self.bits) - 1
        if self.family == 'int':
            return (1 << (self.bits - 1)) - 1
        return None

    @property
    def zero(self) -> Any:
        return self.pytype()

    def __repr__(self) -> str:
        return f'<ScalarKind {self.name}>'


STRING = ScalarKind('string', 'string', str)
BOOL = ScalarKind('bool', 'bool', bool)

INT = ScalarKind('int', 'int', int, 64)
INT8 = ScalarKind('int8', 'int', int, 8)
INT16 = ScalarKind('int16', 'int', int, 16)
INT32 = ScalarKind('int32', 'int', int, 32)
INT64 = ScalarKind('int64', 'int', int, 64)

UINT = ScalarKind('uint', 'uint', int, 64)
UINT8 = ScalarKind('uint8', 'uint', int, 8)
UINT16 = ScalarKind('uint16', 'uint', int, 16)
UINT32 = ScalarKind('uint32', 'uint', int, 32)
UINT64 = ScalarKind('uint64', 'uint', int, 64)

FLOAT32 = ScalarKind('float32', 'float', float, 32)
FLOAT64 = ScalarKind('float64', 'float', float, 64)

_kinds: dict[str, ScalarKind] = {
    kind.name: kind
    for kind in (
        STRING, BOOL,
        INT, INT8, INT16, INT32, INT64,
        UINT, UINT8, UINT16, UINT32, UINT64,
        FLOAT32, FLOAT64,
    )
}


def kind_by_name(name: str) -> ScalarKind|None:
    return _kinds.get(name)


_int_rx = re.compile(r'[+-]?[0-9]+')
_uint_rx = re.compile(r'[0-9]+')
_float_rx = re.compile(
    r'[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?'
)
_nonfinite: dict[str, float] = {
    'inf': math.inf,
    '+inf': math.inf,
    'infinity': math.inf,
    '+infinity': math.inf,
    '-inf': -math.inf,
    '-infinity': -math.inf,
    'nan': math.nan,
}
_true_strs: frozenset[str] = frozenset(('1', 't', 'T', 'TRUE', 'true', 'True'))
_false_strs: frozenset[str] = frozenset(('0', 'f', 'F', 'FALSE', 'false', 'False'))


def _check_range(
    kind: ScalarKind,
    value: int,
    text: str|None = None,
) -> int:
    if not (kind.lo <= value <= kind.hi):
        shown: str = text if text is not None else str(value)
        raise ConversionError(
            f'Value out of range for {kind.name}: {shown!r}\n'
            f'(valid range is [{kind.lo}, {kind.hi}])',
            kind=kind.name,
            value=shown,
        )
    return value


def _round_f32(
    value: float,
    text: str,
) -> float:
    if not math.isfinite(value):
        return value
    try:
        return struct.unpack('f', struct.pack('f', value))[0]
    except OverflowError as oerr:
        raise ConversionError(
            f'Value out of range for float32: {text!r}',
            kind='float32',
            value=text,
        ) from oerr


def from_text(
    kind: ScalarKind,
    text: str,
) -> Any:
    '''
    Parse query `text` into a python value of `kind`.

    Parsing is strict: no surrounding whitespace, no `_` digit
    separators, no sign on unsigned kinds.

    '''
    match kind.family:
        case 'string':
            return text

        case 'bool':
            if text in _true_strs:
                return True
            if text in _false_strs:
                return False

        case 'int':
            if _int_rx.fullmatch(text):
                return _check_range(kind, int(text), text)

        case 'uint':
            if _uint_rx.fullmatch(text):
                return _check_range(kind, int(text), text)

        case 'float':
            value: float|None = _nonfinite.get(text.lower())
            if (
                value is None
                and
                _float_rx.fullmatch(text)
            ):
                value = float(text)
                if math.isinf(value):
                    raise ConversionError(
                        f'Value out of range for {kind.name}: {text!r}',
                        kind=kind.name,
                        value=text,
                    )

            if value is not None:
                if kind.bits == 32:
                    value = _round_f32(value, text)
                return value

    raise ConversionError(
        f'Invalid syntax for {kind.name}: {text!r}',
        kind=kind.name,
        value=text,
    )


def format_float(value: float) -> str:
    '''
    Shortest round-tripping positional rendering of a 64 bit float,
    eg. `1.5`, `2`, `0.0001`, `100000000000000000000`.

    '''
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return '+Inf' if value > 0 else '-Inf'

    # `repr()` is already the shortest round-trip digit string, only
    # its notation needs flattening.
    return format(
        Decimal(repr(value)).normalize(),
        'f',
    )


def to_text(
    kind: ScalarKind,
    value: Any,
) -> str:
    '''
    Render a python `value` declared as `kind` to query text.

    '''
    match kind.family:
        case 'string':
            if isinstance(value, str):
                return value

        case 'bool':
            if isinstance(value, bool):
                return 'true' if value else 'false'

        case 'int' | 'uint':
            if (
                isinstance(value, int)
                and
                not isinstance(value, bool)
            ):
                return str(_check_range(kind, value))

        case 'float':
            if (
                isinstance(value, (int, float))
                and
                not isinstance(value, bool)
            ):
                try:
                    as_float: float = float(value)
                except OverflowError as oerr:
                    raise ConversionError(
                        f'Integer too large for {kind.name}',
                        kind=kind.name,
                        value=value,
                    ) from oerr

                return format_float(as_float)

    raise ConversionError(
        f'Can not encode {type(value).__name__} value as {kind.name}: '
        f'{value!r}',
        kind=kind.name,
        value=value,
    )
