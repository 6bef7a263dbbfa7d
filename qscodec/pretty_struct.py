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
Prettified version of `msgspec.Struct` for easier console grokin
of records and the field-schemas derived from them.

'''
from __future__ import annotations
from collections import UserList
import textwrap
from typing import (
    Any,
    Iterator,
)

from msgspec import (
    Struct as _Struct,
    structs,
)

from qscodec.log import get_logger

log = get_logger()


class DiffDump(UserList):
    '''
    Very simple list delegator that repr() dumps (presumed) tuple
    elements of the form `tuple[str, Any, Any]` in a nice
    multi-line readable form for analyzing `Struct` diffs.

    '''
    def __repr__(self) -> str:
        if not len(self):
            return super().__repr__()

        # format by displaying item pair's ``repr()`` on multiple,
        # indented lines such that they are more easily visually
        # comparable when printed to console.
        repstr: str = '[\n'
        for k, left, right in self:
            repstr += (
                f'({k},\n'
                f' |_{repr(left)},\n'
                f' |_{repr(right)},\n'
                ')\n'
            )
        repstr += ']\n'
        return repstr


def iter_fields(struct: _Struct) -> Iterator[
    tuple[
        structs.FieldInfo,
        str,
        Any,
    ]
]:
    '''
    Iterate over all non-@property fields of this struct.

    '''
    fi: structs.FieldInfo
    for fi in structs.fields(struct):
        key: str = fi.name
        val: Any = getattr(struct, key)
        yield (
            fi,
            key,
            val,
        )


def iter_struct_ppfmt_lines(
    struct: _Struct,
    field_indent: int = 0,
) -> Iterator[tuple[str, str]]:

    fi: structs.FieldInfo
    k: str
    v: Any
    for fi, k, v in iter_fields(struct):

        ft: type = fi.type
        typ_name: str = getattr(
            ft,
            '__name__',
            str(ft)
        ).replace(' ', '')

        # NOTE, sub-structs are only ever our own (single line
        # repr-ed) descriptors like `FieldSchema.shape`.
        val_str: str = repr(v)

        yield (
            ' '*field_indent,  # indented ws prefix
            f'{k}: {typ_name} = {val_str},',  # field's repr line content
        )


def pformat(
    struct: _Struct,
    field_indent: int = 2,
    indent: int = 0,
) -> str:
    '''
    Recursion-safe `pprint.pformat()` style formatting of
    a `msgspec.Struct` for sane reading by a human using a REPL.

    '''
    obj_str: str = ''  # accumulator
    for prefix, field_repr, in iter_struct_ppfmt_lines(
        struct,
        field_indent=field_indent,
    ):
        obj_str += f'{prefix}{field_repr}\n'

    # global whitespace indent
    ws: str = ' '*indent
    if indent:
        obj_str: str = textwrap.indent(
            text=obj_str,
            prefix=ws,
        )

    qtn: str = struct.__class__.__qualname__

    return (
        f'{qtn}(\n'
        f'{obj_str}'
        f'{ws})'
    )


class Struct(
    _Struct,
):
    '''
    A "human friendlier" (aka repl buddy) struct subtype.

    Any subtype is a valid record for `qscodec.encode()`/`.decode()`.

    '''
    pformat = pformat

    def __repr__(self) -> str:
        try:
            return pformat(self)
        except Exception:
            log.exception(
                f'Failed to `pformat({type(self)})` !?\n'
            )
            return _Struct.__repr__(self)

    def __sub__(
        self,
        other: Struct,

    ) -> DiffDump[tuple[str, Any, Any]]:
        '''
        Compare fields/items key-wise and return a `DiffDump`
        for easy visual REPL comparison B)

        Handy for checking a decoded record against its source.

        '''
        diffs: DiffDump[tuple[str, Any, Any]] = DiffDump()
        for fi in structs.fields(self):
            attr_name: str = fi.name
            ours: Any = getattr(self, attr_name)
            theirs: Any = getattr(other, attr_name)
            if ours != theirs:
                diffs.append((
                    attr_name,
                    ours,
                    theirs,
                ))

        return diffs
