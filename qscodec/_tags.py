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
Field tags: the per-field annotation which says what query key
a field is exposed as, whether it's elided when zero-valued and
(optionally) what scalar shape to *pretend* it has.

Grammar (segments are whitespace trimmed)::

    name[,omitempty[,pretend-type]]

eg. `'limit,omitempty'`, `'special,,string'`, `'ids,,[]uint32'`,
or `'-'` to drop the field entirely.

'''
from __future__ import annotations

from qscodec.pretty_struct import Struct
from qscodec._exceptions import TagError
from qscodec._scalars import (
    ScalarKind,
    kind_by_name,
)
from qscodec._classify import Shape

_list_prefix: str = '[]'


class Tag(
    Struct,
    frozen=True,
):
    '''
    The annotation marker, attached to a field with,

        limit: Annotated[int, Tag('limit,omitempty')] = 0

    An empty `Tag()` still opts the field in under its own name.

    '''
    spec: str = ''


class TagSpec(
    Struct,
    frozen=True,
):
    '''
    A parsed `Tag`.

    `key` is empty when the tag didn't name one, in which case the
    schema builder falls back to the field's attribute name.

    '''
    key: str = ''
    omit_empty: bool = False
    pretend: Shape|None = None
    skip: bool = False


def parse_pretend(token: str) -> Shape:
    '''
    Parse a pretend-type token (`'int8'`, `'[]string'`, ..) into
    a `Shape`.

    '''
    is_list: bool = token.startswith(_list_prefix)
    name: str = token[len(_list_prefix):] if is_list else token

    kind: ScalarKind|None = kind_by_name(name)
    if kind is None:
        raise TagError(
            f'Unsupported type from field tag: {token!r}'
        )

    return Shape(
        kind=kind,
        is_list=is_list,
    )


def parse_tag(text: str) -> TagSpec:
    '''
    Parse tag `text` per the module-level grammar.

    '''
    parts: list[str] = [
        part.strip()
        for part in text.split(',', 2)
    ]
    name: str = parts[0]
    if name == '-':
        return TagSpec(skip=True)

    omit_empty: bool = (
        len(parts) > 1
        and
        parts[1] == 'omitempty'
    )

    pretend: Shape|None = None
    if (
        len(parts) > 2
        and
        parts[2]
    ):
        pretend = parse_pretend(parts[2])

    return TagSpec(
        key=name,
        omit_empty=omit_empty,
        pretend=pretend,
    )
