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
Our (much less classy than an actor runtime's) exception set.

Every error is raised straight to the caller of `encode()`/`decode()`,
nothing is logged-and-dropped internally.

'''
from __future__ import annotations
from typing import (
    Any,
)


class QueryCodecError(Exception):
    "General query-string codec failure"


class ShapeError(QueryCodecError, TypeError):
    '''
    The value (or decode target) is not something we know how to
    map to a flat query: not a record, not a `str`-keyed mapping,
    or a mapping with non-`str` keys, or an immutable target.

    '''


class UnsupportedTypeError(ShapeError):
    '''
    A field (or mapping entry) type which is neither a scalar nor
    a homogeneous list of scalars.

    '''
    def __init__(
        self,
        message: str,
        tp: Any = None,
        field: str|None = None,
    ) -> None:
        super().__init__(message)
        self.tp = tp
        self.field: str|None = field


class TagError(QueryCodecError, TypeError):
    '''
    A field annotation (tag) which can't be parsed, normally
    because it names a pretend-type we don't know.

    '''


class ConversionError(QueryCodecError, ValueError):
    '''
    Text which doesn't parse as the target scalar kind (malformed or
    out of range) or a python value which doesn't fit its declared
    kind on encode.

    '''
    def __init__(
        self,
        message: str,
        kind: str|None = None,
        value: Any = None,
    ) -> None:
        super().__init__(message)
        self.kind: str|None = kind
        self.value: Any = value


class MalformedQueryError(QueryCodecError, ValueError):
    "Query text which the tokenizer refuses to split/unquote"


class HookError(QueryCodecError, ValueError):
    '''
    A field value-injection hook (`.query_set()`) rejected
    a decoded value.

    '''
    def __init__(
        self,
        message: str,
        field: str|None = None,
    ) -> None:
        super().__init__(message)
        self.field: str|None = field
