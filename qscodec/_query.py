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
Query text <-> ordered multi-map, a thin strict wrapper around
the `urllib.parse` tokenizer.

The stdlib is (by design) forgiving: bad `%` escapes pass through
as-is and `;` is silently accepted. We instead treat both as
malformed input so that a decode never half-succeeds.

'''
from __future__ import annotations
from collections.abc import Mapping
import re
from urllib.parse import (
    parse_qsl,
    urlencode,
)

from qscodec.log import get_logger
from qscodec._exceptions import MalformedQueryError

log = get_logger(__name__)

Query = dict[str, list[str]]

_bad_escape_rx = re.compile(r'%(?![0-9A-Fa-f]{2})')


def parse_query(
    data: str|bytes|bytearray|memoryview,
) -> Query:
    '''
    Split query `data` into a `{key: [value, ..]}` map, keys in
    first-seen order and each value list in input order.

    A segment without `=` maps to an empty value, empty segments
    (`a=1&&b=2`) are ignored.

    '''
    if isinstance(data, (bytes, bytearray, memoryview)):
        try:
            text: str = bytes(data).decode('utf-8')
        except UnicodeDecodeError as uerr:
            raise MalformedQueryError(
                'Query data is not valid utf-8'
            ) from uerr
    else:
        text: str = data

    if ';' in text:
        raise MalformedQueryError(
            f'Invalid semicolon separator in query: {text!r}'
        )

    if bad := _bad_escape_rx.search(text):
        raise MalformedQueryError(
            f'Invalid URL escape {text[bad.start():bad.start() + 3]!r} '
            f'in query: {text!r}'
        )

    try:
        pairs: list[tuple[str, str]] = parse_qsl(
            text,
            keep_blank_values=True,
            errors='strict',
        )
    except ValueError as verr:
        # includes `UnicodeDecodeError` from escaped non-utf-8 bytes
        raise MalformedQueryError(
            f'Can not parse query: {text!r}'
        ) from verr

    query: Query = {}
    for key, value in pairs:
        query.setdefault(key, []).append(value)

    log.wire(
        f'Parsed query\n'
        f'<= {text!r}\n'
        f'=> {query!r}\n'
    )
    return query


def render_query(
    query: Mapping[str, list[str]],
) -> str:
    '''
    Join a multi-map into query text, `quote_plus()`-escaping keys
    and values, one `key=value` pair per list element.

    '''
    text: str = urlencode(
        [
            (key, value)
            for key, values in query.items()
            for value in values
        ]
    )
    log.wire(
        f'Rendered query\n'
        f'<= {dict(query)!r}\n'
        f'=> {text!r}\n'
    )
    return text
