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
qscodec: flat records and mappings <-> url query strings.

'''
from ._exceptions import (
    QueryCodecError as QueryCodecError,
    ShapeError as ShapeError,
    UnsupportedTypeError as UnsupportedTypeError,
    TagError as TagError,
    ConversionError as ConversionError,
    MalformedQueryError as MalformedQueryError,
    HookError as HookError,
)
from .pretty_struct import (
    Struct as Struct,
)
from ._scalars import (
    ScalarKind as ScalarKind,
    kind_by_name as kind_by_name,
)
from ._classify import (
    Shape as Shape,
    classify as classify,
    classify_value as classify_value,
)
from ._tags import (
    Tag as Tag,
    TagSpec as TagSpec,
    parse_tag as parse_tag,
)
from ._schema import (
    FieldSchema as FieldSchema,
    Schema as Schema,
    SchemaCache as SchemaCache,
    build_schema as build_schema,
    apply_cache as apply_cache,
    current_cache as current_cache,
)
from ._query import (
    parse_query as parse_query,
    render_query as render_query,
)
from ._codec import (
    QueryCodec as QueryCodec,
    mk_codec as mk_codec,
    encode as encode,
    decode as decode,
)
from .types import (
    Valuer as Valuer,
    Setter as Setter,
    SelfEncoder as SelfEncoder,
    SelfDecoder as SelfDecoder,

    # fixed width scalar aliases
    Int8 as Int8,
    Int16 as Int16,
    Int32 as Int32,
    Int64 as Int64,
    UInt as UInt,
    UInt8 as UInt8,
    UInt16 as UInt16,
    UInt32 as UInt32,
    UInt64 as UInt64,
    Float32 as Float32,
    Float64 as Float64,
)
from . import log as log
