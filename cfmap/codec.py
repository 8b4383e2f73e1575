# Licensed to the Apache Software Foundation (ASF) under one
# or more contributor license agreements.  See the NOTICE file
# distributed with this work for additional information
# regarding copyright ownership.  The ASF licenses this file
# to you under the Apache License, Version 2.0 (the
# "License"); you may not use this file except in compliance
# with the License.  You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Conversion between typed python values and the text stored in cells.

Every value is stored as utf-8 text. Scalars use a readable form ('90',
'true', '2021-03-04 05:06:07.000000'), containers are stored as JSON whose
members use the member type's own form.
"""

import binascii
import collections.abc
import datetime
import json
import math
import re
import typing
from decimal import Decimal
from enum import Enum
from uuid import UUID

from cassandra.util import Date, Time, datetime_from_timestamp

from .errors import ConfigurationError
from .util import to_bytes, to_text

DEFAULT_TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S.%f%z'
NAIVE_TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S.%f'

# this should match all possible CQL and CQLSH datetime formats
datetime_re = re.compile(r"(\d{4})\-(\d{2})\-(\d{2})\s?(?:'T')?"  # YYYY-MM-DD[( |'T')]
                         r"(?:(\d{2}):(\d{2})(?::(\d{2})(?:\.(\d{1,6}))?)?)?"  # [HH:MM[:SS[.NNNNNN]]]
                         r"(?:([+\-])(\d{2}):?(\d{2}))?$")  # [(+|-)HH[:]MM]]

# Mapping python types to codec instances, making encode/decode generic
# functions. Containers and enums get a codec built on demand by codec_of.
_codecs = {}


def codec_for(*types):
    def registrator(cls):
        codec = cls()
        for t in types:
            _codecs[t] = codec
        return cls
    return registrator


class ValueCodec(object):
    """
    Base codec. Subclasses implement decode and usually encode; to_json and
    from_json only need overriding when the value has a native JSON form.
    """
    default = None

    def encode(self, val):
        return str(val)

    def decode(self, text):
        raise NotImplementedError()

    def decode_cell(self, raw):
        text = to_text(raw)
        if text == '':
            return self.default
        return self.decode(text)

    def to_json(self, val):
        return self.encode(val)

    def from_json(self, obj):
        return self.decode(obj)


class NativeJsonCodec(ValueCodec):

    def to_json(self, val):
        return val

    def from_json(self, obj):
        if isinstance(obj, str):
            return self.decode(obj)
        return obj


@codec_for(str)
class TextCodec(ValueCodec):
    default = ''

    def decode(self, text):
        return text

    def decode_cell(self, raw):
        return to_text(raw)


@codec_for(bytes, bytearray)
class BlobCodec(ValueCodec):
    default = b''

    def encode(self, val):
        return '0x' + binascii.hexlify(val).decode('ascii')

    def decode(self, text):
        if not text.startswith('0x'):
            raise ValueError("can't interpret %r as a blob, expected 0x prefix" % (text,))
        return bytes.fromhex(text[2:])


@codec_for(bool)
class BooleanCodec(NativeJsonCodec):

    def encode(self, val):
        return 'true' if val else 'false'

    def decode(self, text):
        lowered = text.lower()
        if lowered == 'true':
            return True
        if lowered == 'false':
            return False
        raise ValueError("can't interpret %r as a boolean" % (text,))


@codec_for(int)
class IntegerCodec(NativeJsonCodec):

    def encode(self, val):
        return str(int(val))

    def decode(self, text):
        return int(text)


@codec_for(float)
class FloatCodec(NativeJsonCodec):

    def encode(self, val):
        if math.isnan(val):
            return 'NaN'
        elif math.isinf(val):
            return 'Infinity' if val > 0 else '-Infinity'
        return repr(float(val))

    def decode(self, text):
        return float(text)


@codec_for(Decimal)
class DecimalCodec(ValueCodec):

    def decode(self, text):
        return Decimal(text)


@codec_for(UUID)
class UUIDCodec(ValueCodec):

    def decode(self, text):
        return UUID(text)


@codec_for(datetime.datetime)
class DateTimeCodec(ValueCodec):

    def encode(self, val):
        return val.strftime(DEFAULT_TIMESTAMP_FORMAT)

    def decode(self, text):
        for fmt in (DEFAULT_TIMESTAMP_FORMAT, NAIVE_TIMESTAMP_FORMAT):
            try:
                return datetime.datetime.strptime(text, fmt)
            except ValueError:
                pass  # if it's not in the default format we try CQL formats

        m = datetime_re.match(text)
        if not m:
            try:
                # values written by other tools may be milliseconds from the epoch
                return datetime_from_timestamp(int(text) / 1e3)
            except ValueError:
                raise ValueError("can't interpret %r as a date with format %s or as int"
                                 % (text, DEFAULT_TIMESTAMP_FORMAT))

        # convert sub-seconds (a number between 1 and 6 digits) to microseconds
        microseconds = 0 if not m.group(7) else int(m.group(7)) * pow(10, 6 - len(m.group(7)))
        tz = None
        if m.group(8):
            offset = datetime.timedelta(hours=int(m.group(9)), minutes=int(m.group(10)))
            tz = datetime.timezone(offset if m.group(8) == '+' else -offset)

        return datetime.datetime(int(m.group(1)), int(m.group(2)), int(m.group(3)),
                                 int(m.group(4)) if m.group(4) else 0,
                                 int(m.group(5)) if m.group(5) else 0,
                                 int(m.group(6)) if m.group(6) else 0,
                                 microseconds, tz)


@codec_for(datetime.date)
class DateCodec(ValueCodec):

    def encode(self, val):
        return val.isoformat()

    def decode(self, text):
        return datetime.date.fromisoformat(text)


@codec_for(datetime.time)
class TimeCodec(ValueCodec):

    def encode(self, val):
        return val.isoformat()

    def decode(self, text):
        return datetime.time.fromisoformat(text)


@codec_for(Date)
class StoreDateCodec(ValueCodec):
    """
    cassandra.util.Date, which also covers days outside the range of
    datetime.date; those are written as the number of days since the epoch.
    """

    def decode(self, text):
        try:
            return Date(int(text))
        except ValueError:
            return Date(text)


@codec_for(Time)
class StoreTimeCodec(ValueCodec):

    def decode(self, text):
        return Time(text)


class PassthroughCodec(NativeJsonCodec):
    """Members of unparameterized containers, stored as plain JSON."""

    def encode(self, val):
        return json.dumps(val)

    def decode(self, text):
        return json.loads(text)

    def from_json(self, obj):
        return obj


class EnumCodec(ValueCodec):

    def __init__(self, enum_type):
        self.enum_type = enum_type

    def encode(self, val):
        return val.name

    def decode(self, text):
        try:
            return self.enum_type[text]
        except KeyError:
            raise ValueError("%r is not a member of %s" % (text, self.enum_type.__name__))


class ContainerCodec(ValueCodec):

    def encode(self, val):
        return json.dumps(self.to_json(val))

    def decode(self, text):
        return self.from_json(json.loads(text))


class SequenceCodec(ContainerCodec):
    """list, set, frozenset and homogeneous tuple values."""

    def __init__(self, element_codec, factory=list):
        self.element_codec = element_codec
        self.factory = factory

    def to_json(self, val):
        return [self.element_codec.to_json(v) for v in val]

    def from_json(self, obj):
        return self.factory(self.element_codec.from_json(v) for v in obj)


class TupleCodec(ContainerCodec):

    def __init__(self, element_codecs):
        self.element_codecs = element_codecs

    def to_json(self, val):
        if len(val) != len(self.element_codecs):
            raise ValueError("Expected a tuple of %d items, got %d" % (len(self.element_codecs), len(val)))
        return [c.to_json(v) for c, v in zip(self.element_codecs, val)]

    def from_json(self, obj):
        return tuple(c.from_json(v) for c, v in zip(self.element_codecs, obj))


class MapCodec(ContainerCodec):
    """
    dict values; JSON object keys are always strings, so keys go through
    the key codec's text form.
    """

    def __init__(self, key_codec, value_codec):
        self.key_codec = key_codec
        self.value_codec = value_codec

    def to_json(self, val):
        return dict((self.key_codec.encode(k), self.value_codec.to_json(v)) for k, v in val.items())

    def from_json(self, obj):
        return dict((self.key_codec.decode(k), self.value_codec.from_json(v)) for k, v in obj.items())


_sequence_factories = {
    list: list,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    set: set,
    collections.abc.Set: frozenset,
    collections.abc.MutableSet: set,
    frozenset: frozenset,
}

_mapping_origins = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def unwrap_optional(tp):
    """
    Return T for Optional[T], tp otherwise.

    >>> unwrap_optional(typing.Optional[int])
    <class 'int'>
    """
    if typing.get_origin(tp) is typing.Union:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def is_mapping_type(tp):
    tp = unwrap_optional(tp)
    origin = typing.get_origin(tp) or tp
    return isinstance(origin, type) and issubclass(origin, _mapping_origins)


def codec_of(tp):
    """
    Return the codec for the given python type, building codecs for
    parameterized containers and enums as needed.
    """
    tp = unwrap_optional(tp)
    codec = _codecs.get(tp)
    if codec is not None:
        return codec

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)
    if origin is not None:
        if origin in _sequence_factories:
            element = codec_of(args[0]) if args else PassthroughCodec()
            return SequenceCodec(element, _sequence_factories[origin])
        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return SequenceCodec(codec_of(args[0]), tuple)
            return TupleCodec([codec_of(a) for a in args])
        if origin in _mapping_origins:
            if not args:
                return MapCodec(TextCodec(), PassthroughCodec())
            return MapCodec(codec_of(args[0]), codec_of(args[1]))
        raise ConfigurationError("No value codec for type: %r" % (tp,))

    if tp in _sequence_factories or tp is tuple:
        return SequenceCodec(PassthroughCodec(), _sequence_factories.get(tp, tuple))
    if tp in _mapping_origins:
        return MapCodec(TextCodec(), PassthroughCodec())

    if isinstance(tp, type):
        if issubclass(tp, Enum):
            return EnumCodec(tp)
        for base in tp.__mro__[1:]:
            codec = _codecs.get(base)
            if codec is not None:
                return codec

    raise ConfigurationError("No value codec for type: %r" % (tp,))


def encode_value(val, tp=None):
    return codec_of(tp if tp is not None else type(val)).encode(val)


def decode_value(raw, tp):
    return codec_of(tp).decode_cell(raw)


def default_value(tp):
    return codec_of(tp).default


def encode_row_key(val, tp=None):
    """
    Return the stored form of a row key. bytes keys are stored as they are,
    anything else as the utf-8 text of its codec.

    >>> encode_row_key(b'\\x00\\x01')
    b'\\x00\\x01'
    >>> encode_row_key(42)
    b'42'
    """
    if isinstance(val, (bytes, bytearray, memoryview)):
        return bytes(val)
    return to_bytes(encode_value(val, tp))


def decode_row_key(raw, tp):
    tp = unwrap_optional(tp)
    if tp in (bytes, bytearray):
        return tp(to_bytes(raw))
    return decode_value(raw, tp)
