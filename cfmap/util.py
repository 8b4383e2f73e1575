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

# cell names and values are always stored as utf-8 text
ENCODING = 'utf-8'


def to_text(val):
    """
    Return the text form of a row or value coming off the wire, which may be
    bytes, bytearray, memoryview or already str.

    >>> to_text(b'info')
    'info'
    >>> to_text('info')
    'info'
    """
    if val is None:
        return None
    if isinstance(val, str):
        return val
    return bytes(val).decode(ENCODING)


def to_name(val):
    """
    Like to_text, for family and qualifier names. Names aren't always utf-8
    (binary qualifiers); undecodable bytes are kept as lone surrogates so
    to_bytes gives the original name back.

    >>> to_name(b'info')
    'info'
    >>> to_bytes(to_name(b'\\xff\\x00'))
    b'\\xff\\x00'
    """
    if val is None:
        return None
    if isinstance(val, str):
        return val
    return bytes(val).decode(ENCODING, 'surrogateescape')


def to_bytes(val):
    if val is None:
        return None
    if isinstance(val, bytes):
        return val
    if isinstance(val, (bytearray, memoryview)):
        return bytes(val)
    return str(val).encode(ENCODING, 'surrogateescape')


def split_column(column):
    """
    Split a 'family:qualifier' column spec, as used by thrift based clients,
    into its two parts. A spec without a colon names a whole family.

    >>> split_column(b'info:name')
    ('info', 'name')
    >>> split_column('info')
    ('info', '')
    """
    family, _, qualifier = to_name(column).partition(':')
    return family, qualifier


def join_column(family, qualifier):
    return to_bytes('%s:%s' % (family, qualifier))
