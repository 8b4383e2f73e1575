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
Request builders handed to ColumnStoreExecutor.

Every builder method returns the builder so calls can be chained:

    Get('u1').add_family('name').add_column('scores', 'math').read_versions(3)

Row keys are kept in their stored (bytes) form.
"""

from .codec import encode_row_key, encode_value
from .columns import EMPTY_QUALIFIER, ColumnWrite
from .util import join_column, to_bytes, to_name


def _columns(families, columns):
    """Column specs in the 'family' / 'family:qualifier' form clients expect."""
    if not families and not columns:
        return None
    specs = [to_bytes(f) for f in families]
    specs.extend(join_column(f, q) for f, q in columns if f not in families)
    return specs


class _ColumnSelection(object):

    def __init__(self):
        self.families = []
        self.column_names = []

    def add_family(self, family):
        family = to_name(family)
        if family not in self.families:
            self.families.append(family)
        return self

    def add_column(self, family, qualifier):
        column = (to_name(family), to_name(qualifier))
        if column not in self.column_names:
            self.column_names.append(column)
        return self

    def columns(self):
        return _columns(self.families, self.column_names)


class Put(object):
    """
    Column writes for one row.
    """

    def __init__(self, row_key):
        self.row_key = encode_row_key(row_key)
        self.writes = []

    def add_column(self, family, qualifier, value, version=None):
        if not isinstance(value, str):
            value = encode_value(value)
        return self.add(ColumnWrite(to_name(family), to_name(qualifier), value, version))

    def add(self, write):
        self.writes.append(write)
        return self

    def families(self):
        return sorted(set(w.family for w in self.writes))

    def is_empty(self):
        return not self.writes

    def __eq__(self, other):
        return isinstance(other, Put) and self.row_key == other.row_key and self.writes == other.writes

    def __repr__(self):
        return 'Put(row_key=%r, writes=%r)' % (self.row_key, self.writes)


class Get(_ColumnSelection):
    """
    Read of one row. With no family or column added the whole row is read.
    """

    def __init__(self, row_key):
        _ColumnSelection.__init__(self)
        self.row_key = encode_row_key(row_key)
        self.max_versions = 1
        self.timestamp = None

    def read_versions(self, versions):
        if versions < 1:
            raise ValueError("versions must be positive, got %r" % (versions,))
        self.max_versions = versions
        return self

    def read_all_versions(self):
        # the biggest version count a thrift Get accepts
        self.max_versions = 2 ** 31 - 1
        return self

    def set_timestamp(self, timestamp):
        """Only read versions older than timestamp."""
        self.timestamp = timestamp
        return self

    def __eq__(self, other):
        return isinstance(other, Get) and \
            (self.row_key, self.families, self.column_names, self.max_versions, self.timestamp) == \
            (other.row_key, other.families, other.column_names, other.max_versions, other.timestamp)

    def __repr__(self):
        return 'Get(row_key=%r, columns=%r, max_versions=%d, timestamp=%r)' % (
            self.row_key, self.columns(), self.max_versions, self.timestamp)


class Delete(_ColumnSelection):
    """
    Delete of one row, or of some of its families and columns. timestamp
    limits the delete to versions up to and including it.
    """

    def __init__(self, row_key, timestamp=None):
        _ColumnSelection.__init__(self)
        self.row_key = encode_row_key(row_key)
        self.timestamp = timestamp

    def add_column(self, family, qualifier=EMPTY_QUALIFIER):
        return _ColumnSelection.add_column(self, family, qualifier)

    def __eq__(self, other):
        return isinstance(other, Delete) and \
            (self.row_key, self.families, self.column_names, self.timestamp) == \
            (other.row_key, other.families, other.column_names, other.timestamp)

    def __repr__(self):
        return 'Delete(row_key=%r, columns=%r, timestamp=%r)' % (self.row_key, self.columns(), self.timestamp)


class Scan(_ColumnSelection):

    def __init__(self):
        _ColumnSelection.__init__(self)
        self.start_row = None
        self.stop_row = None
        self.row_prefix = None
        self.limit = None
        self.batch_size = 1000
        self.max_versions = 1

    def with_start_row(self, row_key):
        self.start_row = encode_row_key(row_key)
        return self

    def with_stop_row(self, row_key):
        self.stop_row = encode_row_key(row_key)
        return self

    def with_row_prefix(self, prefix):
        self.row_prefix = encode_row_key(prefix)
        return self

    def set_limit(self, limit):
        self.limit = limit
        return self

    def set_batch_size(self, batch_size):
        if batch_size < 1:
            raise ValueError("batch_size must be positive, got %r" % (batch_size,))
        self.batch_size = batch_size
        return self

    def read_versions(self, versions):
        if versions < 1:
            raise ValueError("versions must be positive, got %r" % (versions,))
        self.max_versions = versions
        return self

    def __eq__(self, other):
        return isinstance(other, Scan) and vars(self) == vars(other)

    def __repr__(self):
        return 'Scan(%s)' % ', '.join('%s=%r' % kv for kv in sorted(vars(self).items()))


def to_gets(row_keys):
    return [Get(k) for k in row_keys]


def to_deletes(row_keys):
    return [Delete(k) for k in row_keys]
