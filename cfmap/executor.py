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
Running Get/Put/Delete/Scan requests against a wide column store.

The executor talks to a happybase style connection: connection.table(name)
returns a table with row(), rows(), cells(), scan(), put() and delete().
Any thrift based client with that surface will do.
"""

import logging

from thrift.Thrift import TException

from .codec import encode_row_key
from .columns import Cell
from .config import default_config, resolve_naming_policy
from .decoder import RowDecoder, decode_many
from .descriptor import Classification, descriptor_of, is_entity
from .encoder import to_put
from .errors import ConfigurationError, StoreIOError
from .mutations import Delete, Get, Put, Scan
from .util import join_column, split_column, to_bytes

log = logging.getLogger(__name__)


def _all_columns(family, qualifier):
    return True


def _versioned_columns(descriptor, naming_policy):
    """
    Return a predicate telling whether more than one version of a column is
    wanted. Scalars only ever hold one.
    """
    def versioned(family, qualifier):
        binding = descriptor.binding_for(family, qualifier, naming_policy)
        if binding is not None and binding.classification is Classification.NESTED_ENTITY:
            binding = binding.descriptor.binding_for_qualifier(qualifier, naming_policy)
        return binding is not None and binding.classification is not Classification.SCALAR
    return versioned


def _as_list(requests):
    if isinstance(requests, (list, tuple)):
        return list(requests)
    return [requests]


class ColumnStoreExecutor(object):
    """
    Params:
    * connection ....: happybase style connection.
    * naming_policy .: NamingPolicy or its name used to encode and decode
                       records; defaults to the configured one.

    Reads return lists of Cell, or records when a record_type is given.
    Client failures are raised as StoreIOError; nothing is retried.
    """

    def __init__(self, connection, naming_policy=None):
        self._connection = connection
        self.naming_policy = resolve_naming_policy(naming_policy)

    def _table(self, table_name):
        return self._connection.table(table_name)

    def _failed(self, action, table_name, e):
        return StoreIOError("Failed to %s table %s: %s" % (action, table_name, e), e)

    def _versioned(self, record_type):
        if record_type is not None and is_entity(record_type):
            return _versioned_columns(descriptor_of(record_type), self.naming_policy)
        return _all_columns

    def _to_cells(self, table, row_key, data, max_versions, timestamp, versioned):
        cells = []
        for column in sorted(data, key=split_column):
            family, qualifier = split_column(column)
            if max_versions > 1 and versioned(family, qualifier):
                versions = table.cells(row_key, column, versions=max_versions, timestamp=timestamp,
                                       include_timestamp=True)
                cells.extend(Cell(row_key, family, qualifier, value, ts) for value, ts in versions)
            else:
                value, ts = data[column]
                cells.append(Cell(row_key, family, qualifier, value, ts))
        return cells

    def _read(self, table, get, versioned):
        data = table.row(get.row_key, columns=get.columns(), timestamp=get.timestamp, include_timestamp=True)
        return self._to_cells(table, get.row_key, data, get.max_versions, get.timestamp, versioned)

    def get(self, table_name, get, record_type=None):
        """
        Read one row. Returns its cells, or the decoded record (None when
        the row doesn't exist) when record_type is given.
        """
        log.debug("get %r from %s", get, table_name)
        if record_type is not None:
            decoder = RowDecoder(record_type, self.naming_policy)
        versioned = self._versioned(record_type)
        try:
            cells = self._read(self._table(table_name), get, versioned)
        except (TException, OSError) as e:
            raise self._failed('read from', table_name, e) from e
        if record_type is None:
            return cells
        return decoder.decode(cells)

    def get_many(self, table_name, gets, record_type=None):
        """
        Read several rows. The result has one entry per get, in order; rows
        that don't exist are empty lists, or None when decoding.
        """
        gets = list(gets)
        log.debug("get %d rows from %s", len(gets), table_name)
        if record_type is not None:
            decoder = RowDecoder(record_type, self.naming_policy)
        versioned = self._versioned(record_type)
        try:
            table = self._table(table_name)
            found = {}
            # single version reads of the same columns go out as one request
            batches = {}
            for get in gets:
                if get.max_versions == 1:
                    key = (tuple(get.columns() or ()), get.timestamp)
                    batches.setdefault(key, []).append(get.row_key)
                else:
                    found[get.row_key] = self._read(table, get, versioned)
            for (columns, timestamp), row_keys in batches.items():
                for row_key, data in table.rows(row_keys, columns=list(columns) or None, timestamp=timestamp,
                                                include_timestamp=True):
                    found[row_key] = self._to_cells(table, row_key, data, 1, timestamp, versioned)
        except (TException, OSError) as e:
            raise self._failed('read from', table_name, e) from e

        results = [found.get(g.row_key, []) for g in gets]
        if record_type is None:
            return results
        return [decoder.decode(cells) for cells in results]

    def exists(self, table_name, get):
        try:
            data = self._table(table_name).row(get.row_key, columns=get.columns(), timestamp=get.timestamp)
        except (TException, OSError) as e:
            raise self._failed('read from', table_name, e) from e
        return bool(data)

    def put(self, table_name, puts):
        """
        Write a Put, a record, or a list of either. Writes of one Put are
        sent as one client put per distinct version.
        """
        puts = [p if isinstance(p, Put) else to_put(p, self.naming_policy) for p in _as_list(puts)]
        try:
            table = self._table(table_name)
            for put in puts:
                self._put(table, table_name, put)
        except (TException, OSError) as e:
            raise self._failed('write to', table_name, e) from e

    def _put(self, table, table_name, put):
        if put.is_empty():
            log.debug("Nothing to write for row %r in %s", put.row_key, table_name)
            return
        by_version = {}
        for write in put.writes:
            by_version.setdefault(write.version, {})[join_column(write.family, write.qualifier)] = \
                to_bytes(write.value)
        # unversioned writes first, then oldest to newest
        for version in sorted(by_version, key=lambda v: (v is not None, v or 0)):
            log.debug("put row %r version %s into %s", put.row_key, version, table_name)
            table.put(put.row_key, by_version[version], timestamp=version)

    def delete(self, table_name, deletes):
        deletes = _as_list(deletes)
        try:
            table = self._table(table_name)
            for delete in deletes:
                log.debug("delete %r from %s", delete, table_name)
                table.delete(delete.row_key, columns=delete.columns(), timestamp=delete.timestamp)
        except (TException, OSError) as e:
            raise self._failed('delete from', table_name, e) from e

    def scan(self, table_name, scan=None, record_type=None, offset=0, count=None):
        """
        Iterate over the rows of a table. Yields lists of Cell, or records
        when record_type is given, in which case offset rows are skipped and
        at most count records returned.
        """
        if scan is None:
            scan = Scan()
        log.debug("scan %r of %s", scan, table_name)
        rows = self._scan_rows(table_name, scan, self._versioned(record_type))
        if record_type is None:
            return rows
        return decode_many(rows, record_type, self.naming_policy, offset, count)

    def _scan_rows(self, table_name, scan, versioned):
        kwargs = dict(columns=scan.columns(), batch_size=scan.batch_size, limit=scan.limit,
                      include_timestamp=True)
        if scan.row_prefix is not None:
            kwargs['row_prefix'] = scan.row_prefix
        else:
            kwargs['row_start'] = scan.start_row
            kwargs['row_stop'] = scan.stop_row
        try:
            table = self._table(table_name)
            for row_key, data in table.scan(**kwargs):
                yield self._to_cells(table, row_key, data, scan.max_versions, None, versioned)
        except (TException, OSError) as e:
            raise self._failed('scan', table_name, e) from e

    def mapper(self, record_type, table_name, max_versions=None):
        return Mapper(self, record_type, table_name, max_versions)


class Mapper(object):
    """
    An executor bound to one record type and the table it lives in.

    Reads are limited to the families the record type maps and ask for
    max_versions versions of versioned attributes (the configured
    max_versions by default).
    """

    def __init__(self, executor, record_type, table_name, max_versions=None):
        self.descriptor = descriptor_of(record_type)
        if self.descriptor.row_key is None:
            raise ConfigurationError("%s has no row key. Mark one with column(row_key=True) or "
                                     "register_row_key_property()" % (record_type.__name__,))
        self.executor = executor
        self.record_type = record_type
        self.table_name = table_name
        if max_versions is None:
            max_versions = default_config().max_versions
        elif max_versions < 1:
            raise ValueError("max_versions must be positive, got %r" % (max_versions,))
        self.max_versions = max_versions
        self.families = self.descriptor.families(executor.naming_policy)

    def _row_key(self, row_key):
        return encode_row_key(row_key, self.descriptor.row_key.value_type)

    def _get(self, row_key):
        get = Get(self._row_key(row_key)).read_versions(self.max_versions)
        for family in self.families:
            get.add_family(family)
        return get

    def get(self, row_key):
        return self.executor.get(self.table_name, self._get(row_key), self.record_type)

    def get_many(self, row_keys):
        """Records for the row keys that exist, in the order they were asked for."""
        records = self.executor.get_many(self.table_name, [self._get(k) for k in row_keys], self.record_type)
        return [r for r in records if r is not None]

    def exists(self, row_key):
        return self.executor.exists(self.table_name, self._get(row_key))

    def put(self, record):
        self.executor.put(self.table_name, to_put(record, self.executor.naming_policy))

    def put_all(self, records):
        self.executor.put(self.table_name, [to_put(r, self.executor.naming_policy) for r in records])

    def delete(self, record):
        self.delete_by_row_key(getattr(record, self.descriptor.row_key.name))

    def delete_all(self, records):
        row_key_name = self.descriptor.row_key.name
        self.executor.delete(self.table_name, [Delete(self._row_key(getattr(r, row_key_name))) for r in records])

    def delete_by_row_key(self, row_key):
        self.executor.delete(self.table_name, Delete(self._row_key(row_key)))

    def scan(self, scan=None, offset=0, count=None):
        if scan is None:
            scan = Scan().read_versions(self.max_versions)
            for family in self.families:
                scan.add_family(family)
        return self.executor.scan(self.table_name, scan, self.record_type, offset, count)
