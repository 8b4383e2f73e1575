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

import unittest
from unittest.mock import Mock, call

from thrift.Thrift import TException

from cfmap.columns import Cell, VersionedColumn
from cfmap.errors import ConfigurationError, StoreIOError
from cfmap.executor import ColumnStoreExecutor, Mapper
from cfmap.mutations import Delete, Get, Put, Scan
from cfmap.naming import NamingPolicy

from .basecase import Account, Contact, Reading

ACCOUNT_ROW = {b'scores:math': (b'90', 10), b'name:': (b'Ann', 3), b'scores:art': (b'88', 20)}


class ExecutorTest(unittest.TestCase):

    def setUp(self):
        self.table = Mock()
        self.connection = Mock()
        self.connection.table.return_value = self.table
        self.executor = ColumnStoreExecutor(self.connection, NamingPolicy.IDENTITY)


class TestReads(ExecutorTest):

    def test_get_cells(self):
        self.table.row.return_value = ACCOUNT_ROW
        cells = self.executor.get('accounts', Get('u1'))
        self.connection.table.assert_called_with('accounts')
        self.table.row.assert_called_once_with(b'u1', columns=None, timestamp=None, include_timestamp=True)
        # rebuilt grouped by family and qualifier
        self.assertEqual([Cell(b'u1', 'name', '', b'Ann', 3),
                          Cell(b'u1', 'scores', 'art', b'88', 20),
                          Cell(b'u1', 'scores', 'math', b'90', 10)], cells)

    def test_get_record(self):
        self.table.row.return_value = ACCOUNT_ROW
        account = self.executor.get('accounts', Get('u1'), Account)
        self.assertEqual(Account('u1', 'Ann', {'math': VersionedColumn(90, 10), 'art': VersionedColumn(88, 20)}),
                         account)

    def test_get_binary_column_name(self):
        self.table.row.return_value = {b'name:': (b'Ann', 3), b'zzz:\xff\x00': (b'x', 1)}
        self.assertEqual(Account('u1', 'Ann'), self.executor.get('accounts', Get('u1'), Account))
        # the undecodable name is written back unchanged
        unknown = self.executor.get('accounts', Get('u1'))[1]
        self.executor.put('accounts', Put('u1').add_column(unknown.family, unknown.qualifier, 'x'))
        self.table.put.assert_called_once_with(b'u1', {b'zzz:\xff\x00': b'x'}, timestamp=None)

    def test_get_missing_row(self):
        self.table.row.return_value = {}
        self.assertIsNone(self.executor.get('accounts', Get('u1'), Account))
        self.assertEqual([], self.executor.get('accounts', Get('u1')))

    def test_get_versions(self):
        self.table.row.return_value = {b'history:': (b'2.5', 2), b'emailAddress:': (b'a@example.com', 1)}
        self.table.cells.return_value = [(b'2.5', 2), (b'1.5', 1)]
        contact = self.executor.get('contacts', Get(7).read_versions(3), Contact)
        # only versioned attributes ask for more than one version
        self.table.cells.assert_called_once_with(b'7', b'history:', versions=3, timestamp=None,
                                                 include_timestamp=True)
        self.assertEqual('a@example.com', contact.emailAddress)
        self.assertEqual([VersionedColumn(2.5, 2), VersionedColumn(1.5, 1)], contact.history)

    def test_get_many(self):
        self.table.rows.return_value = [(b'u2', {b'name:': (b'Bob', 1)})]
        accounts = self.executor.get_many('accounts', [Get('u1'), Get('u2')], Account)
        self.table.rows.assert_called_once_with([b'u1', b'u2'], columns=None, timestamp=None,
                                                include_timestamp=True)
        self.assertEqual([None, Account('u2', 'Bob')], accounts)

    def test_get_many_cells(self):
        self.table.rows.return_value = [(b'u1', {b'name:': (b'Ann', 1)})]
        self.assertEqual([[Cell(b'u1', 'name', '', b'Ann', 1)], []],
                         self.executor.get_many('accounts', [Get('u1'), Get('u2')]))

    def test_exists(self):
        self.table.row.return_value = {b'name:': b'Ann'}
        self.assertTrue(self.executor.exists('accounts', Get('u1').add_family('name')))
        self.table.row.assert_called_once_with(b'u1', columns=[b'name'], timestamp=None)
        self.table.row.return_value = {}
        self.assertFalse(self.executor.exists('accounts', Get('u2')))

    def test_scan(self):
        self.table.scan.return_value = iter([(b'u1', {b'name:': (b'Ann', 1)}), (b'u2', {b'name:': (b'Bob', 1)})])
        accounts = list(self.executor.scan('accounts', Scan().with_start_row('u').add_family('name'), Account))
        self.assertEqual([Account('u1', 'Ann'), Account('u2', 'Bob')], accounts)
        self.table.scan.assert_called_once_with(columns=[b'name'], batch_size=1000, limit=None,
                                                include_timestamp=True, row_start=b'u', row_stop=None)

    def test_scan_row_prefix(self):
        self.table.scan.return_value = iter([(b'u1', {b'name:': (b'Ann', 1)})])
        rows = list(self.executor.scan('accounts', Scan().with_row_prefix('u')))
        self.assertEqual([[Cell(b'u1', 'name', '', b'Ann', 1)]], rows)
        self.table.scan.assert_called_once_with(columns=None, batch_size=1000, limit=None,
                                                include_timestamp=True, row_prefix=b'u')

    def test_scan_offset_and_count(self):
        self.table.scan.return_value = iter([(k, {b'name:': (b'x', 1)}) for k in (b'u1', b'u2', b'u3')])
        accounts = list(self.executor.scan('accounts', record_type=Account, offset=1, count=1))
        self.assertEqual([Account('u2', 'x')], accounts)


class TestWrites(ExecutorTest):

    def test_put_groups_by_version(self):
        put = Put('u1').add_column('name', '', 'Ann').add_column('scores', 'math', 90, 10) \
            .add_column('scores', 'art', 88, 20).add_column('scores', 'bio', 70, 10)
        self.executor.put('accounts', put)
        self.assertEqual([call(b'u1', {b'name:': b'Ann'}, timestamp=None),
                          call(b'u1', {b'scores:math': b'90', b'scores:bio': b'70'}, timestamp=10),
                          call(b'u1', {b'scores:art': b'88'}, timestamp=20)],
                         self.table.put.call_args_list)

    def test_put_records(self):
        self.executor.put('accounts', [Account('u1', 'Ann'), Account('u2', 'Bob')])
        self.assertEqual([call(b'u1', {b'name:': b'Ann'}, timestamp=None),
                          call(b'u2', {b'name:': b'Bob'}, timestamp=None)],
                         self.table.put.call_args_list)

    def test_empty_put(self):
        self.executor.put('accounts', Put('u1'))
        self.table.put.assert_not_called()

    def test_delete(self):
        self.executor.delete('accounts', [Delete('u1'), Delete('u2', 5).add_family('scores')])
        self.assertEqual([call(b'u1', columns=None, timestamp=None),
                          call(b'u2', columns=[b'scores'], timestamp=5)],
                         self.table.delete.call_args_list)


class TestStoreErrors(ExecutorTest):

    def test_read_error(self):
        error = TException('connection reset')
        self.table.row.side_effect = error
        with self.assertRaises(StoreIOError) as cm:
            self.executor.get('accounts', Get('u1'), Account)
        self.assertIs(error, cm.exception.cause)
        self.assertIn('accounts', str(cm.exception))

    def test_write_error(self):
        self.table.put.side_effect = OSError('broken pipe')
        self.assertRaises(StoreIOError, self.executor.put, 'accounts', Account('u1', 'Ann'))

    def test_scan_error(self):
        self.table.scan.side_effect = TException('timed out')
        rows = self.executor.scan('accounts')
        self.assertRaises(StoreIOError, list, rows)

    def test_other_errors_pass_through(self):
        self.table.delete.side_effect = KeyError('x')
        self.assertRaises(KeyError, self.executor.delete, 'accounts', Delete('u1'))

    def test_no_retries(self):
        self.table.row.side_effect = TException('unavailable')
        self.assertRaises(StoreIOError, self.executor.exists, 'accounts', Get('u1'))
        self.assertEqual(1, self.table.row.call_count)


class TestMapper(ExecutorTest):

    def setUp(self):
        ExecutorTest.setUp(self)
        self.mapper = self.executor.mapper(Account, 'accounts', max_versions=1)

    def test_get(self):
        self.table.row.return_value = {b'name:': (b'Ann', 1)}
        self.assertEqual(Account('u1', 'Ann'), self.mapper.get('u1'))
        self.table.row.assert_called_once_with(b'u1', columns=[b'name', b'scores'], timestamp=None,
                                               include_timestamp=True)

    def test_get_many(self):
        self.table.rows.return_value = [(b'u2', {b'name:': (b'Bob', 1)})]
        self.assertEqual([Account('u2', 'Bob')], self.mapper.get_many(['u1', 'u2']))

    def test_exists(self):
        self.table.row.return_value = {}
        self.assertFalse(self.mapper.exists('u1'))

    def test_put(self):
        self.mapper.put(Account('u1', 'Ann'))
        self.table.put.assert_called_once_with(b'u1', {b'name:': b'Ann'}, timestamp=None)
        self.table.put.reset_mock()
        self.mapper.put_all([Account('u1', 'Ann'), Account('u2', 'Bob')])
        self.assertEqual(2, self.table.put.call_count)

    def test_delete(self):
        self.mapper.delete(Account('u1', 'Ann'))
        self.mapper.delete_by_row_key('u2')
        self.mapper.delete_all([Account('u3'), Account('u4')])
        self.assertEqual([call(b'u1', columns=None, timestamp=None),
                          call(b'u2', columns=None, timestamp=None),
                          call(b'u3', columns=None, timestamp=None),
                          call(b'u4', columns=None, timestamp=None)],
                         self.table.delete.call_args_list)

    def test_scan(self):
        self.table.scan.return_value = iter([(b'u1', {b'name:': (b'Ann', 1)})])
        self.assertEqual([Account('u1', 'Ann')], list(self.mapper.scan()))
        self.assertEqual([b'name', b'scores'], self.table.scan.call_args[1]['columns'])

    def test_versions(self):
        mapper = self.executor.mapper(Account, 'accounts', max_versions=3)
        self.table.row.return_value = {b'name:': (b'Ann', 5), b'scores:math': (b'95', 2)}
        self.table.cells.return_value = [(b'95', 2), (b'90', 1)]
        mapper.get('u1')
        self.table.cells.assert_called_once_with(b'u1', b'scores:math', versions=3, timestamp=None,
                                                 include_timestamp=True)

    def test_record_type_without_row_key(self):
        self.assertRaises(ConfigurationError, Mapper, self.executor, Reading, 'readings', 1)

    def test_max_versions_must_be_positive(self):
        self.assertRaises(ValueError, self.executor.mapper, Account, 'accounts', 0)
        self.assertRaises(ValueError, self.executor.mapper, Account, 'accounts', -1)

    def test_get_many_keeps_asked_order(self):
        self.table.rows.return_value = [(b'u3', {b'name:': (b'Cid', 1)}), (b'u1', {b'name:': (b'Ann', 1)})]
        self.assertEqual([Account('u1', 'Ann'), Account('u3', 'Cid')], self.mapper.get_many(['u1', 'u2', 'u3']))
