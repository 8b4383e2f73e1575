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
Reassembly of records from the cells of one row.

Cells are expected grouped by family, then by qualifier, the way the store
returns them; the row is built as the cells stream past and never buffered.
"""

import logging

from .codec import codec_of, decode_row_key, is_mapping_type
from .columns import VersionedColumn
from .config import resolve_naming_policy
from .descriptor import Classification, descriptor_of, is_entity
from .errors import AmbiguousResultError, ConfigurationError, ValueDecodeError
from .util import to_name

log = logging.getLogger(__name__)


def _convert(codec, cell, family, qualifier):
    try:
        return codec.decode_cell(cell.value)
    except ValueError as e:
        raise ValueDecodeError("Can't decode the value of %s:%s in row %r: %s"
                               % (family, qualifier, cell.row, e))


class _RecordBuilder(object):
    """Attribute values collected so far for one (possibly nested) record."""

    def __init__(self, descriptor):
        self.descriptor = descriptor
        self.values = {}
        self.nested_builders = {}

    def nested(self, binding):
        builder = self.nested_builders.get(binding.name)
        if builder is None:
            builder = self.nested_builders[binding.name] = _RecordBuilder(binding.descriptor)
        return builder

    def apply(self, binding, cell, family, qualifier):
        classification = binding.classification
        value = _convert(binding.codec, cell, family, qualifier)

        if classification is Classification.SCALAR:
            if binding.name in self.values:
                raise AmbiguousResultError("Found more than one cell for %s.%s at %s:%s in row %r"
                                           % (self.descriptor.record_type.__name__, binding.name,
                                              family, qualifier, cell.row))
            self.values[binding.name] = value
        elif classification is Classification.VERSIONED_SCALAR:
            self.values[binding.name] = VersionedColumn(value, cell.timestamp)
        elif classification is Classification.VERSIONED_COLLECTION:
            self.values.setdefault(binding.name, []).append(VersionedColumn(value, cell.timestamp))
        elif classification is Classification.VERSIONED_MAP:
            self.values.setdefault(binding.name, {})[qualifier] = VersionedColumn(value, cell.timestamp)
        else:
            raise AssertionError("Unexpected classification %s" % (classification,))

    def build(self):
        kwargs = {}
        for binding in self.descriptor.attributes:
            if binding.name in self.nested_builders:
                kwargs[binding.name] = self.nested_builders[binding.name].build()
            elif binding.name in self.values:
                value = self.values[binding.name]
                if binding.factory is not None and binding.factory is not type(value):
                    value = binding.factory(value)
                kwargs[binding.name] = value
        row_key = self.descriptor.row_key
        if row_key is not None and row_key.name in self.values:
            kwargs[row_key.name] = self.values[row_key.name]
        for name in self.descriptor.required:
            kwargs.setdefault(name, None)
        return self.descriptor.record_type(**kwargs)


class RowDecoder(object):
    """
    Decodes cell streams into instances of one target type.

    The target is either a record type or a plain value type, in which case
    the row must hold at most one cell.
    """

    def __init__(self, record_type, naming_policy=None):
        if is_mapping_type(record_type):
            raise ConfigurationError("Unsupported target type: %r. Map is not supported, decode into a record "
                                     "with a map of VersionedColumn instead" % (record_type,))
        self.record_type = record_type
        self.naming_policy = resolve_naming_policy(naming_policy)
        if is_entity(record_type):
            self.descriptor = descriptor_of(record_type)
            self.codec = None
        else:
            self.descriptor = None
            self.codec = codec_of(record_type)

    def decode(self, cells):
        if self.descriptor is None:
            return self._decode_value(cells)

        descriptor = self.descriptor
        policy = self.naming_policy
        builder = None
        last_column = None
        binding = None

        for cell in cells:
            if builder is None:
                builder = _RecordBuilder(descriptor)
                if descriptor.row_key is not None:
                    builder.values[descriptor.row_key.name] = self._decode_row_key(cell)

            family, qualifier = to_name(cell.family), to_name(cell.qualifier)
            # consecutive cells of one qualifier share the lookup
            if (family, qualifier) != last_column:
                last_column = (family, qualifier)
                binding = descriptor.binding_for(family, qualifier, policy)
                if binding is not None and binding.classification is Classification.NESTED_ENTITY:
                    nested_binding = binding.descriptor.binding_for_qualifier(qualifier, policy)
                    binding = (binding, nested_binding) if nested_binding is not None else None

            if binding is None:
                log.debug("Skipping column %r:%r unknown to %s", family, qualifier, descriptor.record_type.__name__)
                continue

            if isinstance(binding, tuple):
                owner, nested_binding = binding
                builder.nested(owner).apply(nested_binding, cell, family, qualifier)
            else:
                builder.apply(binding, cell, family, qualifier)

        if builder is None:
            return None
        return builder.build()

    def _decode_row_key(self, cell):
        try:
            return decode_row_key(cell.row, self.descriptor.row_key.value_type)
        except ValueError as e:
            raise ValueDecodeError("Can't decode row key %r of %s: %s"
                                   % (cell.row, self.descriptor.record_type.__name__, e))

    def _decode_value(self, cells):
        found = None
        for cell in cells:
            if found is not None:
                raise AmbiguousResultError("Can't convert result with columns %s:%s and %s:%s to %r"
                                           % (to_name(found.family), to_name(found.qualifier),
                                              to_name(cell.family), to_name(cell.qualifier), self.record_type))
            found = cell
        if found is None:
            return None
        return _convert(self.codec, found, to_name(found.family), to_name(found.qualifier))


def decode(cells, record_type, naming_policy=None):
    """
    Decode the cells of one row into an instance of record_type, or None
    when the row has no cells.

    Params:
    * cells .........: iterable of Cell (or any tuple with the same fields)
                       for a single row, in store order.
    * record_type ...: a dataclass, or a value type such as int or str for
                       single cell rows.
    * naming_policy .: NamingPolicy or its name; defaults to the configured one.
    """
    return RowDecoder(record_type, naming_policy).decode(cells)


def decode_many(streams, record_type, naming_policy=None, offset=0, count=None):
    """
    Lazily decode one record per cell stream, skipping empty rows.

    offset rows are skipped first and at most count records are returned.
    """
    if offset < 0 or (count is not None and count < 0):
        raise ValueError("Offset and count can't be negative: offset=%r, count=%r" % (offset, count))
    decoder = RowDecoder(record_type, naming_policy)
    return _decode_streams(decoder, streams, offset, count)


def _decode_streams(decoder, streams, offset, count):
    if count == 0:
        return
    returned = 0
    for i, cells in enumerate(streams):
        if i < offset:
            continue
        record = decoder.decode(cells)
        if record is None:
            continue
        yield record
        returned += 1
        if count is not None and returned >= count:
            return
