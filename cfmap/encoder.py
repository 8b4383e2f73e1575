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

from .columns import ColumnWrite
from .config import resolve_naming_policy
from .descriptor import Classification, descriptor_of
from .errors import ConfigurationError, MergeError
from .mutations import Put


def _attribute_writes(binding, value, family, qualifier):
    classification = binding.classification
    codec = binding.codec

    if classification is Classification.SCALAR:
        yield ColumnWrite(family, qualifier, codec.encode(value), None)
    elif classification is Classification.VERSIONED_SCALAR:
        if value.value is not None:
            yield ColumnWrite(family, qualifier, codec.encode(value.value), value.version)
    elif classification is Classification.VERSIONED_COLLECTION:
        for vc in value:
            if vc is not None and vc.value is not None:
                yield ColumnWrite(family, qualifier, codec.encode(vc.value), vc.version)
    elif classification is Classification.VERSIONED_MAP:
        for key, vc in value.items():
            if vc is not None and vc.value is not None:
                yield ColumnWrite(family, key, codec.encode(vc.value), vc.version)
    else:
        raise AssertionError("Unexpected classification %s" % (classification,))


def encode(record, naming_policy=None):
    """
    Return the column writes that store record, row key excluded. None
    attributes are not written.

    Params:
    * record ........: instance of a dataclass record type.
    * naming_policy .: NamingPolicy or its name; defaults to the configured one.
    """
    policy = resolve_naming_policy(naming_policy)
    descriptor = descriptor_of(type(record))
    writes = []
    for binding in descriptor.attributes:
        value = getattr(record, binding.name)
        if value is None:
            continue
        family = binding.family_name(policy)
        if binding.classification is Classification.NESTED_ENTITY:
            for nested in binding.descriptor.attributes:
                nested_value = getattr(value, nested.name)
                if nested_value is not None:
                    writes.extend(_attribute_writes(nested, nested_value, family,
                                                    nested.qualifier_name(policy, nested=True)))
        else:
            writes.extend(_attribute_writes(binding, value, family, binding.qualifier_name(policy)))
    return writes


def to_put(record, naming_policy=None, put=None):
    """
    Build a Put storing record under its row key, or add the writes of
    record to put when one is given.

    A Put passed as record is returned unchanged; it can't be merged into
    another Put.
    """
    if isinstance(record, Put):
        if put is not None:
            raise MergeError("Merge is not supported. The specified entity: %r can't be a Put" % (record,))
        return record

    if put is None:
        descriptor = descriptor_of(type(record))
        if descriptor.row_key is None:
            raise ConfigurationError("%s has no row key. Mark one with column(row_key=True) or "
                                     "register_row_key_property()" % (type(record).__name__,))
        row_key = getattr(record, descriptor.row_key.name)
        if row_key is None:
            raise ConfigurationError("The row key %s.%s can't be None"
                                     % (type(record).__name__, descriptor.row_key.name))
        put = Put(row_key)

    for write in encode(record, naming_policy):
        put.add(write)
    return put


def to_puts(records, naming_policy=None):
    policy = resolve_naming_policy(naming_policy)
    return [to_put(r, policy) for r in records]
