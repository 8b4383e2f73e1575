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
Structural description of record types.

A record type is a dataclass. Each init field other than the row key is bound
to a family (and for nested entities, to qualifiers under that family) and
classified once:

    name: str                                   SCALAR
    name: Name                                  NESTED_ENTITY (Name is a dataclass)
    hc1: VersionedColumn[List[str]]             VERSIONED_SCALAR
    hc2: List[VersionedColumn[float]]           VERSIONED_COLLECTION
    scores: Dict[str, VersionedColumn[int]]     VERSIONED_MAP

Descriptors are built on first use, kept for the life of the process and
never changed once published.
"""

import collections.abc
import dataclasses
import logging
import threading
import typing
from enum import Enum

from .codec import codec_of, is_mapping_type, unwrap_optional
from .columns import EMPTY_QUALIFIER, VersionedColumn
from .errors import ConfigurationError
from .naming import NamingPolicy

log = logging.getLogger(__name__)

ROW_KEY = 'cfmap.row_key'
FAMILY = 'cfmap.family'
QUALIFIER = 'cfmap.qualifier'


def column(family=None, qualifier=None, row_key=False, **kwargs):
    """
    dataclasses.field() with mapping options.

    Params:
    * family .....: stored family name, used verbatim instead of the
                    naming policy applied to the attribute name.
    * qualifier ..: stored qualifier name, used verbatim.
    * row_key ....: this attribute is read from / written to the row key.

    Any other keyword argument is passed on to dataclasses.field().
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    if row_key:
        metadata[ROW_KEY] = True
    if family is not None:
        metadata[FAMILY] = family
    if qualifier is not None:
        metadata[QUALIFIER] = qualifier
    return dataclasses.field(metadata=metadata, **kwargs)


class Classification(Enum):
    SCALAR = 'scalar'
    NESTED_ENTITY = 'nested entity'
    VERSIONED_SCALAR = 'versioned scalar'
    VERSIONED_COLLECTION = 'versioned collection'
    VERSIONED_MAP = 'versioned map'

    @property
    def owns_family(self):
        """Whether the attribute claims every qualifier of its family."""
        return self in (Classification.NESTED_ENTITY, Classification.VERSIONED_MAP)


_collection_factories = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Collection: list,
    collections.abc.Iterable: list,
    collections.abc.Set: set,
    collections.abc.MutableSet: set,
}


def is_entity(tp):
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def is_versioned_column(tp):
    tp = unwrap_optional(tp)
    return tp is VersionedColumn or typing.get_origin(tp) is VersionedColumn


def _versioned_value_type(owner, name, tp):
    args = typing.get_args(unwrap_optional(tp))
    if not args:
        raise ConfigurationError("VersionedColumn attribute %s.%s must declare its value type, "
                                 "e.g. VersionedColumn[str]" % (owner.__name__, name))
    return args[0]


def classify(owner, name, tp):
    """
    Return (classification, value type, container factory) for an
    attribute declared as tp on owner.
    """
    tp = unwrap_optional(tp)
    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if is_versioned_column(tp):
        return Classification.VERSIONED_SCALAR, _versioned_value_type(owner, name, tp), None

    if origin in _collection_factories and args and is_versioned_column(args[0]):
        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            raise ConfigurationError("Unsupported attribute type: %s.%s: %r. Use Tuple[VersionedColumn[T], ...]"
                                     % (owner.__name__, name, tp))
        return (Classification.VERSIONED_COLLECTION, _versioned_value_type(owner, name, args[0]),
                _collection_factories[origin])

    if is_mapping_type(tp):
        if len(args) == 2 and is_versioned_column(args[1]):
            if unwrap_optional(args[0]) is not str:
                raise ConfigurationError("Unsupported attribute type: %s.%s: %r. The keys of a map of "
                                         "VersionedColumn are qualifier names and must be str"
                                         % (owner.__name__, name, tp))
            return Classification.VERSIONED_MAP, _versioned_value_type(owner, name, args[1]), dict
        raise ConfigurationError("Unsupported attribute type: %s.%s: %r. Only maps of str to "
                                 "VersionedColumn can be stored as a family" % (owner.__name__, name, tp))

    if is_entity(tp):
        return Classification.NESTED_ENTITY, tp, None

    return Classification.SCALAR, tp, None


class AttributeBinding(object):
    """
    How one attribute maps onto the column space.
    """

    def __init__(self, name, classification, value_type, codec=None, family=None, qualifier=None,
                 factory=None, descriptor=None):
        self.name = name
        self.classification = classification
        self.value_type = value_type
        self.codec = codec
        self.family = family
        self.qualifier = qualifier
        self.factory = factory
        self.descriptor = descriptor

    def family_name(self, naming_policy):
        if self.family is not None:
            return self.family
        return naming_policy.format(self.name)

    def qualifier_name(self, naming_policy, nested=False):
        if self.qualifier is not None:
            return self.qualifier
        if nested:
            return naming_policy.format(self.name)
        return EMPTY_QUALIFIER

    def __repr__(self):
        return '<AttributeBinding %s: %s %r>' % (self.name, self.classification.value, self.value_type)


class TypeDescriptor(object):
    """
    Row-key binding, attribute bindings and the reverse index from stored
    family/qualifier names to attributes for one record type.

    Params:
    * record_type ..: the dataclass being described.
    * row_key_name .: attribute registered as row key, if any. Fields marked
                      with column(row_key=True) are picked up as well.
    * nested .......: build the description of a type used as a nested
                      entity; its attributes become qualifiers and it has no
                      row key.
    """

    def __init__(self, record_type, row_key_name=None, nested=False):
        if not is_entity(record_type):
            raise ConfigurationError("Unsupported type: %r. Only dataclass records can be mapped to rows"
                                     % (record_type,))
        self.record_type = record_type
        self.nested = nested
        self.row_key = None

        try:
            hints = typing.get_type_hints(record_type)
        except NameError as e:
            raise ConfigurationError("Can't resolve the attribute types of %s: %s" % (record_type.__name__, e))

        fields = [f for f in dataclasses.fields(record_type) if f.init]
        # attributes the constructor can't do without, passed as None when a row lacks them
        self.required = tuple(f.name for f in fields
                              if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING)
        if not nested:
            row_key_field = self._find_row_key_field(fields, row_key_name)
            if row_key_field is not None:
                self.row_key = self._bind_row_key(row_key_field, hints.get(row_key_field.name, row_key_field.type))
                fields = [f for f in fields if f is not row_key_field]

        self.attributes = tuple(self._bind(f, hints.get(f.name, f.type)) for f in fields)
        self._by_name = dict((b.name, b) for b in self.attributes)

        if nested:
            self._qualifiers = dict((p, self._index_qualifiers(p)) for p in NamingPolicy)
        else:
            self._columns = {}
            self._families = {}
            for policy in NamingPolicy:
                self._columns[policy], self._families[policy] = self._index_families(policy)

    def _find_row_key_field(self, fields, row_key_name):
        flagged = [f for f in fields if f.metadata.get(ROW_KEY)]
        if len(flagged) > 1:
            raise ConfigurationError("%s declares more than one row key: %s"
                                     % (self.record_type.__name__, ', '.join(f.name for f in flagged)))
        if row_key_name is None:
            return flagged[0] if flagged else None

        if flagged and flagged[0].name != row_key_name:
            raise ConfigurationError("%s declares row key %s but %s was registered as its row key"
                                     % (self.record_type.__name__, flagged[0].name, row_key_name))
        for f in fields:
            if f.name == row_key_name:
                return f
        raise ConfigurationError("%s doesn't have the row key property: %s"
                                 % (self.record_type.__name__, row_key_name))

    def _bind_row_key(self, field, tp):
        check_row_key_type(self.record_type, field.name, tp)
        return AttributeBinding(field.name, Classification.SCALAR, unwrap_optional(tp), codec_of(tp))

    def _bind(self, field, tp):
        owner = self.record_type
        classification, value_type, factory = classify(owner, field.name, tp)
        family = field.metadata.get(FAMILY)
        qualifier = field.metadata.get(QUALIFIER)

        if self.nested:
            if classification is Classification.NESTED_ENTITY:
                raise ConfigurationError("Unsupported attribute type: %s.%s: %r. Nested entities can only be "
                                         "one level deep" % (owner.__name__, field.name, value_type))
            if classification is Classification.VERSIONED_MAP:
                raise ConfigurationError("Unsupported attribute type: %s.%s: %r. A map of VersionedColumn "
                                         "can't be part of a nested entity" % (owner.__name__, field.name, tp))
            if family is not None:
                raise ConfigurationError("%s.%s: attributes of a nested entity can't set a family"
                                         % (owner.__name__, field.name))
        elif classification.owns_family and qualifier is not None:
            raise ConfigurationError("%s.%s: a %s owns its whole family and can't set a qualifier"
                                     % (owner.__name__, field.name, classification.value))

        if classification is Classification.NESTED_ENTITY:
            return AttributeBinding(field.name, classification, value_type, family=family,
                                    descriptor=TypeDescriptor(value_type, nested=True))

        return AttributeBinding(field.name, classification, value_type, codec_of(value_type),
                                family=family, qualifier=qualifier, factory=factory)

    def _index_families(self, policy):
        columns = {}
        families = {}
        for b in self.attributes:
            family = b.family_name(policy)
            if b.classification.owns_family:
                clash = families.get(family) or next((c for (f, _), c in columns.items() if f == family), None)
                if clash is not None:
                    self._clash(b, clash, family, policy)
                families[family] = b
            else:
                key = (family, b.qualifier_name(policy))
                clash = columns.get(key) or families.get(family)
                if clash is not None:
                    self._clash(b, clash, '%s:%s' % key, policy)
                columns[key] = b
        return columns, families

    def _index_qualifiers(self, policy):
        qualifiers = {}
        for b in self.attributes:
            qualifier = b.qualifier_name(policy, nested=True)
            if qualifier in qualifiers:
                self._clash(b, qualifiers[qualifier], qualifier, policy)
            qualifiers[qualifier] = b
        return qualifiers

    def _clash(self, binding, other, column, policy):
        raise ConfigurationError("%s.%s and %s.%s are both stored as %s under naming policy %s"
                                 % (self.record_type.__name__, other.name, self.record_type.__name__,
                                    binding.name, column, policy.value))

    def attribute(self, name):
        return self._by_name.get(name)

    def binding_for(self, family, qualifier, naming_policy):
        """
        Return the binding a stored column decodes into, or None for a
        column this type doesn't know about.
        """
        binding = self._columns[naming_policy].get((family, qualifier))
        if binding is None:
            binding = self._families[naming_policy].get(family)
        return binding

    def binding_for_qualifier(self, qualifier, naming_policy):
        return self._qualifiers[naming_policy].get(qualifier)

    def families(self, naming_policy):
        return sorted(set(b.family_name(naming_policy) for b in self.attributes))

    def __repr__(self):
        return '<TypeDescriptor %s row_key=%s attributes=%s>' % (
            self.record_type.__name__, self.row_key.name if self.row_key else None,
            [b.name for b in self.attributes])


def check_row_key_type(owner, name, tp):
    tp = unwrap_optional(tp)
    args = typing.get_args(tp)
    if is_versioned_column(tp) or any(is_versioned_column(a) for a in args):
        raise ConfigurationError("Unsupported row key type: %s.%s: %r. The row key can't be a VersionedColumn "
                                 "or a collection of VersionedColumn" % (owner.__name__, name, tp))
    if is_mapping_type(tp) or is_entity(tp):
        raise ConfigurationError("Unsupported row key type: %s.%s: %r. The row key must be a single value"
                                 % (owner.__name__, name, tp))
    codec_of(tp)


# Published descriptors and registered row keys. Both only ever grow; reads
# take no lock, builds are serialized so a half-built descriptor is never seen.
_descriptors = {}
_row_key_properties = {}
_lock = threading.Lock()


def descriptor_of(record_type):
    descriptor = _descriptors.get(record_type)
    if descriptor is None:
        with _lock:
            descriptor = _descriptors.get(record_type)
            if descriptor is None:
                descriptor = TypeDescriptor(record_type, _row_key_properties.get(record_type))
                _descriptors[record_type] = descriptor
                log.debug("Built %r", descriptor)
    return descriptor


def register_row_key_property(record_type, row_key_name):
    """
    The row key of record_type will be read from and written to the given
    attribute. Must be called before the type is first encoded or decoded.
    """
    if not is_entity(record_type):
        raise ConfigurationError("Unsupported type: %r. Only dataclass records can be mapped to rows"
                                 % (record_type,))
    fields = dict((f.name, f) for f in dataclasses.fields(record_type) if f.init)
    if row_key_name not in fields:
        raise ConfigurationError("%s doesn't have the row key property: %s"
                                 % (record_type.__name__, row_key_name))
    hints = typing.get_type_hints(record_type)
    check_row_key_type(record_type, row_key_name, hints.get(row_key_name, fields[row_key_name].type))

    with _lock:
        existing = _descriptors.get(record_type)
        if existing is not None and (existing.row_key is None or existing.row_key.name != row_key_name):
            raise ConfigurationError("The row key of %s must be registered before it is first used"
                                     % (record_type.__name__,))
        _row_key_properties[record_type] = row_key_name
