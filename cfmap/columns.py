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

from collections import namedtuple
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar('T')

EMPTY_QUALIFIER = ''

# One fact as it comes off the store. row, family, qualifier and value may be
# bytes or str, timestamp is the cell version.
Cell = namedtuple('Cell', 'row family qualifier value timestamp')

# One resolved column of a put. value is the codec encoded text, version is
# None for writes that let the store pick the timestamp.
ColumnWrite = namedtuple('ColumnWrite', 'family qualifier value version')


@dataclass(frozen=True)
class VersionedColumn(Generic[T]):
    """
    One revision of one qualifier: a value and the version (timestamp) it
    was written at.
    """
    value: T
    version: int

    @classmethod
    def of(cls, value, version):
        return cls(value, version)

    def __str__(self):
        return '%s@%s' % (self.value, self.version)
