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
Error hierarchy for the mapping engine.

    MappingError
     +-- ConfigurationError   bad record type, row key, naming policy or config file
     +-- AmbiguousResultError more cells than a scalar target can hold
     +-- MergeError           a pre-built Put merged into another Put
     +-- ValueDecodeError     a cell value the declared codec can't parse
     +-- StoreIOError         failure raised by the store client
"""


class MappingError(Exception): pass

class ConfigurationError(MappingError, ValueError): pass
class AmbiguousResultError(MappingError): pass
class MergeError(MappingError): pass
class ValueDecodeError(MappingError, ValueError): pass


class StoreIOError(MappingError):

    def __init__(self, msg, cause=None):
        MappingError.__init__(self, msg)
        self.cause = cause
