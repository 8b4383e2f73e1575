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

from .codec import codec_for, codec_of, ValueCodec
from .columns import Cell, ColumnWrite, VersionedColumn
from .config import MappingConfig, default_config, load_config
from .decoder import RowDecoder, decode, decode_many
from .descriptor import Classification, column, descriptor_of, register_row_key_property
from .encoder import encode, to_put, to_puts
from .errors import (AmbiguousResultError, ConfigurationError, MappingError, MergeError, StoreIOError,
                     ValueDecodeError)
from .executor import ColumnStoreExecutor, Mapper
from .mutations import Delete, Get, Put, Scan, to_deletes, to_gets
from .naming import NamingPolicy, format_name

__version__ = '1.0.0'
