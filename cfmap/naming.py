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

import re
from enum import Enum

from .errors import ConfigurationError

_word_start_re = re.compile(r'([^_])([A-Z][a-z]+)')
_case_change_re = re.compile(r'([a-z0-9])([A-Z])')


def to_lower_case_with_underscore(name):
    """
    Convert an attribute name to lower case words separated by underscores.
    Applying it to its own output gives the same output back.

    >>> to_lower_case_with_underscore('emailAddress')
    'email_address'
    >>> to_lower_case_with_underscore('HTTPServerName')
    'http_server_name'
    >>> to_lower_case_with_underscore('email_address')
    'email_address'
    >>> to_lower_case_with_underscore('EMAIL_ADDRESS')
    'email_address'
    """
    s = _word_start_re.sub(r'\1_\2', name)
    return _case_change_re.sub(r'\1_\2', s).lower()


def to_upper_case_with_underscore(name):
    """
    >>> to_upper_case_with_underscore('emailAddress')
    'EMAIL_ADDRESS'
    """
    return to_lower_case_with_underscore(name).upper()


class NamingPolicy(Enum):
    """
    How an attribute name becomes a stored family or qualifier name.
    """
    IDENTITY = 'identity'
    LOWER_CASE_WITH_UNDERSCORE = 'lower_case_with_underscore'
    UPPER_CASE_WITH_UNDERSCORE = 'upper_case_with_underscore'

    def format(self, name):
        if self is NamingPolicy.IDENTITY:
            return name
        elif self is NamingPolicy.LOWER_CASE_WITH_UNDERSCORE:
            return to_lower_case_with_underscore(name)
        return to_upper_case_with_underscore(name)


# accepted spellings in config files and environment variables
_aliases = {
    'identity': NamingPolicy.IDENTITY,
    'lower_camel_case': NamingPolicy.IDENTITY,
    'lower_case_with_underscore': NamingPolicy.LOWER_CASE_WITH_UNDERSCORE,
    'snake_case': NamingPolicy.LOWER_CASE_WITH_UNDERSCORE,
    'upper_case_with_underscore': NamingPolicy.UPPER_CASE_WITH_UNDERSCORE,
}


def naming_policy_of(policy):
    """
    Resolve a NamingPolicy from a policy or its (case-insensitive) name.
    """
    if isinstance(policy, NamingPolicy):
        return policy
    if isinstance(policy, str):
        resolved = _aliases.get(policy.strip().lower())
        if resolved is not None:
            return resolved
    raise ConfigurationError("Unsupported naming policy: %r. Please use one of %s"
                             % (policy, ', '.join(p.value for p in NamingPolicy)))


def format_name(name, naming_policy):
    return naming_policy_of(naming_policy).format(name)
