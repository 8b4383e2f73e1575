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

import os

import configparser

from .errors import ConfigurationError
from .naming import NamingPolicy, naming_policy_of

DEFAULT_CONFIG_FILE = os.path.join(os.path.expanduser('~'), '.cfmap', 'cfmaprc')
DEFAULT_NAMING_POLICY = NamingPolicy.IDENTITY
DEFAULT_MAX_VERSIONS = 1


class MappingConfig(object):

    def __init__(self, naming_policy=DEFAULT_NAMING_POLICY, max_versions=DEFAULT_MAX_VERSIONS):
        self.naming_policy = naming_policy
        self.max_versions = max_versions

    def __eq__(self, other):
        return isinstance(other, MappingConfig) and \
            (self.naming_policy, self.max_versions) == (other.naming_policy, other.max_versions)

    def __repr__(self):
        return 'MappingConfig(naming_policy=%s, max_versions=%d)' % (self.naming_policy.value, self.max_versions)


def load_config(config_file=None, env=os.environ):
    """
    Load the mapping settings.

    Params:
    * config_file ..: path to the config file. Defaults to $CFMAP_CONFIG_FILE,
                      then ~/.cfmap/cfmaprc. A missing file means defaults.
    * env ..........: environment variables. CFMAP_NAMING_POLICY and
                      CFMAP_MAX_VERSIONS override the [mapping] section.

    EXAMPLE CFMAPRC:

    [mapping]
    naming_policy = lower_case_with_underscore
    max_versions = 3

    An unknown naming policy or a max_versions that isn't a positive
    integer raises ConfigurationError.
    """
    if config_file is None:
        config_file = env.get('CFMAP_CONFIG_FILE', DEFAULT_CONFIG_FILE)

    configs = configparser.ConfigParser()
    try:
        configs.read(config_file)
    except configparser.Error as e:
        raise ConfigurationError("Can't parse config file %s: %s" % (config_file, e))

    def get_option(section, option):
        try:
            return configs.get(section, option)
        except configparser.Error:
            return None

    policy_str = env.get('CFMAP_NAMING_POLICY')
    if policy_str is None:
        policy_str = get_option('mapping', 'naming_policy')
    naming_policy = DEFAULT_NAMING_POLICY if policy_str is None else naming_policy_of(policy_str)

    max_versions_str = env.get('CFMAP_MAX_VERSIONS')
    if max_versions_str is None:
        max_versions_str = get_option('mapping', 'max_versions')
    max_versions = DEFAULT_MAX_VERSIONS
    if max_versions_str is not None:
        try:
            max_versions = int(max_versions_str)
        except ValueError:
            max_versions = 0
        if max_versions < 1:
            raise ConfigurationError("max_versions must be a positive integer, got %r in %s"
                                     % (max_versions_str, config_file))

    return MappingConfig(naming_policy, max_versions)


_default_config = None


def default_config():
    """
    The settings used when a call doesn't pass its own, loaded on first use.
    """
    global _default_config
    if _default_config is None:
        _default_config = load_config()
    return _default_config


def resolve_naming_policy(naming_policy=None):
    if naming_policy is None:
        return default_config().naming_policy
    return naming_policy_of(naming_policy)
