# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
Loads the user's configuration file (``~/.ringops/config.yaml`` or ``$RINGOPS_CONFIG``).

String values can reference environment variables with ``${NAME}`` or
``${NAME:default}``. References are resolved when values are read; the
document is saved back with the references intact.

.. code-block:: YAML

  azure_devops:
    org: my-org
    project: my-project
    access_token: ${AZURE_DEVOPS_EXT_PAT}
  introspection:
    azure:
      account_name: mystorage
      table_name: deployments
"""
import os
from collections.abc import Mapping, MutableSequence
from typing import Any, Optional

from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from . import get_default_config_path
from .errors import ErrorCode, build_error
from .logs import getLogger
from .merge import merge_dicts, set_path
from .util import (
    find_schema_errors,
    get_path,
    save_to_file,
    substitute_env,
    wrap_sensitive_value,
)
from .yamlloader import load_yaml, yaml

logger = getLogger("ringops")

_scalar = {"type": ["string", "number", "boolean", "null"]}

CONFIG_SCHEMA = {
    "type": ["object", "null"],
    "properties": {
        "azure_devops": {
            "type": ["object", "null"],
            "properties": {
                "org": _scalar,
                "project": _scalar,
                "access_token": _scalar,
                "hld_repository": _scalar,
                "manifest_repository": _scalar,
            },
        },
        "introspection": {
            "type": ["object", "null"],
            "properties": {
                "azure": {
                    "type": ["object", "null"],
                    "additionalProperties": _scalar,
                },
            },
        },
    },
}

DEFAULT_CONFIG = {
    "azure_devops": {
        "org": "",
        "project": "",
        "access_token": "",
        "hld_repository": "",
        "manifest_repository": "",
    },
    "introspection": {
        "azure": {
            "account_name": "",
            "table_name": "",
            "partition_key": "",
            "key": "",
        }
    },
}

SECRET_KEYS = ("access_token", "password", "secret", "key")
SECRET_SUFFIXES = ("_access_token", "_password", "_secret", "_key")
# table partition keys are names, not credentials
NOT_SECRET_KEYS = ("partition_key",)


def is_secret_key(key: str) -> bool:
    if key in NOT_SECRET_KEYS:
        return False
    return key in SECRET_KEYS or key.endswith(SECRET_SUFFIXES)


def _substitute(value: Any) -> Any:
    if isinstance(value, str):
        return substitute_env(value)
    if isinstance(value, Mapping):
        return {k: _substitute(v) for k, v in value.items()}
    if isinstance(value, MutableSequence):
        return [_substitute(v) for v in value]
    return value


def _mark_secrets(values: Mapping) -> dict:
    marked = {}
    for key, value in values.items():
        if isinstance(value, Mapping):
            marked[key] = _mark_secrets(value)
        elif value and is_secret_key(str(key)):
            marked[key] = wrap_sensitive_value(value)
        else:
            marked[key] = value
    return marked


class Configuration:
    def __init__(self, path: str, doc: Optional[CommentedMap] = None) -> None:
        self.path = path
        self.doc = doc if doc is not None else CommentedMap()

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Configuration":
        path = get_default_config_path(path)
        if not os.path.exists(path):
            logger.debug("configuration file %s not found, using defaults", path)
            return cls(path)
        try:
            with open(path) as f:
                doc = load_yaml(yaml, f.read(), path)
        except (OSError, YAMLError) as err:
            raise build_error(
                ErrorCode.FILE_IO_ERR, ("config-err-read", dict(path=path)), err
            )
        if doc is None:  # empty file
            doc = CommentedMap()
        errors = find_schema_errors(doc, CONFIG_SCHEMA)
        if errors:
            raise build_error(
                ErrorCode.VALIDATION_ERR,
                ("config-err-invalid", dict(path=path, reason=errors[0])),
            )
        logger.verbose("loaded configuration from %s", path)
        return cls(path, doc)

    @property
    def values(self) -> dict:
        """The configuration with defaults applied and environment variables resolved."""
        return merge_dicts(DEFAULT_CONFIG, _substitute(self.doc), cls=dict)

    def display_values(self) -> dict:
        """Like ``values`` but secrets are marked sensitive so they are redacted when printed."""
        return _mark_secrets(self.values)

    def get(self, key_path: str, default: Any = None) -> Any:
        value = get_path(self.values, key_path)
        if value in (None, "") and default is not None:
            return default
        if value and is_secret_key(key_path.rpartition(".")[2]):
            return wrap_sensitive_value(value)
        return value

    def set(self, key_path: str, value: Any) -> None:
        set_path(self.doc, key_path, value)

    def save(self) -> None:
        try:
            save_to_file(self.path, self.doc)
        except OSError as err:
            raise build_error(
                ErrorCode.FILE_IO_ERR, ("config-err-write", dict(path=self.path)), err
            )
        logger.debug("saved configuration to %s", self.path)


_current: Optional[Configuration] = None
_path: Optional[str] = None


def load_configuration(path: Optional[str] = None) -> Configuration:
    global _current
    _current = Configuration.load(path or _path)
    return _current


def get_config() -> Configuration:
    if _current is None:
        return load_configuration()
    return _current


def get_config_value(key_path: str, default: Any = None) -> Any:
    return get_config().get(key_path, default)


def reset_configuration(path: Optional[str] = None) -> None:
    """Forget the loaded configuration; the next lookup loads it from ``path``."""
    global _current, _path
    _current = None
    _path = path
