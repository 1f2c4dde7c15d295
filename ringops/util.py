# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
import sys
from typing import (
    IO,
    Any,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)
import traceback
import json
import re
import os
import io
import os.path
from collections.abc import MutableSequence
from jsonschema import Draft7Validator
import jsonschema.exceptions
from .logs import sensitive
import logging

logger = logging.getLogger("ringops")


class RingopsError(Exception):
    def __init__(
        self, message: object, saveStack: bool = False, log: bool = False
    ) -> None:
        stackInfo = None
        if saveStack:
            (etype, value, traceback) = sys.exc_info()
            if value:
                message = str(message) + ": " + str(value)
                stackInfo = (etype, value, traceback)
        super().__init__(message)
        self.stackInfo = stackInfo
        if log:
            logger.error(message, exc_info=True)

    def get_stack_trace(self) -> str:
        if not self.stackInfo:
            return ""
        return "".join(traceback.format_exception(*self.stackInfo))


def wrap_sensitive_value(obj: object):
    # convert to sensitive obj if possible or return the original object
    if isinstance(obj, sensitive):
        return obj
    elif isinstance(obj, str):
        return sensitive_str(obj)
    elif isinstance(obj, Mapping):
        return sensitive_dict(obj)
    elif isinstance(obj, MutableSequence):
        return sensitive_list(obj)
    else:
        return obj


class sensitive_str(str, sensitive):
    """Transparent wrapper class to mark a str as sensitive"""


class sensitive_dict(dict, sensitive):
    """Transparent wrapper class to mark a dict as sensitive"""


class sensitive_list(list, sensitive):
    """Transparent wrapper class to mark a list as sensitive"""


def substitute_env(contents, env=None, preserve_missing=False):
    """
    Replace ${NAME} or ${NAME:default value} with the value of the environment variable $NAME
    Use \\${NAME} to ignore
    """
    if env is None:
        env = os.environ

    def replace(m):
        if m.group(1):  # \ found
            return m.group(0)[len(m.group(1)) - 1 or 1 :]
        for name in m.group(2).split("|"):
            if name in env:
                value = env[name]
                if callable(value):
                    return value()
                return value
        # can't resolve, use default
        if preserve_missing:
            return m.group(0)
        else:  # return the default value or an empty ""
            return m.group(3)[1:] if m.group(3) else ""

    return re.sub(r"(\\+)?\$\{([\w|]+)(\:.+?)?\}", replace, contents)


def find_schema_errors(
    obj: Any, schema: Mapping
) -> Optional[Tuple[str, List[object]]]:
    Draft7Validator.check_schema(schema)
    validator = Draft7Validator(schema)
    errors = list(validator.iter_errors(obj))
    error = jsonschema.exceptions.best_match(errors)
    if not error:
        return None
    message = "%s in %s" % (
        error.message,
        "/".join([str(p) for p in error.absolute_path]),
    )
    return message, errors


def dump(obj: object, tp: IO[bytes], suffix: str = "") -> None:
    from .yamlloader import yaml

    f = io.TextIOWrapper(tp, "utf-8")
    try:
        if suffix.endswith(".yml") or suffix.endswith(".yaml"):
            yaml.dump(obj, f)
        elif suffix.endswith(".json"):
            json.dump(obj, f, indent=2)
        elif isinstance(obj, str):
            f.write(obj)
        elif obj is not None:  # treat None as 0 byte file
            json.dump(obj, f, indent=2, sort_keys=True)
    finally:
        f.flush()
        f.detach()


def save_to_file(path: str, obj: object) -> None:
    dir = os.path.dirname(path)
    if dir and not os.path.isdir(dir):
        os.makedirs(dir)
    with open(path, "wb") as f:
        dump(obj, f, path)


def get_path(doc: Mapping, path: Union[str, List[str]], default: Any = None) -> Any:
    """Look up a dotted key path ("a.b.c") in nested mappings."""
    keys = path.split(".") if isinstance(path, str) else path
    value: Any = doc
    for key in keys:
        if not isinstance(value, Mapping) or key not in value:
            return default
        value = value[key]
    return value


def has_value(value: Any) -> bool:
    return value is not None and value != ""
