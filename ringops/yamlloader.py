# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
import io
from typing import Optional, TextIO, Union

from ruamel.yaml import YAML
from ruamel.yaml.representer import RepresenterError

from .util import (
    sensitive_dict,
    sensitive_list,
    sensitive_str,
)
from .logs import sensitive


def represent_undefined(dumper, data):
    raise RepresenterError(
        f"cannot represent an object: <{data}> of type {type(data)}"
    )


def _represent_sensitive(dumper, data, tag):
    # never write secrets that were resolved from the environment back out in clear text
    return dumper.represent_scalar(tag, sensitive.redacted_str)


def represent_sensitive_str(dumper, data):
    return _represent_sensitive(dumper, data, "tag:yaml.org,2002:str")


def represent_sensitive_list(dumper, data):
    return _represent_sensitive(dumper, data, "tag:yaml.org,2002:str")


def represent_sensitive_dict(dumper, data):
    return _represent_sensitive(dumper, data, "tag:yaml.org,2002:str")


def make_yaml():
    yaml = YAML()
    yaml.preserve_quotes = True  # type:ignore[assignment]

    # monkey patch for better error message
    yaml.representer.represent_undefined = represent_undefined
    yaml.representer.add_representer(None, represent_undefined)

    yaml.representer.add_representer(sensitive_str, represent_sensitive_str)
    yaml.representer.add_representer(sensitive_dict, represent_sensitive_dict)
    yaml.representer.add_representer(sensitive_list, represent_sensitive_list)
    return yaml


def load_yaml(yaml, stream: Union[str, TextIO], path: Optional[str] = None):
    if path and isinstance(stream, str):
        stream = io.StringIO(stream)
        stream.name = path  # type: ignore[attr-defined]
    return yaml.load(stream)


def dump_yaml(obj: object) -> str:
    out = io.StringIO()
    yaml.dump(obj, out)
    return out.getvalue()


yaml = make_yaml()
