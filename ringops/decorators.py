# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
Commands declare their options in JSON manifests (see ``ringops/manifests``):

.. code-block:: JSON

  {
    "name": "onboard",
    "short_help": "Onboard deployment introspection",
    "options": [
      {
        "flags": ["-s", "--storage-account-name"],
        "help": "Azure storage account name",
        "required": true,
        "inherit": "introspection.azure.account_name"
      }
    ]
  }

Options marked ``required`` aren't enforced by click because a missing value
can be inherited from the configuration file (the ``inherit`` key path).
Call ``populate_inherit_value_from_config`` then ``validate_for_required_values``
in the command body.
"""
import functools
import json
import os.path
from functools import lru_cache
from typing import Any, Callable, Dict, List, MutableMapping, Optional

import rich_click as click

from . import config
from .errors import ErrorCode, build_error
from .logs import getLogger
from .util import find_schema_errors, has_value

logger = getLogger("ringops")

MANIFEST_DIR = os.path.join(os.path.abspath(os.path.dirname(__file__)), "manifests")

MANIFEST_SCHEMA = {
    "type": "object",
    "required": ["name", "options"],
    "properties": {
        "name": {"type": "string"},
        "short_help": {"type": "string"},
        "help": {"type": "string"},
        "arguments": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string"},
                    "required": {"type": "boolean"},
                    "nargs": {"type": "integer"},
                    "default": {},
                },
                "additionalProperties": False,
            },
        },
        "options": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["flags", "help"],
                "properties": {
                    "flags": {
                        "type": "array",
                        "items": {"type": "string", "pattern": "^-"},
                        "minItems": 1,
                    },
                    "help": {"type": "string"},
                    "required": {"type": "boolean"},
                    "inherit": {"type": "string"},
                    "is_flag": {"type": "boolean"},
                    "envvar": {"type": "string"},
                    "metavar": {"type": "string"},
                    "default": {},
                },
                "additionalProperties": False,
            },
        },
    },
}


def option_group(*options):
    # helper to reuse option decorators
    return lambda func: functools.reduce(lambda a, b: b(a), options, func)


@lru_cache(None)
def load_manifest(name: str) -> Dict[str, Any]:
    path = os.path.join(MANIFEST_DIR, name + ".json")
    with open(path) as f:
        manifest = json.load(f)
    errors = find_schema_errors(manifest, MANIFEST_SCHEMA)
    if errors:
        raise build_error(
            ErrorCode.VALIDATION_ERR,
            ("manifest-err-invalid", dict(name=name, reason=errors[0])),
        )
    return manifest


def _long_flag(option: Dict[str, Any]) -> str:
    long_flags = [f for f in option["flags"] if f.startswith("--")]
    return long_flags[0] if long_flags else option["flags"][0]


def option_dest(option: Dict[str, Any]) -> str:
    """The parameter name click derives from the option's flags."""
    return _long_flag(option).lstrip("-").replace("-", "_").lower()


def manifest_options(manifest: Dict[str, Any]):
    options = []
    for option in manifest["options"]:
        kw: Dict[str, Any] = dict(help=option["help"])
        if option.get("is_flag"):
            kw["is_flag"] = True
            kw["default"] = option.get("default", False)
        elif "default" in option:
            kw["default"] = option["default"]
        if option.get("envvar"):
            kw["envvar"] = option["envvar"]
            kw["show_envvar"] = True
        if option.get("metavar"):
            kw["metavar"] = option["metavar"]
        options.append(click.option(*option["flags"], **kw))
    return option_group(*options)


def manifest_command(group: click.Group, name: str) -> Callable:
    """
    Decorator that registers the function as a command of ``group`` with the
    arguments and options declared in the named manifest.
    """
    manifest = load_manifest(name)

    def decorator(func):
        func = manifest_options(manifest)(func)
        for argument in reversed(manifest.get("arguments", [])):
            kw = dict(required=argument.get("required", True))
            if "nargs" in argument:
                kw["nargs"] = argument["nargs"]
            if "default" in argument:
                kw["default"] = argument["default"]
            func = click.argument(argument["name"], **kw)(func)
        return group.command(
            manifest["name"],
            short_help=manifest.get("short_help"),
            help=manifest.get("help"),
        )(func)

    return decorator


def populate_inherit_value_from_config(
    manifest: Dict[str, Any],
    opts: MutableMapping[str, Any],
    configuration: Optional[config.Configuration] = None,
) -> MutableMapping[str, Any]:
    """
    Fill in options that weren't set on the command line from the configuration
    keys named by the options' ``inherit`` property.
    """
    configuration = configuration or config.get_config()
    for option in manifest["options"]:
        inherit = option.get("inherit")
        if not inherit:
            continue
        dest = option_dest(option)
        if not has_value(opts.get(dest)):
            value = configuration.get(inherit)
            if has_value(value):
                logger.debug("using %s from configuration for %s", inherit, dest)
                opts[dest] = value
    return opts


def validate_for_required_values(
    manifest: Dict[str, Any], values: MutableMapping[str, Any]
) -> List[str]:
    """Returns (and logs) the flags of required options that have no value."""
    missing = []
    for option in manifest["options"]:
        if option.get("required") and not has_value(values.get(option_dest(option))):
            missing.append(_long_flag(option))
    if missing:
        logger.error("the following arguments are required: %s", ", ".join(missing))
    return missing
