# SPDX-License-Identifier: MIT
# Copyright (c) 2020 Adam Souzis
import os
from typing import Union

from ringops import logs


# We need to initialize logging before any logger is created
logs.initialize_logging()


def __version__() -> str:
    from importlib.metadata import version, PackageNotFoundError

    try:
        return version("ringops")
    except PackageNotFoundError:
        # running from a source checkout that wasn't installed
        return "0.0.0"


class DefaultNames:
    ConfigDirectory = ".ringops"
    ConfigFile = "config.yaml"
    RingsFile = "rings.yaml"


def get_default_config_path(configpath: Union[None, str] = None) -> str:
    # an explicit path overrides RINGOPS_CONFIG
    # otherwise use RINGOPS_CONFIG or the default location in the home directory
    if not configpath:
        configpath = os.getenv("RINGOPS_CONFIG") or os.path.join(
            "~", DefaultNames.ConfigDirectory, DefaultNames.ConfigFile
        )
    configpath = os.path.expanduser(configpath)
    if os.path.isdir(configpath):
        return os.path.abspath(os.path.join(configpath, DefaultNames.ConfigFile))
    return os.path.abspath(configpath)
