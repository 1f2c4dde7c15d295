# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
Rings are the deployment environments of a project (e.g. dev, qa, prod), each
backed by a git branch of the same name. They are declared in the project's
``rings.yaml``:

.. code-block:: YAML

  rings:
    master:
      isDefault: true
    qa: {}
"""
import os.path
from typing import Optional

import git
import git.exc
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from . import DefaultNames
from .errors import ErrorCode, build_error
from .logs import getLogger
from .util import save_to_file
from .yamlloader import load_yaml, yaml

logger = getLogger("ringops")


def get_rings_path(project_dir: str) -> str:
    return os.path.join(os.path.abspath(project_dir), DefaultNames.RingsFile)


def load_rings(project_dir: str) -> CommentedMap:
    path = get_rings_path(project_dir)
    if not os.path.exists(path):
        doc = CommentedMap()
    else:
        try:
            with open(path) as f:
                doc = load_yaml(yaml, f.read(), path) or CommentedMap()
        except (OSError, YAMLError) as err:
            raise build_error(ErrorCode.FILE_IO_ERR, ("ring-err-read", dict(path=path)), err)
    if doc.get("rings") is None:
        doc["rings"] = CommentedMap()
    return doc


def save_rings(project_dir: str, doc: CommentedMap) -> str:
    path = get_rings_path(project_dir)
    save_to_file(path, doc)
    return path


def validate_ring_name(name: str) -> None:
    try:
        git.Git().check_ref_format("--branch", name)
    except git.exc.GitCommandError as err:
        raise build_error(
            ErrorCode.VALIDATION_ERR, ("ring-err-invalid-name", dict(name=name)), err
        )


def get_default_ring(doc: CommentedMap) -> Optional[str]:
    for name, ring in doc["rings"].items():
        if ring and ring.get("isDefault"):
            return name
    return None


def create_ring(project_dir: str, name: str) -> str:
    validate_ring_name(name)
    doc = load_rings(project_dir)
    rings = doc["rings"]
    if name in rings:
        raise build_error(ErrorCode.VALIDATION_ERR, ("ring-err-exists", dict(name=name)))
    ring = CommentedMap()
    if not rings:
        # the first ring becomes the default
        ring["isDefault"] = True
    rings[name] = ring
    path = save_rings(project_dir, doc)
    logger.info("Created ring %s in %s", name, path)
    return path


def delete_ring(project_dir: str, name: str) -> str:
    doc = load_rings(project_dir)
    rings = doc["rings"]
    if name not in rings:
        raise build_error(ErrorCode.VALIDATION_ERR, ("ring-err-missing", dict(name=name)))
    if get_default_ring(doc) == name:
        raise build_error(
            ErrorCode.VALIDATION_ERR, ("ring-err-delete-default", dict(name=name))
        )
    del rings[name]
    path = save_rings(project_dir, doc)
    logger.info("Deleted ring %s from %s", name, path)
    return path


def set_default_ring(project_dir: str, name: str) -> str:
    doc = load_rings(project_dir)
    rings = doc["rings"]
    if name not in rings:
        raise build_error(ErrorCode.VALIDATION_ERR, ("ring-err-missing", dict(name=name)))
    for ring_name in list(rings):
        ring = rings[ring_name]
        if ring_name == name:
            if ring is None:
                ring = rings[ring_name] = CommentedMap()
            ring["isDefault"] = True
        elif ring and "isDefault" in ring:
            del ring["isDefault"]
    path = save_rings(project_dir, doc)
    logger.info("Set %s as the default ring in %s", name, path)
    return path
