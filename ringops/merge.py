# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
from collections.abc import Mapping, MutableMapping, MutableSequence
from typing import Any, List, Union

from ruamel.yaml.comments import CommentedMap

from .util import RingopsError

# other values besides delete not supported because current code can leave those keys in final result
mergeStrategyKey = "+%"  # supported values: "whiteout", "nullout", "error"


# b is the merge patch, a is original dict
def merge_dicts(b, a, cls=None):
    """
    Returns a new dict (or cls) that recursively merges b into a.
    b is base, a overrides. Lists present in both are appended, skipping
    items already in b.

    Similar to https://yaml.org/type/merge.html but does a recursive merge
    """
    cls = cls or b.__class__
    cp = cls()
    skip = []
    for key, val in a.items():
        if key == mergeStrategyKey:
            continue
        # note: for merging treat None as an empty map
        if isinstance(val, Mapping) or val is None:
            strategy = val and val.get(mergeStrategyKey)
            if key in b:
                bval = b[key]
                if isinstance(bval, Mapping):
                    # merge strategy of a overrides b
                    if not strategy:
                        strategy = bval.get(mergeStrategyKey) or "merge"
                    if strategy == "merge":
                        if not val:  # empty map, treat as missing key
                            continue
                        cp[key] = merge_dicts(bval, val, cls=cls)
                        continue
                    if strategy == "error":
                        raise RingopsError(
                            "merging %s is not allowed, +%%: error was set" % key
                        )
                # otherwise we ignore bval because key is already in a
            if strategy == "whiteout":
                skip.append(key)
                continue
            if strategy == "nullout":
                val = None
        elif isinstance(val, MutableSequence) and isinstance(b.get(key), MutableSequence):
            bval = b[key]
            cp[key] = bval + [item for item in val if item not in bval]
            continue

        # otherwise a replaces b
        cp[key] = val

    # add new keys
    for key, val in b.items():
        if key == mergeStrategyKey:
            continue
        if key not in cp and key not in skip:
            # note: val is shared not copied
            cp[key] = val
    return cp


def set_path(doc: MutableMapping, path: Union[str, List[str]], value: Any, cls=None):
    """
    Set the value at the given dotted key path, creating intermediate maps
    as needed. Missing or null intermediate values are replaced with a new map.
    """
    keys = path.split(".") if isinstance(path, str) else list(path)
    cls = cls or CommentedMap
    current = doc
    for key in keys[:-1]:
        child = current.get(key)
        if child is None:
            child = cls()
            current[key] = child
        elif not isinstance(child, MutableMapping):
            raise RingopsError(
                f'can not set "{".".join(keys)}": "{key}" is not a map'
            )
        current = child
    current[keys[-1]] = value
    return doc
