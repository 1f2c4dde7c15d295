# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
Status codes and the message catalog for errors reported to the user.

Errors are built from a message id so the same failure always produces the
same text, and each error can chain the exception that caused it::

    raise build_error(ErrorCode.GIT_OPS_ERR, "git-checkout-commit-push-create-PR-link", err)
"""
from enum import IntEnum
from typing import List, Mapping, Optional, Tuple, Union

from .util import RingopsError


class ErrorCode(IntEnum):
    CMD_EXE_ERR = 1000
    VALIDATION_ERR = 1001
    EXE_FLOW_ERR = 1002
    ENV_SETTING_ERR = 1010
    GIT_OPS_ERR = 1100
    FILE_IO_ERR = 1200


MESSAGES = {
    "git-err-invalid-repository-url": "Could not determine the repository; the origin url is not a valid git url.",
    "git-err-validating-remote-git": "Could not validate the remote git repository; only Azure DevOps, Visual Studio Online and GitHub repositories are supported.",
    "git-err-unsupported-remote": "Could not determine origin repository, or it is not a supported type.",
    "git-checkout-commit-push-create-PR-link": "Could not checkout, commit, push and create a pull request link.",
    "config-err-invalid": "Configuration file {path} is invalid: {reason}",
    "config-err-read": "Could not read configuration file {path}.",
    "config-err-write": "Could not write configuration file {path}.",
    "onboard-err-missing-values": "Required values are missing: {missing}",
    "onboard-err-storage-name": "Storage account name {name} is invalid. It must be between 3 and 24 characters long and contain only lowercase letters and numbers.",
    "onboard-err-table-name": "Table name {name} is invalid. It must be between 3 and 63 characters long, contain only letters and numbers and start with a letter.",
    "ring-err-invalid-name": "Ring name {name} is not a valid git branch name.",
    "ring-err-exists": "Ring {name} already exists.",
    "ring-err-missing": "Ring {name} does not exist.",
    "ring-err-delete-default": "Ring {name} is the default ring and cannot be deleted.",
    "ring-err-read": "Could not read rings file {path}.",
    "manifest-err-invalid": "Command manifest {name} is invalid: {reason}",
}

MessageId = Union[str, Tuple[str, Mapping[str, object]]]


class RingopsStatusError(RingopsError):
    """An error with a status code and an optional chained cause."""

    def __init__(
        self,
        code: ErrorCode,
        message_id: str,
        message: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message_id = message_id
        self.message = message
        self.cause = cause

    def chain(self) -> List[str]:
        """Messages from this error down through its causes."""
        messages = [f"code: {int(self.code)}: {self.message}"]
        cause = self.cause
        while cause is not None:
            if isinstance(cause, RingopsStatusError):
                messages.append(f"code: {int(cause.code)}: {cause.message}")
                cause = cause.cause
            else:
                messages.append(str(cause))
                break
        return messages

    def __str__(self) -> str:
        return "\n  ".join(self.chain())


def get_message(message_id: MessageId) -> Tuple[str, str]:
    if isinstance(message_id, str):
        key, values = message_id, {}
    else:
        key, values = message_id
    template = MESSAGES.get(key)
    if template is None:
        return key, key
    return key, template.format(**values)


def build_error(
    code: ErrorCode, message_id: MessageId, cause: Optional[BaseException] = None
) -> RingopsStatusError:
    key, message = get_message(message_id)
    return RingopsStatusError(code, key, message, cause)
