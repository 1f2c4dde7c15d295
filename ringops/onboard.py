# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
Onboarding for deployment introspection: checks the storage account and table
settings and records them in the configuration file.
"""
import re
from dataclasses import dataclass
from typing import List, Mapping, Optional

from . import config
from .errors import ErrorCode, build_error
from .logs import getLogger
from .util import has_value

logger = getLogger("ringops")

# https://docs.microsoft.com/en-us/azure/storage/common/storage-account-overview#naming-storage-accounts
STORAGE_NAME_RE = re.compile(r"[a-z0-9]{3,24}")
# https://docs.microsoft.com/en-us/rest/api/storageservices/understanding-the-table-service-data-model#table-names
TABLE_NAME_RE = re.compile(r"[A-Za-z][A-Za-z0-9]{2,62}")


@dataclass
class AzureAccessOpts:
    service_principal_id: Optional[str] = None
    service_principal_password: Optional[str] = None
    tenant_id: Optional[str] = None
    subscription_id: Optional[str] = None


def validate_storage_name(name: str) -> bool:
    return bool(STORAGE_NAME_RE.fullmatch(name or ""))


def validate_table_name(name: str) -> bool:
    return bool(TABLE_NAME_RE.fullmatch(name or ""))


def validate_required_arguments(
    storage_account_name: Optional[str],
    storage_table_name: Optional[str],
    storage_resource_group: Optional[str],
    access_opts: AzureAccessOpts,
) -> List[str]:
    """Returns a message for each required value that is missing or empty."""
    required = [
        (storage_account_name, "Storage account name"),
        (storage_table_name, "Storage table name"),
        (storage_resource_group, "Storage resource group name"),
        (access_opts.service_principal_id, "Service principal id"),
        (access_opts.service_principal_password, "Service principal password"),
        (access_opts.subscription_id, "Subscription id"),
        (access_opts.tenant_id, "Tenant id"),
    ]
    errors = []
    for value, label in required:
        if not has_value(value):
            errors.append(f"{label} was not provided")
    for error in errors:
        logger.error(error)
    return errors


def set_configuration(
    storage_account_name: str,
    storage_table_name: str,
    config_path: Optional[str] = None,
) -> config.Configuration:
    """
    Saves the storage account and table names to the configuration file and
    reloads the configuration.
    """
    if config_path is None:
        config_path = config.get_config().path
    configuration = config.Configuration.load(config_path)
    configuration.set("introspection.azure.account_name", storage_account_name)
    configuration.set("introspection.azure.table_name", storage_table_name)
    configuration.save()
    logger.info(
        "Updated introspection storage settings in %s", configuration.path
    )
    return config.load_configuration(config_path)


def onboard(opts: Mapping) -> config.Configuration:
    """
    Validate the onboarding options and save the storage settings.

    ``opts`` uses the option names of the ``deployment onboard`` command.
    """
    storage_account_name = opts.get("storage_account_name")
    storage_table_name = opts.get("storage_table_name")
    access_opts = AzureAccessOpts(
        service_principal_id=opts.get("service_principal_id"),
        service_principal_password=opts.get("service_principal_password"),
        tenant_id=opts.get("tenant_id"),
        subscription_id=opts.get("subscription_id"),
    )
    errors = validate_required_arguments(
        storage_account_name,
        storage_table_name,
        opts.get("storage_resource_group_name"),
        access_opts,
    )
    if errors:
        raise build_error(
            ErrorCode.VALIDATION_ERR,
            ("onboard-err-missing-values", dict(missing="; ".join(errors))),
        )
    assert storage_account_name and storage_table_name
    if not validate_storage_name(storage_account_name):
        raise build_error(
            ErrorCode.VALIDATION_ERR,
            ("onboard-err-storage-name", dict(name=storage_account_name)),
        )
    if not validate_table_name(storage_table_name):
        raise build_error(
            ErrorCode.VALIDATION_ERR,
            ("onboard-err-table-name", dict(name=storage_table_name)),
        )
    return set_configuration(storage_account_name, storage_table_name)
