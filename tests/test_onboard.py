import os

import pytest

from ringops import config
from ringops.errors import ErrorCode, RingopsStatusError
from ringops.onboard import (
    AzureAccessOpts,
    onboard,
    set_configuration,
    validate_required_arguments,
    validate_storage_name,
    validate_table_name,
)
from ringops.yamlloader import load_yaml, yaml

ACCESS_OPTS = dict(
    service_principal_id="servicePrincipalId",
    service_principal_password="servicePrincipalPassword",
    tenant_id="tenantId",
    subscription_id="subscriptionId",
)


class TestValidateRequiredArguments:
    def test_all_missing(self, caplog):
        errors = validate_required_arguments(None, None, None, AzureAccessOpts())
        assert len(errors) == 7
        assert "Storage account name was not provided" in caplog.text

    def test_all_empty(self):
        errors = validate_required_arguments(
            "", "", "", AzureAccessOpts("", "", "", "")
        )
        assert len(errors) == 7

    def test_none_missing(self):
        errors = validate_required_arguments(
            "account", "table", "group", AzureAccessOpts(**ACCESS_OPTS)
        )
        assert errors == []

    @pytest.mark.parametrize(
        ["missing", "message"],
        [
            ("service_principal_id", "Service principal id was not provided"),
            ("service_principal_password", "Service principal password was not provided"),
            ("tenant_id", "Tenant id was not provided"),
            ("subscription_id", "Subscription id was not provided"),
        ],
    )
    def test_one_access_value_missing(self, missing, message):
        opts = dict(ACCESS_OPTS)
        opts[missing] = ""
        errors = validate_required_arguments(
            "account", "table", "group", AzureAccessOpts(**opts)
        )
        assert errors == [message]

    def test_one_storage_value_missing(self):
        access_opts = AzureAccessOpts(**ACCESS_OPTS)
        assert len(validate_required_arguments(None, "table", "group", access_opts)) == 1
        assert len(validate_required_arguments("account", None, "group", access_opts)) == 1
        assert validate_required_arguments("account", "table", "", access_opts) == [
            "Storage resource group name was not provided"
        ]


@pytest.mark.parametrize(
    ["name", "valid"],
    [
        ("deployment", True),
        ("Deployment1", True),
        ("abc", True),
        ("ab", False),
        ("21deployment", False),
        ("a" * 63, True),
        ("a" * 64, False),
        ("deployment$@", False),
        ("deploy-ment", False),
        ("deployment\n", False),
        ("", False),
    ],
)
def test_validate_table_name(name, valid):
    assert validate_table_name(name) is valid


@pytest.mark.parametrize(
    ["name", "valid"],
    [
        ("teststorage", True),
        ("12teststorage", True),
        ("teststoragE", False),
        ("test-storage", False),
        ("ab", False),
        ("a" * 24, True),
        ("a" * 25, False),
        ("teststorage\n", False),
        ("", False),
    ],
)
def test_validate_storage_name(name, valid):
    assert validate_storage_name(name) is valid


def _read(path):
    with open(path) as f:
        return load_yaml(yaml, f.read(), path)


class TestSetConfiguration:
    def test_new_file(self, config_path):
        configuration = set_configuration("teststorage", "deployments")
        assert configuration.path == config_path
        assert configuration.get("introspection.azure.account_name") == "teststorage"
        assert configuration.get("introspection.azure.table_name") == "deployments"
        assert config.get_config() is configuration
        doc = _read(config_path)
        assert doc["introspection"]["azure"]["account_name"] == "teststorage"

    def test_replaces_existing_values(self, config_path):
        os.makedirs(os.path.dirname(config_path))
        with open(config_path, "w") as f:
            f.write(
                """\
# my settings
azure_devops:
  org: myorg
introspection:
  azure:
    account_name: oldstorage
    table_name: olddeployments
    key: ${STORAGE_KEY}
"""
            )
        set_configuration("teststorage", "deployments", config_path)
        doc = _read(config_path)
        assert doc["azure_devops"]["org"] == "myorg"
        assert doc["introspection"]["azure"]["account_name"] == "teststorage"
        assert doc["introspection"]["azure"]["table_name"] == "deployments"
        # references to environment variables are kept
        assert doc["introspection"]["azure"]["key"] == "${STORAGE_KEY}"
        with open(config_path) as f:
            assert f.read().startswith("# my settings")

    def test_empty_introspection(self, config_path):
        os.makedirs(os.path.dirname(config_path))
        with open(config_path, "w") as f:
            f.write("introspection:\n")
        configuration = set_configuration("teststorage", "deployments")
        assert configuration.get("introspection.azure.table_name") == "deployments"


class TestOnboard:
    def opts(self, **kw):
        opts = dict(
            ACCESS_OPTS,
            storage_account_name="teststorage",
            storage_table_name="deployments",
            storage_resource_group_name="my-group",
        )
        opts.update(kw)
        return opts

    def test_onboard(self):
        configuration = onboard(self.opts())
        assert configuration.get("introspection.azure.account_name") == "teststorage"

    def test_missing_values(self):
        with pytest.raises(RingopsStatusError) as excinfo:
            onboard(self.opts(tenant_id=None))
        assert excinfo.value.code == ErrorCode.VALIDATION_ERR
        assert "Tenant id was not provided" in str(excinfo.value)

    def test_invalid_storage_name(self, config_path):
        with pytest.raises(RingopsStatusError) as excinfo:
            onboard(self.opts(storage_account_name="Test-Storage"))
        assert excinfo.value.message_id == "onboard-err-storage-name"
        assert not os.path.exists(config_path)

    def test_invalid_table_name(self):
        with pytest.raises(RingopsStatusError) as excinfo:
            onboard(self.opts(storage_table_name="1table"))
        assert excinfo.value.message_id == "onboard-err-table-name"
