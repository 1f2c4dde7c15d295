import pytest

from ringops import config


@pytest.fixture(autouse=True)
def config_path(tmp_path, monkeypatch):
    """Point every test at its own configuration file."""
    path = str(tmp_path / "home" / ".ringops" / "config.yaml")
    monkeypatch.setenv("RINGOPS_CONFIG", path)
    config.reset_configuration()
    yield path
    config.reset_configuration()
