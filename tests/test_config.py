import argparse

import pytest

from kicktipp_client.config import ClientSettings, SettingsSource, as_bool, load_settings
from kicktipp_client.errors import ConfigError

ENV_KEYS = ["KICKTIPP_USERNAME", "KICKTIPP_USER", "KICKTIPP_PASSWORD", "KICKTIPP_PASS", "KICKTIPP_COMMUNITY",
            "KICKTIPP_POOL_SLUG", "POOL_SLUG", "HTTPS_PROXY", "HTTP_PROXY", "KICKTIPP_TIMEOUT",
            "KICKTIPP_MAX_WORKERS", "KICKTIPP_MAX_DETAIL_PAGES", "KICKTIPP_BASE_URL", "KICKTIPP_OVERRIDE"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def ini(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text(
        "[auth]\nusername = ini-user\npassword = ini-pass\n\n"
        "[pool]\npool_slug = ini-runde\n\n"
        "[settings]\ntimeout = abc\nmax_workers = 8\n",
        encoding="utf-8",
    )
    return str(path)


def test_defaults_without_any_source(tmp_path):
    settings = load_settings(config_path=str(tmp_path / "missing.ini"))
    assert settings == ClientSettings()
    assert settings.max_detail_pages == 50


def test_ini_values_and_bad_cast_falls_back(ini):
    settings = load_settings(config_path=ini)
    assert settings.username == "ini-user"
    assert settings.community == "ini-runde"
    assert settings.max_workers == 8
    assert settings.timeout == 25.0


def test_env_beats_ini_and_cli_beats_env(ini, monkeypatch):
    monkeypatch.setenv("KICKTIPP_POOL_SLUG", "env-runde")
    monkeypatch.setenv("KICKTIPP_USERNAME", "env-user")
    args = argparse.Namespace(username="cli-user", community=None, config=ini)
    settings = load_settings(args)
    assert settings.username == "cli-user"
    assert settings.community == "env-runde"
    assert settings.password == "ini-pass"


def test_bad_env_value_falls_through_to_ini(ini, monkeypatch):
    monkeypatch.setenv("KICKTIPP_MAX_WORKERS", "viele")
    assert load_settings(config_path=ini).max_workers == 8
    assert SettingsSource().get("max_workers", ["KICKTIPP_MAX_WORKERS"], ["workers"], int, 4) == 4


def test_ini_lookup_walks_sections_and_aliases(ini):
    source = SettingsSource.load(path=ini)
    assert source.ini(["kennung", "username"]) == "ini-user"
    assert source.ini(["runde", "pool_slug"]) == "ini-runde"
    assert source.ini(["gibtsnicht"]) is None


def test_require_community():
    with pytest.raises(ConfigError):
        ClientSettings().require_community()
    assert ClientSettings(community="x").require_community() == "x"


def test_describe_masks_password():
    text = ClientSettings(community="x", password="supergeheim").describe()
    assert "supergeheim" not in text


def test_as_bool():
    assert as_bool("Yes") and as_bool("1") and as_bool(True) and as_bool("ja")
    assert not as_bool("off")
    assert not as_bool(False)
