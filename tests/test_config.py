from pathlib import Path

import pytest

from clical.config import DEFAULT_HTTP_TIMEOUT, DEFAULT_STATE_DIR, ConfigError, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("CLICAL_STATE_DIR", "CLICAL_CALENDAR_ID", "CLICAL_HTTP_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    settings = load_settings()

    assert settings.state_dir == DEFAULT_STATE_DIR
    assert settings.calendar_id is None
    assert settings.http_timeout == DEFAULT_HTTP_TIMEOUT


def test_env_values(monkeypatch, tmp_path):
    monkeypatch.setenv("CLICAL_STATE_DIR", str(tmp_path))
    monkeypatch.setenv("CLICAL_CALENDAR_ID", " work@example.com ")
    monkeypatch.setenv("CLICAL_HTTP_TIMEOUT", "7.5")

    settings = load_settings()

    assert settings.state_dir == tmp_path
    assert settings.calendar_id == "work@example.com"
    assert settings.http_timeout == 7.5
    assert settings.token_path == tmp_path / "token.json"
    assert settings.client_secrets_path == tmp_path / "credentials.json"
    assert settings.calendar_id_path == tmp_path / "calendar_id.txt"


def test_flag_overrides_env(monkeypatch, tmp_path):
    monkeypatch.setenv("CLICAL_STATE_DIR", str(tmp_path / "env"))

    settings = load_settings(state_dir=str(tmp_path / "flag"))

    assert settings.state_dir == Path(tmp_path / "flag")


@pytest.mark.parametrize("value", ["abc", "0", "-3"])
def test_invalid_timeout(monkeypatch, value):
    monkeypatch.setenv("CLICAL_HTTP_TIMEOUT", value)

    with pytest.raises(ConfigError):
        load_settings()
