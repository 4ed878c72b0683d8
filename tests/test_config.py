from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from core.config import CONFIG_ENV_VAR, AppSettings, load_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    # Sin .env en el directorio de trabajo.
    monkeypatch.chdir(tmp_path)


def test_empty_domains_are_rejected():
    with pytest.raises(ValidationError):
        AppSettings(domains=[], domain_map={})


def test_remote_renderer_needs_url():
    with pytest.raises(ValidationError):
        AppSettings(domains=["wikipedia.org"], renderer="remote")


def test_defaults():
    settings = AppSettings(domains=["wikipedia.org"])

    assert settings.default_protocol == "https"
    assert settings.timeout_ms == 10_000
    assert settings.max_continuations == 200
    assert settings.renderer == "vega"


def test_legacy_json_keys(tmp_path):
    path = tmp_path / "graphoid.config.json"
    path.write_text(
        json.dumps({"domains": [], "domainMap": {"a.org": "b.org"}, "defaultProtocol": "http", "timeout": 500}),
        encoding="utf-8",
    )

    settings = load_settings(path)

    assert settings.domain_map == {"a.org": "b.org"}
    assert settings.default_protocol == "http"
    assert settings.timeout_ms == 500


def test_config_path_from_env(monkeypatch, tmp_path):
    path = tmp_path / "conf.json"
    path.write_text(json.dumps({"domains": ["mediawiki.org"]}), encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

    assert load_settings().domains == ["mediawiki.org"]


def test_overrides_win_and_none_is_ignored(tmp_path):
    path = tmp_path / "conf.json"
    path.write_text(json.dumps({"domains": ["mediawiki.org"], "timeout_ms": 5}), encoding="utf-8")

    settings = load_settings(path, timeout_ms=0, port=None)

    assert settings.timeout_ms == 0
    assert settings.port == 11042


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("GRAPHOID_DOMAINS", '["wikipedia.org"]')
    monkeypatch.setenv("GRAPHOID_TIMEOUT_MS", "250")

    settings = AppSettings()

    assert settings.domains == ["wikipedia.org"]
    assert settings.timeout_ms == 250


def test_config_file_must_hold_object(tmp_path):
    path = tmp_path / "conf.json"
    path.write_text("[]", encoding="utf-8")

    with pytest.raises(ValueError):
        load_settings(path)
