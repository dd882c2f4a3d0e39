"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ghosttype.services.settings import GhostColors, SecretVault, Settings, SettingsStore, redact_secret


def _store(tmp_path: Path) -> SettingsStore:
    return SettingsStore(tmp_path / "settings.json", vault=SecretVault(key_path=tmp_path / "key"))


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    assert _store(tmp_path).load() == Settings()


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    store = _store(tmp_path)
    original = Settings(
        provider="openai",
        api_key="sk-super-secret",
        model="gpt-4.1-mini",
        problem="Write a tokenizer",
        request_timeout=12.5,
        append_instruction_prompt=False,
        ghost_colors=GhostColors(code="#111111", mismatch="#aa0000"),
    )

    path = store.save(original)
    reloaded = _store(tmp_path).load()

    assert reloaded == original
    raw = path.read_text(encoding="utf-8")
    assert "sk-super-secret" not in raw
    assert json.loads(raw)["version"] == 1


def test_invalid_json_falls_back_to_defaults(tmp_path: Path) -> None:
    (tmp_path / "settings.json").write_text("{not json", encoding="utf-8")

    assert _store(tmp_path).load() == Settings()


def test_non_object_payload_falls_back_to_defaults(tmp_path: Path) -> None:
    (tmp_path / "settings.json").write_text("[1, 2]", encoding="utf-8")

    assert _store(tmp_path).load() == Settings()


def test_unknown_fields_are_ignored(tmp_path: Path) -> None:
    (tmp_path / "settings.json").write_text(
        json.dumps({"model": "local", "legacy_flag": True, "ghost_colors": {"bogus": 1}}),
        encoding="utf-8",
    )

    settings = _store(tmp_path).load()

    assert settings.model == "local"
    assert settings.ghost_colors == GhostColors()


def test_undecryptable_api_key_is_dropped(tmp_path: Path) -> None:
    (tmp_path / "settings.json").write_text(
        json.dumps({"api_key_ciphertext": "garbage"}), encoding="utf-8"
    )

    assert _store(tmp_path).load().api_key == ""


def test_environment_overrides_win_over_cli(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GHOSTTYPE_MODEL", "env-model")
    monkeypatch.setenv("GHOSTTYPE_REQUEST_TIMEOUT", "7")
    monkeypatch.setenv("GHOSTTYPE_DEBUG_LOGGING", "yes")

    settings = _store(tmp_path).load(overrides={"model": "cli-model", "language": "rust"})

    assert settings.model == "env-model"
    assert settings.language == "rust"
    assert settings.request_timeout == 7.0
    assert settings.debug_logging is True


def test_invalid_float_environment_override_is_ignored(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("GHOSTTYPE_TEMPERATURE", "warm")

    assert _store(tmp_path).load().temperature == Settings().temperature


def test_provider_is_normalized(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GHOSTTYPE_PROVIDER", " OpenAI ")
    assert _store(tmp_path).load().provider == "openai"

    monkeypatch.setenv("GHOSTTYPE_PROVIDER", "fax")
    assert _store(tmp_path).load().provider == "http"


def test_vault_roundtrip_and_invalid_token(tmp_path: Path) -> None:
    vault = SecretVault(key_path=tmp_path / "vault.key")

    token = vault.encrypt("hunter2")

    assert token != "hunter2"
    assert vault.decrypt(token) == "hunter2"
    assert SecretVault(key_path=tmp_path / "vault.key").decrypt(token) == "hunter2"
    with pytest.raises(ValueError):
        vault.decrypt("not-a-token")


def test_redact_secret() -> None:
    assert redact_secret("") == ""
    assert redact_secret("abc") == "***"
    assert redact_secret("sk-abcdef") == "sk*****ef"
