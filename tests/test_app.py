"""Tests covering the application bootstrap helpers."""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path

import pytest

from ghosttype import app
from ghosttype.services.settings import GhostColors, Settings, SettingsStore
from ghosttype.utils import logging as logging_utils


@pytest.fixture(autouse=True)
def _skip_logging_setup(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app, "configure_logging", lambda debug=False, force=False: None)


def test_coerce_cli_overrides_uses_field_types() -> None:
    overrides = app._coerce_cli_overrides(
        [
            "request_timeout=5",
            "font_size=16",
            "append_instruction_prompt=off",
            "language= rust ",
            'ghost_colors={"code": "#000000"}',
        ]
    )

    assert overrides == {
        "request_timeout": 5.0,
        "font_size": 16,
        "append_instruction_prompt": False,
        "language": "rust",
        "ghost_colors": GhostColors(code="#000000"),
    }


@pytest.mark.parametrize(
    "entry",
    ["model", "=value", "nonexistent=1", "debug_logging=maybe", "font_size=big", "ghost_colors=[1]"],
)
def test_coerce_cli_overrides_rejects_bad_entries(entry: str) -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides([entry])


def test_load_settings_applies_overrides(tmp_path: Path) -> None:
    settings = app.load_settings(tmp_path / "settings.json", overrides={"model": "local"})

    assert settings.model == "local"


def test_dump_settings_redacts_api_key(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GHOSTTYPE_API_KEY", "sk-abcdef")
    store = SettingsStore(tmp_path / "settings.json")
    settings = store.load()
    stream = io.StringIO()

    app._dump_settings(settings, store, overrides={"model": "x"}, stream=stream)

    payload = json.loads(stream.getvalue())
    assert payload["settings"]["api_key"] == "sk*****ef"
    assert payload["meta"]["path"] == str(tmp_path / "settings.json")
    assert payload["meta"]["cli_overrides"] == ["model"]
    assert "GHOSTTYPE_API_KEY" in payload["meta"]["environment_variables"]
    assert "sk-abcdef" not in stream.getvalue()


def test_main_dump_settings_prints_effective_settings(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    settings_path = tmp_path / "settings.json"

    app.main(["--settings", str(settings_path), "--set", "model=tiny", "--dump-settings"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["settings"]["model"] == "tiny"
    assert payload["settings"]["provider"] == "http"


def test_main_save_settings_persists_overrides_with_encrypted_key(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    settings_path = tmp_path / "settings.json"

    app.main(
        [
            "--settings",
            str(settings_path),
            "--set",
            "problem=Sort a list",
            "--set",
            "api_key=sk-test-123456",
            "--save-settings",
            "--dump-settings",
        ]
    )
    capsys.readouterr()

    assert "sk-test-123456" not in settings_path.read_text(encoding="utf-8")
    reloaded = SettingsStore(settings_path).load()
    assert reloaded.problem == "Sort a list"
    assert reloaded.api_key == "sk-test-123456"


def test_main_rejects_malformed_override(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        app.main(["--settings", str(tmp_path / "s.json"), "--set", "oops"])

    assert excinfo.value.code == 2


def test_main_exits_when_provider_cannot_be_built(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        app.main(["--settings", str(tmp_path / "s.json"), "--set", "provider=openai"])

    assert excinfo.value.code == 2
    assert "API key" in capsys.readouterr().err


def test_env_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GHOSTTYPE_DEBUG", "On")
    assert app._env_flag("GHOSTTYPE_DEBUG") is True
    monkeypatch.setenv("GHOSTTYPE_DEBUG", "0")
    assert app._env_flag("GHOSTTYPE_DEBUG") is False
    assert app._env_flag("GHOSTTYPE_UNSET", default=True) is True


class TestLoggingSetup:
    @pytest.fixture(autouse=True)
    def _restore_root_logger(self, monkeypatch: pytest.MonkeyPatch):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        monkeypatch.setattr(logging_utils, "_LOG_PATH", None)
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.captureWarnings(False)

    def test_setup_logging_writes_rotating_file(self, tmp_path: Path) -> None:
        log_path = logging_utils.setup_logging(logging.INFO, log_dir=tmp_path, console=False)

        logging.getLogger("ghosttype.test").info("hello log")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_path == tmp_path / "ghosttype.log"
        assert logging_utils.get_log_path() == log_path
        assert "hello log" in log_path.read_text(encoding="utf-8")
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_setup_logging_is_idempotent_unless_forced(self, tmp_path: Path) -> None:
        first = logging_utils.setup_logging(log_dir=tmp_path / "a", console=False)
        second = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False)
        forced = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False, force=True)

        assert second == first
        assert forced == tmp_path / "b" / "ghosttype.log"

    def test_resolve_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert logging_utils.resolve_level(True) == logging.DEBUG
        assert logging_utils.resolve_level(False) == logging.INFO
        monkeypatch.setenv("GHOSTTYPE_LOG_LEVEL", "warning")
        assert logging_utils.resolve_level(False) == logging.WARNING
