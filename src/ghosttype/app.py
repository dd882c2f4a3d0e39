"""Application bootstrap helpers for the GhostType desktop editor."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO

from .ai.provider import ProviderConfigurationError, build_provider
from .services.settings import GhostColors, Settings, SettingsStore, redact_secret
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


def configure_logging(debug: bool = False, *, force: bool = False) -> Path:
    """Configure file and console logging for the application."""

    level = logging_utils.resolve_level(debug)
    log_path = logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging configured (level=%s, file=%s)", logging.getLevelName(level), log_path)
    return log_path


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def create_qapp(settings: Settings) -> QtRuntime:
    """Create a qasync-powered QApplication instance."""

    from PySide6.QtWidgets import QApplication
    from qasync import QEventLoop

    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName("GhostType")
    app.setApplicationDisplayName("GhostType")

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    app.aboutToQuit.connect(loop.stop)

    if (settings.theme or "").lower() == "dark":
        app.setStyle("Fusion")

    return QtRuntime(app=app, loop=loop)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `ghosttype` console script."""

    args = _parse_cli_args(argv)

    debug = _env_flag("GHOSTTYPE_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings or os.environ.get("GHOSTTYPE_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.save_settings:
        try:
            saved_path = settings_store.save(settings)
        except OSError as exc:
            _LOGGER.warning("Failed to persist settings to %s: %s", settings_store.path, exc)
        else:
            _LOGGER.info("Settings saved to %s", saved_path)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    try:
        provider = build_provider(settings)
    except ProviderConfigurationError as exc:
        print(f"Cannot start: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    _LOGGER.info("Using %s completion provider", settings.provider)

    from .ui.ghost_window import GhostWindow, WindowContext

    runtime = create_qapp(settings)
    window = GhostWindow(
        WindowContext(settings=settings, provider=provider, settings_store=settings_store)
    )
    if args.file:
        try:
            window.load_file(Path(args.file).expanduser())
        except OSError as exc:
            _LOGGER.warning("Unable to open %s: %s", args.file, exc)
            window.update_status(f"Unable to open {args.file}")
    window.show()

    loop = runtime.loop
    try:
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        with contextlib.suppress(RuntimeError):
            loop.run_until_complete(_close_provider(provider))
        _drain_event_loop(loop)
        loop.close()


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel suggestion requests still in flight when the window closes."""

    if loop.is_closed():
        return
    pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
    for task in pending:
        task.cancel()
    try:
        if pending:
            _LOGGER.debug("Cancelling %d pending request task(s) before shutdown", len(pending))
            loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        loop.run_until_complete(loop.shutdown_asyncgens())
    except RuntimeError as exc:  # pragma: no cover - loop already stopped by Qt
        _LOGGER.debug("Unable to drain event loop: %s", exc)


async def _close_provider(provider: Any) -> None:
    """Release the provider's HTTP connections."""

    close = getattr(provider, "aclose", None)
    if close is None:
        return
    try:
        await close()
    except Exception as exc:  # pragma: no cover - shutdown best effort
        _LOGGER.debug("Provider shutdown failed: %s", exc)


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ghosttype",
        description="Launch the GhostType editor or inspect its configuration.",
    )
    parser.add_argument("file", nargs="?", help="Source file to open on launch.")
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--save-settings",
        action="store_true",
        help="Persist the effective settings, --set overrides included, before continuing.",
    )
    parser.add_argument(
        "--settings",
        metavar="PATH",
        help="Override the default ~/.ghosttype/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings before launch (repeatable).",
    )
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    """Turn ``KEY=VALUE`` pairs into overrides typed like the :class:`Settings` defaults."""

    defaults = Settings()
    kinds = {item.name: type(getattr(defaults, item.name)) for item in fields(Settings)}
    overrides: Dict[str, Any] = {}
    for entry in items:
        key, separator, raw_value = entry.partition("=")
        key = key.strip()
        if not separator:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in kinds:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _parse_setting(kinds[key], raw_value.strip())
    return overrides


def _parse_setting(kind: type, raw_value: str) -> Any:
    if kind is bool:
        lowered = raw_value.lower()
        if lowered not in _TRUE_VALUES | _FALSE_VALUES:
            raise ValueError(f"Cannot coerce '{raw_value}' to a boolean.")
        return lowered in _TRUE_VALUES
    if kind is GhostColors:
        try:
            return GhostColors(**json.loads(raw_value or "{}"))
        except (json.JSONDecodeError, TypeError) as exc:
            raise ValueError("ghost_colors expects a JSON object of colour names") from exc
    return kind(raw_value)


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    metadata = {
        "path": str(store.path),
        "log_file": str(logging_utils.get_log_path() or ""),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("GHOSTTYPE_"))


if __name__ == "__main__":  # pragma: no cover
    main()
