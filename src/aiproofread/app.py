"""Application bootstrap for the AI proofreading composer."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Sequence, TextIO, cast

from .errors import ApiError
from .extension import ProofreadExtension
from .services.completion import CompletionService, ServiceSettings
from .services.config import ConfigStore, ProofreadSettings, redact_secret
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_ENV_PREFIX = "AI_PROOFREAD_"


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))
    _install_qt_message_handler()


def create_qapp() -> QtRuntime:
    """Create a QApplication driven by a qasync event loop."""

    from PySide6.QtWidgets import QApplication
    from qasync import QEventLoop

    app = cast(Any, QApplication.instance() or QApplication(sys.argv))
    app.setApplicationName("ai-proofread")
    app.setApplicationDisplayName("AI Proofread")

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    app.aboutToQuit.connect(loop.stop)
    return QtRuntime(app=app, loop=loop)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``ai-proofread`` console script."""

    args, passthrough = _parse_cli_args(argv)
    _rewrite_sys_argv(passthrough)

    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2

    config = ConfigStore(args.config_dir, overrides=cli_overrides)
    settings = config.load_settings()

    if args.dump_settings:
        _dump_settings(settings, config, overrides=cli_overrides)
        return 0

    debug = _env_flag("AI_PROOFREAD_DEBUG", default=False) or settings.debug_logging
    completion = CompletionService(ServiceSettings.from_settings(settings))

    if args.list_models:
        return _list_models(config, completion)

    configure_logging(debug)
    runtime = create_qapp()
    from .host.qt_host import QtComposerHost
    from .host.window import ComposerWindow

    window = ComposerWindow()
    if args.file:
        try:
            window.open_document(args.file)
        except (OSError, UnicodeDecodeError) as exc:
            _LOGGER.warning("Unable to open %s: %s", args.file, exc)
    host = QtComposerHost()
    extension = ProofreadExtension(host, window, window.editor, config, completion, settings)
    window.set_reload_handler(extension.request_reload)
    window.set_refresh_models_handler(extension.request_model_refresh)
    window.show()

    loop = runtime.loop
    try:
        started = loop.run_until_complete(extension.start())
        if not started:
            window.show_status("AI proofreading unavailable: check prompts.json and API key")
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        with contextlib.suppress(RuntimeError):
            loop.run_until_complete(extension.aclose())
        completion.close()
        _drain_event_loop(loop)
        loop.close()
    return 0


def _list_models(
    config: ConfigStore, completion: CompletionService, *, stream: TextIO | None = None
) -> int:
    destination = stream or sys.stdout
    try:
        models = completion.list_models(config.load_api_key())
    except ApiError as exc:
        print(f"Unable to list models: {exc.message}", file=sys.stderr)
        return 1
    finally:
        completion.close()
    for model in models:
        destination.write(f"{model}\n")
    return 0


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel leftover tasks and stop the loop's executor before it closes."""

    if loop.is_closed():
        return
    pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
    if pending:
        _LOGGER.debug("Cancelling %d task(s) left on the loop", len(pending))
        for task in pending:
            task.cancel()
        loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
    loop.run_until_complete(loop.shutdown_asyncgens())
    loop.run_until_complete(loop.shutdown_default_executor())


def _install_qt_message_handler() -> None:
    """Forward Qt's own diagnostics to the ``aiproofread.qt`` logger."""

    from PySide6.QtCore import QtMsgType, qInstallMessageHandler

    qt_logger = logging.getLogger("aiproofread.qt")
    levels = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }

    def _forward(kind, _context, message):  # type: ignore[no-untyped-def]
        qt_logger.log(levels.get(kind, logging.INFO), message)

    qInstallMessageHandler(_forward)


def _parse_cli_args(argv: Sequence[str] | None) -> tuple[argparse.Namespace, list[str]]:
    parser = argparse.ArgumentParser(
        prog="ai-proofread",
        add_help=True,
        description="Open a document in the AI proofreading composer or inspect its configuration.",
    )
    parser.add_argument("file", nargs="?", help="Document to open on launch.")
    parser.add_argument(
        "--config-dir",
        metavar="PATH",
        help="Directory holding prompts.json and settings.json "
        "(default: $XDG_CONFIG_HOME/ai-proofread).",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings, prompts and redacted API key, then exit.",
    )
    parser.add_argument(
        "--list-models",
        action="store_true",
        help="Print the models offered by the completion service, then exit.",
    )
    return parser.parse_known_args(argv)


def _rewrite_sys_argv(passthrough: Sequence[str]) -> None:
    program = sys.argv[0] if sys.argv else "ai-proofread"
    sys.argv = [program, *passthrough]


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    """Turn ``KEY=VALUE`` entries into typed :class:`ProofreadSettings` overrides."""

    defaults = {field.name: field.default for field in fields(ProofreadSettings)}
    overrides: Dict[str, Any] = {}
    for entry in items:
        key, separator, raw_value = entry.partition("=")
        key = key.strip()
        if not separator:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in defaults:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _coerce_like(defaults[key], raw_value.strip())
    return overrides


def _coerce_like(default: Any, raw_value: str) -> Any:
    if isinstance(default, bool):
        return _parse_bool(raw_value)
    if isinstance(default, float):
        return float(raw_value)
    if isinstance(default, tuple):
        return tuple(item.strip() for item in raw_value.split(",") if item.strip())
    return raw_value


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: ProofreadSettings,
    config: ConfigStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["model_prefixes"] = list(settings.model_prefixes)
    output = {
        "settings": payload,
        "prompts": [prompt.display_name for prompt in config.load_prompts()],
        "api_key": redact_secret(config.load_api_key()),
        "meta": {
            "config_dir": str(config.config_dir),
            "settings_path": str(config.settings_path),
            "prompts_path": str(config.prompts_path),
            "cli_overrides": sorted(overrides.keys()),
            "environment_variables": _active_env_overrides(),
        },
    }
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith(_ENV_PREFIX))
