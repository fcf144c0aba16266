"""Prompt, credential and settings persistence."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..commands.models import DEFAULT_MODEL, PromptList, build_prompt_list

__all__ = [
    "ProofreadSettings",
    "ConfigStore",
    "default_config_dir",
    "parse_authinfo_line",
    "redact_secret",
]

LOGGER = logging.getLogger(__name__)

APP_DIR_NAME = "ai-proofread"
PROMPTS_FILE_NAME = "prompts.json"
SETTINGS_FILE_NAME = "settings.json"
AUTHINFO_MACHINE = "api.openai.com"
AUTHINFO_LOGIN = "apikey"
_CONFIG_DIR_ENV = "AI_PROOFREAD_CONFIG_DIR"
_API_KEY_ENV = "AI_PROOFREAD_API_KEY"
_ENV_OVERRIDES: Mapping[str, str] = {
    "AI_PROOFREAD_MODEL": "model",
    "AI_PROOFREAD_BASE_URL": "base_url",
    "AI_PROOFREAD_INSERT_MODE": "insert_mode",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "AI_PROOFREAD_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "AI_PROOFREAD_REQUEST_TIMEOUT": "request_timeout",
    "AI_PROOFREAD_PROGRESS_DELAY": "progress_delay",
    "AI_PROOFREAD_TEMPERATURE": "temperature",
}
_LIST_ENV_OVERRIDES: Mapping[str, str] = {
    "AI_PROOFREAD_MODEL_PREFIXES": "model_prefixes",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


@dataclass(slots=True)
class ProofreadSettings:
    """User-configurable settings persisted in ``settings.json``."""

    model: str = DEFAULT_MODEL
    base_url: str = "https://api.openai.com/v1"
    request_timeout: float = 90.0
    temperature: float = 0.2
    progress_delay: float = 0.8
    insert_mode: str = "replace-document"
    model_prefixes: tuple[str, ...] = ("gpt-",)
    debug_logging: bool = False


def default_config_dir() -> Path:
    explicit = os.environ.get(_CONFIG_DIR_ENV)
    if explicit:
        return Path(explicit).expanduser()
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / APP_DIR_NAME


class ConfigStore:
    """Reads prompts and credentials and persists the selected model.

    Args:
        config_dir: Directory holding ``prompts.json`` and ``settings.json``.
        authinfo_path: netrc-style credential file, ``~/.authinfo`` by default.
        overrides: Settings values that win over the persisted ones (CLI).
    """

    def __init__(
        self,
        config_dir: Path | str | None = None,
        *,
        authinfo_path: Path | str | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> None:
        self._config_dir = Path(config_dir).expanduser() if config_dir else default_config_dir()
        self._authinfo_path = (
            Path(authinfo_path).expanduser() if authinfo_path else Path.home() / ".authinfo"
        )
        self._overrides = dict(overrides or {})

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    @property
    def prompts_path(self) -> Path:
        return self._config_dir / PROMPTS_FILE_NAME

    @property
    def settings_path(self) -> Path:
        return self._config_dir / SETTINGS_FILE_NAME

    @property
    def authinfo_path(self) -> Path:
        return self._authinfo_path

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------
    def load_prompts(self) -> PromptList:
        """Return the prompts configured in ``prompts.json`` (possibly empty)."""

        path = self.prompts_path
        LOGGER.debug("Loading prompts from: %s", path)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            LOGGER.warning("Prompts file %s does not exist", path)
            return ()
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Unable to read prompts file %s: %s", path, exc)
            return ()
        except json.JSONDecodeError as exc:
            LOGGER.warning("Prompts file %s is not valid JSON: %s", path, exc)
            return ()

        if not isinstance(payload, list):
            LOGGER.warning("Root of %s is not an array", path)
            return ()

        entries: list[tuple[str, str]] = []
        for index, item in enumerate(payload):
            name = item.get("name") if isinstance(item, Mapping) else None
            if not isinstance(name, str):
                LOGGER.warning("Skipping prompt entry %d without a name", index)
                continue
            instruction = item.get("prompt")
            entries.append((name, instruction if isinstance(instruction, str) else ""))
        prompts = build_prompt_list(entries)
        LOGGER.debug("Prompts loaded: %d", len(prompts))
        return prompts

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------
    def load_api_key(self) -> str | None:
        """Return the API key from the environment or the authinfo file."""

        env_key = os.environ.get(_API_KEY_ENV, "").strip()
        if env_key:
            return env_key
        path = self._authinfo_path
        LOGGER.debug("Loading authinfo from: %s", path)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Error loading authinfo: %s", exc)
            return None
        for line in content.splitlines():
            api_key = parse_authinfo_line(line)
            if api_key:
                return api_key
        return None

    # ------------------------------------------------------------------
    # Settings and model selection
    # ------------------------------------------------------------------
    def load_settings(self, *, overrides: Mapping[str, Any] | None = None) -> ProofreadSettings:
        """Load settings from disk, then apply CLI and environment overrides."""

        settings = self._read_settings()
        merged = {**self._overrides, **(overrides or {})}
        if merged:
            settings = _apply_overrides(settings, merged, source="CLI")
        return _apply_env_overrides(settings)

    def save_settings(self, settings: ProofreadSettings) -> Path:
        """Persist settings to disk with atomic file writes."""

        body = json.dumps(asdict(settings), indent=2, sort_keys=True)
        self._config_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = self.settings_path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self.settings_path)
        LOGGER.debug("Settings saved to %s", self.settings_path)
        return self.settings_path

    def load_model(self) -> str:
        return self.load_settings().model or DEFAULT_MODEL

    def save_model(self, model: str) -> bool:
        """Persist ``model`` as the selected model; ``False`` if writing failed."""

        try:
            self.save_settings(replace(self._read_settings(), model=model))
        except OSError as exc:
            LOGGER.warning("Failed to save model selection to %s: %s", self.settings_path, exc)
            return False
        LOGGER.info("Saved model selection: %s", model)
        return True

    def _read_settings(self) -> ProofreadSettings:
        path = self.settings_path
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return ProofreadSettings()
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Unable to read settings file %s: %s", path, exc)
            return ProofreadSettings()
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", path, exc)
            return ProofreadSettings()
        if not isinstance(payload, Mapping):
            LOGGER.warning("Settings file %s does not contain an object", path)
            return ProofreadSettings()
        data = _filter_fields(payload)
        if "model_prefixes" in data:
            data["model_prefixes"] = _as_prefixes(data["model_prefixes"])
        try:
            return ProofreadSettings(**data)
        except TypeError as exc:
            LOGGER.warning("Settings payload contained unexpected data: %s", exc)
            return ProofreadSettings()


def parse_authinfo_line(line: str) -> str | None:
    """Return the key from ``machine api.openai.com login apikey password <key>``."""

    tokens = (line or "").split()
    if (
        len(tokens) >= 6
        and tokens[0] == "machine"
        and tokens[1] == AUTHINFO_MACHINE
        and tokens[2] == "login"
        and tokens[3] == AUTHINFO_LOGIN
        and tokens[4] == "password"
    ):
        return tokens[5]
    return None


def redact_secret(value: str | None) -> str:
    stripped = (value or "").strip()
    if not stripped:
        return ""
    if len(stripped) <= 4:
        return "*" * len(stripped)
    return f"{stripped[:2]}{'*' * (len(stripped) - 4)}{stripped[-2:]}"


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(ProofreadSettings)}
    return {key: value for key, value in payload.items() if key in allowed}


def _as_prefixes(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        return ProofreadSettings().model_prefixes
    return tuple(item.strip() for item in items if item.strip())


def _apply_overrides(
    settings: ProofreadSettings, overrides: Mapping[str, Any], *, source: str
) -> ProofreadSettings:
    filtered = {
        key: value for key, value in _filter_fields(overrides).items() if value is not None
    }
    if "model_prefixes" in filtered:
        filtered["model_prefixes"] = _as_prefixes(filtered["model_prefixes"])
    if filtered:
        LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
        settings = replace(settings, **filtered)
    return settings


def _apply_env_overrides(settings: ProofreadSettings) -> ProofreadSettings:
    overrides: Dict[str, Any] = {}
    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is not None:
            overrides[field_name] = value
    for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is not None:
            overrides[field_name] = value.strip().lower() in _TRUE_VALUES
    for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is None:
            continue
        try:
            overrides[field_name] = float(value)
        except ValueError:
            LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
    for env_name, field_name in _LIST_ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is not None:
            overrides[field_name] = value
    if overrides:
        settings = _apply_overrides(settings, overrides, source="environment")
    return settings
