"""Blocking completion-service client built around OpenAI-compatible endpoints."""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Sequence

import httpx
from openai import APIError, APIStatusError, OpenAI

from ..commands.models import Prompt, PromptList
from ..errors import ApiError

__all__ = ["ServiceSettings", "CompletionService"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceSettings:
    """Subset of settings required to configure the completion client."""

    base_url: str = "https://api.openai.com/v1"
    request_timeout: float | None = 90.0
    temperature: float | None = 0.2
    model_prefixes: tuple[str, ...] = ("gpt-",)
    debug_logging: bool = False

    @classmethod
    def from_settings(cls, settings: Any) -> "ServiceSettings":
        return cls(
            base_url=settings.base_url,
            request_timeout=settings.request_timeout,
            temperature=settings.temperature,
            model_prefixes=tuple(settings.model_prefixes),
            debug_logging=settings.debug_logging,
        )


ClientFactory = Callable[[str, ServiceSettings], Any]


class CompletionService:
    """Sends document content to the chat completions endpoint.

    Both operations block; callers on an event loop run them in a worker
    thread. Exactly one HTTP attempt is made per call (``max_retries=0``).
    """

    def __init__(
        self,
        settings: ServiceSettings | None = None,
        *,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._settings = settings or ServiceSettings()
        self._client_factory = client_factory or _build_client
        self._clients: Dict[str, Any] = {}
        self._models_cache: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    @property
    def settings(self) -> ServiceSettings:
        return self._settings

    def complete_text(
        self,
        content: str,
        prompt_id: str,
        prompts: PromptList,
        api_key: str | None,
        model: str,
    ) -> str | None:
        """Return the service's rewrite of ``content`` or ``None`` when it is empty.

        Raises:
            ApiError: unknown prompt, missing key, or a failed request.
        """

        prompt = _find_prompt(prompts, prompt_id)
        payload: Dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": prompt.instruction_text},
                {"role": "user", "content": content},
            ],
        }
        if self._settings.temperature is not None:
            payload["temperature"] = self._settings.temperature
        LOGGER.debug("Requesting completion via %s for prompt '%s'", model, prompt_id)
        if self._settings.debug_logging:
            _log_payload(payload)

        client = self._client_for(api_key)
        with _translate_errors():
            response = client.chat.completions.create(**payload)

        choices = getattr(response, "choices", None) or []
        if not choices:
            return None
        message = getattr(choices[0], "message", None)
        text = getattr(message, "content", None)
        if not text or not text.strip():
            return None
        return text.strip()

    def list_models(self, api_key: str | None, *, force_refresh: bool = False) -> List[str]:
        """Return the sorted model ids matching the configured prefixes."""

        if not api_key:
            raise ApiError("No API key configured")
        with self._lock:
            cached = self._models_cache.get(api_key)
        if cached is not None and not force_refresh:
            return list(cached)

        client = self._client_for(api_key)
        with _translate_errors():
            response = client.models.list()
        ids = {getattr(item, "id", None) for item in getattr(response, "data", None) or []}
        prefixes = self._settings.model_prefixes
        models = sorted(
            model_id
            for model_id in ids
            if isinstance(model_id, str) and (not prefixes or model_id.startswith(prefixes))
        )
        LOGGER.debug("Listed %d model(s)", len(models))
        with self._lock:
            self._models_cache[api_key] = models
        return list(models)

    def close(self) -> None:
        """Close cached OpenAI clients to release network resources."""

        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            close = getattr(client, "close", None)
            if callable(close):
                close()

    def _client_for(self, api_key: str | None) -> Any:
        if not api_key:
            raise ApiError("No API key configured")
        with self._lock:
            client = self._clients.get(api_key)
            if client is None:
                client = self._client_factory(api_key, self._settings)
                self._clients[api_key] = client
            return client


def _build_client(api_key: str, settings: ServiceSettings) -> OpenAI:
    return OpenAI(
        api_key=api_key,
        base_url=settings.base_url,
        timeout=settings.request_timeout,
        max_retries=0,
    )


def _find_prompt(prompts: Sequence[Prompt], prompt_id: str) -> Prompt:
    for prompt in prompts:
        if prompt.id == prompt_id:
            return prompt
    raise ApiError(f"Unknown prompt '{prompt_id}'")


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Turn SDK and transport failures into :class:`ApiError`."""

    try:
        yield
    except APIStatusError as exc:
        raise ApiError(_sdk_message(exc), status_code=exc.status_code) from exc
    except APIError as exc:
        raise ApiError(_sdk_message(exc)) from exc
    except httpx.HTTPError as exc:
        raise ApiError(str(exc) or exc.__class__.__name__) from exc


def _sdk_message(exc: APIError) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return str(message)


def _log_payload(payload: Mapping[str, Any]) -> None:
    try:
        serialized = json.dumps(payload, ensure_ascii=False, indent=2)
    except (TypeError, ValueError):
        LOGGER.debug("Completion payload (unserializable): %s", payload)
    else:
        LOGGER.debug("Completion payload:\n%s", serialized)
