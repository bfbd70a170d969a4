from __future__ import annotations

import threading
from typing import Any, Dict, Mapping, Optional, Tuple

from ...config import GatewayConfig, mask_secret
from ...errors import ValidationFailure
from ...logging import get_logger

LOG = get_logger("ai-settings")

NO_PROVIDER = "none"
SUPPORTED_PROVIDERS: Tuple[str, ...] = (
    "anthropic",
    "openai",
    "gemini",
    "huggingface",
    "ollama",
    "deepseek",
    "openrouter",
)

# Credentials that are endpoints rather than secrets; shown unmasked.
_PLAIN_CREDENTIALS = {"ollama"}


class AIConfig:
    """Process-wide AI settings: selected provider, model and per-provider credentials.

    Read by every dispatch, changed only through `update`. Secrets are only
    ever shown masked; values that look like a masked echo (``***...``) are
    ignored on update so a UI can post back what it was shown.
    """

    def __init__(
        self,
        provider: str = NO_PROVIDER,
        model: str = "",
        credentials: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._provider = NO_PROVIDER
        self._model = model or ""
        self._credentials: Dict[str, str] = {}
        for name, value in (credentials or {}).items():
            if name in SUPPORTED_PROVIDERS and value:
                self._credentials[name] = value
        if provider and provider.lower() in SUPPORTED_PROVIDERS + (NO_PROVIDER,):
            self._provider = provider.lower()
        elif provider:
            LOG.warning(f"Unknown AI provider {provider!r}; falling back to '{NO_PROVIDER}'")

    @classmethod
    def from_config(cls, cfg: GatewayConfig) -> "AIConfig":
        return cls(cfg.ai_provider, cfg.ai_model, cfg.ai_credentials)

    @property
    def provider(self) -> str:
        with self._lock:
            return self._provider

    @property
    def model(self) -> str:
        with self._lock:
            return self._model

    def snapshot(self) -> Tuple[str, str, Optional[str]]:
        """Return (provider, model, credential of the selected provider)."""
        with self._lock:
            return self._provider, self._model, self._credentials.get(self._provider)

    def is_configured(self) -> bool:
        provider, _, credential = self.snapshot()
        return provider == NO_PROVIDER or bool(credential)

    def update(
        self,
        *,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        credentials: Optional[Mapping[str, Any]] = None,
    ) -> None:
        if provider is not None:
            provider = str(provider).strip().lower()
            if provider not in SUPPORTED_PROVIDERS + (NO_PROVIDER,):
                raise ValidationFailure(
                    f"Unsupported provider: {provider}. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
                )
        changed = []
        with self._lock:
            if provider:
                self._provider = provider
                changed.append("provider")
            if model:
                self._model = str(model).strip()
                changed.append("model")
            for name, value in (credentials or {}).items():
                if name not in SUPPORTED_PROVIDERS or not value:
                    continue
                value = str(value).strip()
                if value.startswith("***"):
                    continue
                self._credentials[name] = value
                changed.append(f"{name} credential")
        LOG.info(f"AI configuration updated: {', '.join(changed) or 'no changes'}")

    def masked(self) -> Dict[str, Any]:
        with self._lock:
            keys = {}
            for name in SUPPORTED_PROVIDERS:
                value = self._credentials.get(name, "")
                keys[name] = value if name in _PLAIN_CREDENTIALS else mask_secret(value)
            return {"provider": self._provider, "model": self._model, "keys": keys}

    def status(self) -> Dict[str, Any]:
        provider, model, credential = self.snapshot()
        configured = provider == NO_PROVIDER or bool(credential)
        return {
            "active": provider != NO_PROVIDER and bool(credential),
            "provider": provider,
            "model": model,
            "configured": configured,
        }
