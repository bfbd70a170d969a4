from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from dotenv import dotenv_values

from .logging import get_logger

log = get_logger("config")


# Environment variable holding each provider's credential. For Ollama the
# "credential" is the base URL of the local server.
PROVIDER_ENV_KEYS: Dict[str, Tuple[str, ...]] = {
    "anthropic": ("ANTHROPIC_API_KEY",),
    "openai": ("OPENAI_API_KEY", "openai_api_key"),
    "gemini": ("GEMINI_API_KEY",),
    "huggingface": ("HUGGINGFACE_TOKEN",),
    "ollama": ("OLLAMA_URL",),
    "deepseek": ("DEEPSEEK_API_KEY",),
    "openrouter": ("OPEN_ROUTER_API_KEY", "open_router_api_key"),
}

DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_PORT = 3000
DEFAULT_STORE_TIMEOUT = 15.0
DEFAULT_AI_TIMEOUT = 12.0


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    This makes running the gateway from subdirectories (e.g., `src/`) still
    find the repository-level `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Read the nearest .env into a mapping; does not mutate the environment."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    try:
        values = dotenv_values(path)
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Failed reading .env: {e}")
        return {}
    env = {k: v.strip() for k, v in values.items() if v is not None}
    log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    return env


def _lookup(env: Dict[str, str], *keys: str) -> Optional[str]:
    for key in keys:
        v = os.environ.get(key)
        if v and v.strip():
            return v.strip()
    for key in keys:
        v = env.get(key)
        if v:
            return v
    return None


def load_store(dotenv_dir: str) -> Tuple[Optional[str], Optional[str], str]:
    """Return (store_url, access_token, display_name) for the default store.

    Either value may be None; the gateway then starts unconfigured.
    """
    env = _read_dotenv(dotenv_dir)
    url = _lookup(env, "SHOPIFY_STORE_URL")
    token = _lookup(env, "SHOPIFY_ACCESS_TOKEN")
    name = _lookup(env, "SHOPIFY_STORE_NAME") or "Default Store"
    if url and token:
        log.info("Default store credentials found")
    else:
        log.info("SHOPIFY_STORE_URL/SHOPIFY_ACCESS_TOKEN not set; starting without a default store")
    return url, token, name


def load_ai(dotenv_dir: str) -> Tuple[str, str, Dict[str, str]]:
    """Return (provider, model, credentials) for the AI dispatcher.

    AI_API_KEY, when set, is used as the credential of the selected provider
    unless that provider has its own variable set.
    """
    env = _read_dotenv(dotenv_dir)
    provider = (_lookup(env, "AI_PROVIDER") or "none").lower()
    model = _lookup(env, "AI_MODEL") or ""
    credentials: Dict[str, str] = {}
    for name, keys in PROVIDER_ENV_KEYS.items():
        v = _lookup(env, *keys)
        if v:
            credentials[name] = v
    credentials.setdefault("ollama", DEFAULT_OLLAMA_URL)
    generic = _lookup(env, "AI_API_KEY")
    if generic and provider in PROVIDER_ENV_KEYS and provider not in credentials:
        credentials[provider] = generic
    return provider, model, credentials


def _as_float(value: Optional[str], default: float) -> float:
    try:
        parsed = float(value) if value else default
    except ValueError:
        log.warning(f"Ignoring non-numeric timeout value {value!r}; using {default}")
        return default
    return parsed if parsed > 0 else default


def load_port(dotenv_dir: str) -> int:
    env = _read_dotenv(dotenv_dir)
    raw = _lookup(env, "PORT", "WEB_PORT")
    try:
        return int(raw) if raw else DEFAULT_PORT
    except ValueError:
        log.warning(f"Invalid PORT {raw!r}; using {DEFAULT_PORT}")
        return DEFAULT_PORT


def load_timeouts(dotenv_dir: str) -> Tuple[float, float]:
    """Return (store_timeout, ai_timeout) in seconds."""
    env = _read_dotenv(dotenv_dir)
    store = _as_float(_lookup(env, "STORE_TIMEOUT"), DEFAULT_STORE_TIMEOUT)
    ai = _as_float(_lookup(env, "AI_TIMEOUT"), DEFAULT_AI_TIMEOUT)
    return store, ai


def mask_secret(value: Optional[str]) -> str:
    """Return a display form that never contains the full secret.

    Only values longer than 8 characters reveal their last 4; shorter ones
    are shown as ``***``.
    """
    if not value:
        return ""
    if len(value) <= 8:
        return "***"
    return "***" + value[-4:]


@dataclass
class GatewayConfig:
    store_url: Optional[str]
    store_token: Optional[str]
    store_name: str
    ai_provider: str
    ai_model: str
    ai_credentials: Dict[str, str] = field(default_factory=dict)
    port: int = DEFAULT_PORT
    store_timeout: float = DEFAULT_STORE_TIMEOUT
    ai_timeout: float = DEFAULT_AI_TIMEOUT

    @property
    def has_default_store(self) -> bool:
        return bool(self.store_url and self.store_token)


def build_gateway_config(args=None, *, script_dir: Optional[str] = None) -> GatewayConfig:
    """Create a GatewayConfig from env/.env, letting CLI args override values."""
    script_dir = script_dir or os.getcwd()
    url, token, name = load_store(script_dir)
    provider, model, credentials = load_ai(script_dir)
    store_timeout, ai_timeout = load_timeouts(script_dir)

    url = getattr(args, "store_url", None) or url
    token = getattr(args, "token", None) or token
    port = getattr(args, "port", None) or load_port(script_dir)

    cfg = GatewayConfig(
        store_url=url,
        store_token=token,
        store_name=name,
        ai_provider=provider,
        ai_model=model,
        ai_credentials=credentials,
        port=int(port),
        store_timeout=store_timeout,
        ai_timeout=ai_timeout,
    )

    shown = {k: (v if k == "ollama" else mask_secret(v)) for k, v in credentials.items()}
    log.info("Gateway configuration prepared")
    log.info(f"Default store      : {url or 'not configured'}")
    log.info(f"Store token        : {'configured' if token else 'not configured'}")
    log.info(f"AI provider        : {provider}")
    log.info(f"AI model           : {model or '(provider default)'}")
    log.info(f"AI credentials     : {shown}")
    log.info(f"Store timeout      : {store_timeout}s")
    log.info(f"AI timeout         : {ai_timeout}s")
    return cfg
