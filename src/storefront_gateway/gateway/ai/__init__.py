"""Assistant replies: provider adapters, runtime AI settings and the dispatcher."""

from .dispatcher import AIResponseDispatcher
from .prompts import build_prompt, demo_response
from .providers import ProviderAdapter, ProviderRegistry, ProviderRequest, ProviderTestResult, default_registry
from .settings import NO_PROVIDER, SUPPORTED_PROVIDERS, AIConfig

__all__ = [
    "AIConfig",
    "AIResponseDispatcher",
    "NO_PROVIDER",
    "ProviderAdapter",
    "ProviderRegistry",
    "ProviderRequest",
    "ProviderTestResult",
    "SUPPORTED_PROVIDERS",
    "build_prompt",
    "default_registry",
    "demo_response",
]
