from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional, Sequence

from ...domain.models import AggregatedProduct
from ...errors import UpstreamFailure
from ...logging import get_logger
from .prompts import build_prompt, demo_response
from .providers import DEFAULT_MAX_TOKENS, ProviderRegistry, ProviderTestResult, default_registry
from .settings import NO_PROVIDER, SUPPORTED_PROVIDERS, AIConfig

LOG = get_logger("ai-dispatcher")

DEFAULT_AI_TIMEOUT = 12.0
DEFAULT_TEST_TIMEOUT = 15.0


class AIResponseDispatcher:
    """Turns a query plus search results into an assistant reply.

    Uses the configured provider when it has a credential; otherwise, or when
    the provider call fails or times out, answers with the demo templates.
    `respond` never raises.
    """

    def __init__(
        self,
        settings: AIConfig,
        providers: Optional[ProviderRegistry] = None,
        *,
        timeout: float = DEFAULT_AI_TIMEOUT,
        test_timeout: float = DEFAULT_TEST_TIMEOUT,
    ) -> None:
        self.settings = settings
        self.providers = providers or default_registry()
        self.timeout = float(timeout)
        self.test_timeout = float(test_timeout)

    async def generate(
        self,
        query: str,
        products: Sequence[AggregatedProduct],
        store_stats: Mapping[str, Any],
    ) -> Optional[str]:
        """Return the provider's reply, or None when no provider answer is available."""
        provider, model, credential = self.settings.snapshot()
        if provider == NO_PROVIDER or not credential:
            return None
        adapter = self.providers.get(provider)
        if adapter is None:
            LOG.warning(f"No adapter registered for provider '{provider}'")
            return None

        prompt = build_prompt(query, products, int(store_stats.get("total_stores") or 1))
        LOG.info(f"Requesting AI response from {provider} (model={adapter.resolve_model(model)})")
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(
                    adapter.complete,
                    prompt,
                    model,
                    credential,
                    timeout=self.timeout,
                    max_tokens=DEFAULT_MAX_TOKENS,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            LOG.warning(f"AI response from {provider} timed out after {self.timeout}s")
        except UpstreamFailure as exc:
            LOG.error(f"AI response failed: {exc.message}")
        except Exception as exc:
            LOG.exception(f"AI adapter '{provider}' raised unexpectedly: {exc}")
        return None

    async def respond(
        self,
        query: str,
        products: Sequence[AggregatedProduct],
        store_stats: Mapping[str, Any],
    ) -> str:
        text = await self.generate(query, products, store_stats)
        if text:
            return text
        return demo_response(query, products, int(store_stats.get("total_stores") or 1))

    async def test_connection(self, provider: str, model: str, credential: str) -> ProviderTestResult:
        """Send a minimal prompt to `provider` with the given credential."""
        adapter = self.providers.get((provider or "").strip().lower())
        if adapter is None:
            return ProviderTestResult(
                success=False,
                error=f"Unsupported provider: {provider}. Supported: {', '.join(SUPPORTED_PROVIDERS)}",
            )
        LOG.info(f"Testing AI provider {adapter.name} (model={adapter.resolve_model(model)})")
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(adapter.test_connection, model, credential, timeout=self.test_timeout),
                timeout=self.test_timeout,
            )
        except asyncio.TimeoutError:
            result = ProviderTestResult(success=False, error=f"{adapter.name} did not answer within {self.test_timeout}s")
        LOG.info(f"AI provider test for {adapter.name}: success={result.success} error={result.error!r}")
        return result
