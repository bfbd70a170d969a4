from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import GatewayConfig
from ..logging import get_logger
from .ai import AIConfig, AIResponseDispatcher
from .ai.providers import ProviderRegistry
from .orders import OrderFacade
from .registry import ClientFactory, StoreRegistry, default_client_factory
from .search import AggregateSearchEngine

LOG = get_logger("gateway-services")


@dataclass
class GatewayServices:
    """The stateful services one gateway process works with."""

    registry: StoreRegistry
    search: AggregateSearchEngine
    ai_settings: AIConfig
    dispatcher: AIResponseDispatcher
    orders: OrderFacade


def build_services(
    config: Optional[GatewayConfig] = None,
    *,
    client_factory: Optional[ClientFactory] = None,
    providers: Optional[ProviderRegistry] = None,
    connect_default_store: bool = True,
) -> GatewayServices:
    """Wire fresh service instances, optionally registering the default store from config."""
    store_timeout = config.store_timeout if config else 15.0
    ai_timeout = config.ai_timeout if config else 12.0

    registry = StoreRegistry(client_factory or default_client_factory(store_timeout))
    ai_settings = AIConfig.from_config(config) if config else AIConfig()
    services = GatewayServices(
        registry=registry,
        search=AggregateSearchEngine(registry, sub_request_timeout=store_timeout),
        ai_settings=ai_settings,
        dispatcher=AIResponseDispatcher(ai_settings, providers, timeout=ai_timeout),
        orders=OrderFacade(registry),
    )

    if config and connect_default_store and config.has_default_store:
        store_id = registry.connect(config.store_name, config.store_url, config.store_token)
        LOG.info(f"Default store registered as {store_id}")
    elif connect_default_store:
        LOG.warning("No default store configured; store endpoints answer 'not configured' until one is connected")
    return services
