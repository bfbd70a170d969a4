"""Gateway services: store registry, aggregate search, AI replies and orders."""

from .ai import AIConfig, AIResponseDispatcher
from .orders import OrderFacade, OrderTracker
from .registry import StoreRegistry
from .search import AggregateSearchEngine
from .services import GatewayServices, build_services

__all__ = [
    "AIConfig",
    "AIResponseDispatcher",
    "AggregateSearchEngine",
    "GatewayServices",
    "OrderFacade",
    "OrderTracker",
    "StoreRegistry",
    "build_services",
]
