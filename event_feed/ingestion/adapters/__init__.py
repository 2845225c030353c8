"""
Source Adapters for the remote catalog.

Usage:
    from event_feed.ingestion.adapters import APIAdapter, APIAdapterConfig

    adapter = APIAdapter(APIAdapterConfig(source_id="catalog", base_url=url))
    result = await adapter.fetch(city="Paris")
"""

from .api_adapter import APIAdapter, APIAdapterConfig
from .base_adapter import AdapterConfig, BaseSourceAdapter, FetchResult

__all__ = [
    "AdapterConfig",
    "APIAdapter",
    "APIAdapterConfig",
    "BaseSourceAdapter",
    "FetchResult",
]
