"""
Base Source Adapter.

Abstract base class defining the interface for remote source adapters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging


@dataclass
class FetchResult:
    """
    Result of a data fetch operation.

    Failures are reported through ``success``/``errors``, never raised.
    """
    success: bool
    source_id: str
    raw_data: List[Dict[str, Any]] = field(default_factory=list)
    total_fetched: int = 0
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    fetch_started_at: Optional[datetime] = None
    fetch_ended_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        """Calculate fetch duration."""
        if self.fetch_started_at and self.fetch_ended_at:
            return (self.fetch_ended_at - self.fetch_started_at).total_seconds()
        return 0.0


@dataclass
class AdapterConfig:
    """
    Base configuration for source adapters.

    Extended by specific adapter types.
    """
    source_id: str
    request_timeout: float = 15.0
    network_warn_interval_s: float = 10.0


class BaseSourceAdapter(ABC):
    """
    Abstract base class for source adapters.

    Adapters encapsulate the logic for fetching raw data from a remote source
    and hand back a FetchResult regardless of what went wrong.

    Subclasses must implement:
        - fetch(): Fetch raw data from the source
        - _validate_config(): Validate adapter-specific configuration
    """

    def __init__(self, config: AdapterConfig):
        """
        Initialize the adapter.

        Args:
            config: AdapterConfig with source-specific settings
        """
        self.config = config
        self.logger = logging.getLogger(f"adapter.{config.source_id}")
        self._validate_config()

    @property
    def source_id(self) -> str:
        """Get the source identifier."""
        return self.config.source_id

    @abstractmethod
    async def fetch(self, **kwargs) -> FetchResult:
        """
        Fetch raw data from the source.

        Args:
            **kwargs: Source-specific fetch parameters

        Returns:
            FetchResult with raw data and metadata
        """
        pass

    @abstractmethod
    def _validate_config(self) -> None:
        """
        Validate adapter-specific configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        pass

    async def close(self) -> None:
        """
        Release any resources held by the adapter.

        Override in subclasses that hold resources (e.g., HTTP clients).
        """
        pass

    async def __aenter__(self) -> "BaseSourceAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
