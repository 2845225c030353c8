"""
API Source Adapter.

Adapter for fetching data from REST APIs. Single request, no retry: a failed
fetch yields an empty, unsuccessful FetchResult.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx

from event_feed.monitoring.logging import RateLimitedLogger

from .base_adapter import AdapterConfig, BaseSourceAdapter, FetchResult

logger = logging.getLogger(__name__)


@dataclass
class APIAdapterConfig(AdapterConfig):
    """Configuration for API-based adapters."""

    base_url: str = ""
    api_key: str | None = None
    # When set, the key is sent as this query parameter instead of a bearer header
    api_key_param: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    response_path: str = "data"


class APIAdapter(BaseSourceAdapter):
    """
    Adapter for REST data sources.

    Supports:
    - Custom query builders and response parsers
    - Query-parameter or bearer-header authentication
    - Rate-limited warnings for network failures
    """

    def __init__(
        self,
        config: APIAdapterConfig,
        query_builder: Callable[..., dict] | None = None,
        response_parser: Callable[[dict], list[dict]] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the API adapter.

        Args:
            config: APIAdapterConfig with API settings
            query_builder: Function to build query params from kwargs
            response_parser: Function to extract data list from response
            client: Pre-built HTTP client (tests, shared pools); owned by caller
        """
        self.query_builder = query_builder
        self.response_parser = response_parser
        self._client: httpx.AsyncClient | None = client
        self._owns_client = client is None
        super().__init__(config)
        self.network_logger = RateLimitedLogger(self.logger, config.network_warn_interval_s)

    @property
    def api_config(self) -> APIAdapterConfig:
        """Get typed config."""
        return self.config  # type: ignore[return-value]

    def _validate_config(self) -> None:
        """Validate API configuration."""
        if not self.api_config.base_url:
            raise ValueError("API adapter requires base_url")

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            headers = {
                "Accept": "application/json",
                **self.api_config.headers,
            }
            if self.api_config.api_key and not self.api_config.api_key_param:
                headers["Authorization"] = f"Bearer {self.api_config.api_key}"
            self._client = httpx.AsyncClient(headers=headers)
            self._owns_client = True
        return self._client

    async def fetch(self, timeout: float | None = None, **kwargs) -> FetchResult:
        """
        Fetch data from the API.

        Args:
            timeout: Request timeout in seconds (defaults to config.request_timeout)
            **kwargs: Parameters passed to query_builder

        Returns:
            FetchResult with raw data; never raises
        """
        fetch_started = datetime.now(UTC)
        all_data: list[dict] = []
        errors: list[str] = []
        metadata: dict[str, Any] = {"api_calls": 0}

        try:
            client = self._get_client()

            if self.query_builder:
                query_data = self.query_builder(**kwargs)
            else:
                query_data = self._default_query_builder(**kwargs)

            response = await self._make_request(
                client, query_data, timeout or self.api_config.request_timeout
            )
            metadata["api_calls"] += 1

            if not isinstance(response, dict):
                raise ValueError(f"Unexpected payload type {type(response).__name__}")

            if response.get("errors"):
                self.logger.error(f"API errors: {response['errors']}")
                errors.append(f"API errors: {response['errors']}")
            else:
                if self.response_parser:
                    data = self.response_parser(response)
                else:
                    data = self._default_response_parser(response)
                all_data.extend(item for item in data if isinstance(item, dict))
                metadata["total_available"] = self._extract_total_available(response, all_data)

        except httpx.TimeoutException as e:
            self.network_logger.warning("timeout", f"API request timed out: {e!r}")
            errors.append(f"timeout: {e!r}")
        except httpx.HTTPStatusError as e:
            self.logger.error(f"API returned HTTP {e.response.status_code}")
            errors.append(f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            self.network_logger.warning("network", f"API unreachable: {e!r}")
            errors.append(f"network: {e!r}")
        except Exception as e:
            self.logger.error(f"API fetch failed: {e}")
            errors.append(str(e))

        result = FetchResult(
            success=not errors,
            source_id=self.source_id,
            raw_data=all_data,
            total_fetched=len(all_data),
            errors=errors,
            metadata=metadata,
            fetch_started_at=fetch_started,
            fetch_ended_at=datetime.now(UTC),
        )
        self.logger.debug(
            f"Fetched {result.total_fetched} records in {result.duration_seconds:.2f}s"
        )
        return result

    async def _make_request(
        self,
        client: httpx.AsyncClient,
        query_data: dict,
        timeout: float,
    ) -> Any:
        """
        Make a single GET request.

        Returns:
            Decoded JSON payload

        Raises:
            httpx.HTTPError: On transport failure or non-2xx status
            ValueError: On a body that is not valid JSON
        """
        params = dict(query_data)
        if self.api_config.api_key and self.api_config.api_key_param:
            params[self.api_config.api_key_param] = self.api_config.api_key

        response = await client.get(
            self.api_config.base_url,
            params=params,
            timeout=timeout,
        )
        response.raise_for_status()
        return response.json()

    def _extract_total_available(self, response: dict, data: list) -> int:
        """
        Extract total available count from the API response.

        Override in subclasses to navigate source-specific response structures.
        """
        return response.get("totalResults", len(data))

    def _default_query_builder(self, **kwargs) -> dict:
        """Build a default query from keyword arguments."""
        return {k: v for k, v in kwargs.items() if v is not None}

    def _default_response_parser(self, response: dict) -> list[dict]:
        """Navigate ``response_path`` (dot notation) to the data list."""
        data: Any = response
        for part in self.api_config.response_path.split("."):
            if isinstance(data, dict):
                data = data.get(part)
            else:
                return []
        if isinstance(data, list):
            return data
        return [data] if isinstance(data, dict) else []

    async def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
