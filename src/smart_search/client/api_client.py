"""HTTP client for the search and statistics endpoints."""
from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from smart_search.config import CONFIG, SearchConfig
from smart_search.exceptions import RemoteSearchError, StatisticsFetchError
from smart_search.models.criteria import SearchCriteria
from smart_search.models.result import SearchResult
from smart_search.models.statistics import Statistics

logger = structlog.get_logger(__name__)


class SearchApiClient:
    """Async client for a Smart Search server.

    Credentials are sent as ``api_id`` / ``api_key`` headers on every
    request. Use as an async context manager, or call ``close()``.
    """

    def __init__(
        self,
        endpoint: str,
        api_id: str | None = None,
        api_key: str | None = None,
        config: SearchConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.api_id = api_id
        self.api_key = api_key
        self.config = config or CONFIG
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_id:
            headers["api_id"] = self.api_id
        if self.api_key:
            headers["api_key"] = self.api_key
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(headers=self._headers(), transport=self._transport)
        return self._client

    async def fetch_statistics(self) -> Statistics:
        """GET {endpoint}/statistics.

        Raises:
            StatisticsFetchError: Timeout, network failure, non-2xx status,
                unparseable body or ``success: false``
        """
        url = f"{self.endpoint}/statistics"
        try:
            resp = await self._get_client().get(url, timeout=self.config.statistics_timeout)
        except httpx.TimeoutException as e:
            logger.warning("statistics_fetch.timeout", url=url)
            raise StatisticsFetchError("Request timeout") from e
        except httpx.HTTPError as e:
            logger.warning("statistics_fetch.network_error", url=url, error=str(e))
            raise StatisticsFetchError(f"Network error: {e}") from e

        if not resp.is_success:
            raise StatisticsFetchError("Request failed", status_code=resp.status_code)

        try:
            payload: dict[str, Any] = resp.json()
        except ValueError as e:
            raise StatisticsFetchError("Invalid response format", status_code=resp.status_code) from e

        if not isinstance(payload, dict) or not payload.get("success") or not payload.get("statistics"):
            message = payload.get("error") if isinstance(payload, dict) else None
            raise StatisticsFetchError(message or "API returned no statistics")

        try:
            statistics = Statistics.from_wire(payload["statistics"])
        except ValidationError as e:
            raise StatisticsFetchError("Invalid response format") from e

        logger.info("statistics_fetch.ok", total_records=statistics.total_records)
        return statistics

    async def search(self, criteria: SearchCriteria) -> SearchResult:
        """POST {endpoint}/search and decode the result envelope.

        A 400 response still carries a result envelope and is returned
        as-is (``success`` is false).

        Raises:
            RemoteSearchError: Timeout, network failure or an unexpected status
        """
        url = f"{self.endpoint}/search"
        body = {
            "criteria": criteria.model_dump(by_alias=True, exclude_none=True, exclude={"limit"}),
            "limit": criteria.limit,
        }
        try:
            resp = await self._get_client().post(url, json=body, timeout=self.config.search_timeout)
        except httpx.TimeoutException as e:
            raise RemoteSearchError("Search request timed out") from e
        except httpx.HTTPError as e:
            raise RemoteSearchError(f"Network error: {e}") from e

        if not resp.is_success and resp.status_code != 400:
            raise RemoteSearchError(
                "Search request failed",
                status_code=resp.status_code,
                retryable=resp.status_code >= 500,
            )

        try:
            payload = resp.json()
            if not isinstance(payload, dict):
                raise ValueError("search response is not an object")
            return SearchResult.from_wire(payload)
        except (ValueError, ValidationError) as e:
            raise RemoteSearchError(
                "Invalid response format", status_code=resp.status_code, retryable=False
            ) from e

    async def close(self) -> None:
        """Close HTTP client connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> SearchApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> bool:
        await self.close()
        return False
