import asyncio
import logging
import random
from typing import Any

import httpx

from query_pattern_doctor.api.exceptions import (
    AuthenticationError,
    ManagementAPIError,
    NotFoundError,
    QueryExecutionError,
    RateLimitError,
)
from query_pattern_doctor.api.models import LogQueryParams
from query_pattern_doctor.config import AnalysisSettings

logger = logging.getLogger(__name__)


class SupabaseManagementClient:
    """Async client for the Supabase Management API.

    Only the two endpoints the analysis needs are wrapped: the read-only SQL
    endpoint used for schema metadata, and the analytics endpoint that
    serves ``postgres_logs``. Rate-limited requests are retried with
    exponential backoff plus jitter.

    Usage:
        async with SupabaseManagementClient(access_token="...") as client:
            rows = await client.run_query("project-ref", "SELECT 1")
    """

    BASE_URL = "https://api.supabase.com"
    QUERY_ENDPOINT = "/v1/projects/{ref}/database/query"
    LOGS_ENDPOINT = "/v1/projects/{ref}/analytics/endpoints/logs.all"
    MAX_RETRIES = 3
    BASE_BACKOFF = 1.0
    MAX_JITTER = 0.5

    def __init__(
        self, access_token: str, base_url: str | None = None, timeout: float = 30.0
    ) -> None:
        self.access_token = access_token
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: AnalysisSettings) -> "SupabaseManagementClient":
        return cls(
            access_token=settings.supabase_access_token,
            base_url=settings.supabase_base_url,
        )

    async def __aenter__(self) -> "SupabaseManagementClient":
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def run_query(self, project_ref: str, sql: str) -> list[dict[str, Any]]:
        """Run a statement through the SQL endpoint and return its rows."""
        data = await self._request(
            "POST", self.QUERY_ENDPOINT.format(ref=project_ref), json={"query": sql}
        )
        return self._extract_rows(data)

    async def query_logs(self, project_ref: str, params: LogQueryParams) -> list[dict[str, Any]]:
        """Query ``postgres_logs`` within the window described by ``params``.

        Raises:
            ValueError: If the window or limit is invalid.
        """
        params.validate()
        data = await self._request(
            "GET",
            self.LOGS_ENDPOINT.format(ref=project_ref),
            params=params.as_request_params(),
        )
        return self._extract_rows(data)

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        if not self._client:
            raise RuntimeError("Client not initialized. Use async context manager.")

        url = f"{self.base_url}{endpoint}"
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

        retries = 0
        while True:
            response = await self._client.request(
                method, url, headers=headers, params=params, json=json
            )

            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After")
                if retries >= self.MAX_RETRIES:
                    raise RateLimitError(
                        "Rate limit exceeded after max retries",
                        retry_after=float(retry_after) if retry_after else None,
                    )

                delay = self.BASE_BACKOFF * (2**retries) + random.uniform(0, self.MAX_JITTER)
                logger.warning(
                    "Rate limited on %s %s, retrying in %.2fs (attempt %d/%d)",
                    method,
                    endpoint,
                    delay,
                    retries + 1,
                    self.MAX_RETRIES,
                )
                await asyncio.sleep(delay)
                retries += 1
                continue

            if response.status_code == 401:
                raise AuthenticationError()

            if response.status_code == 404:
                raise NotFoundError(f"Resource not found: {endpoint}")

            if response.status_code == 400:
                raise QueryExecutionError(
                    f"Request rejected: {response.text}", status_code=400
                )

            if response.status_code >= 400:
                raise ManagementAPIError(
                    f"Management API returned {response.status_code}",
                    status_code=response.status_code,
                )
            return response.json()

    def _extract_rows(self, data: Any) -> list[dict[str, Any]]:
        if isinstance(data, list):
            return data

        if isinstance(data, dict):
            if "error" in data and data["error"]:
                raise QueryExecutionError(str(data["error"]))
            for key in ("result", "data", "rows"):
                if key in data:
                    return self._extract_rows(data[key])

        return []
