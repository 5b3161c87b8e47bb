"""HTTP client for the legacy capital-divisions service.

Signed-out division edits are mirrored to this service as a best-effort
side write. The client raises LegacyApiError on any failure; deciding to
ignore it is the caller's business.
"""

from typing import Optional

import httpx

from financeflow.models import CapitalDivision

DIVISIONS_PATH = "/api/capital-divisions"

# Transport failures, plus what a 200 with an unexpected body raises while parsed
LEGACY_ERRORS = (httpx.HTTPError, ValueError, TypeError, AttributeError)


class LegacyApiError(Exception):
    """Exception raised when the legacy service call fails."""

    pass


class LegacyDivisionsClient:
    """
    Async client for GET/POST /api/capital-divisions.

    Usage:
        async with LegacyDivisionsClient() as client:
            await client.push_divisions(divisions)
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Base URL of the legacy service
            timeout: Request timeout in seconds
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "LegacyDivisionsClient":
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close HTTP client and release connections."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_divisions(self) -> list[CapitalDivision]:
        try:
            response = await self._get_client().get(DIVISIONS_PATH)
            response.raise_for_status()
            return _parse_divisions(response.json())
        except LEGACY_ERRORS as e:
            raise LegacyApiError(f"Failed to fetch divisions: {e}") from e

    async def push_divisions(self, divisions: list[CapitalDivision]) -> list[CapitalDivision]:
        """
        Overwrite the service's divisions.

        Only id, name, percentage and color are sent; amount is derived.

        Returns:
            The sanitized divisions the service stored
        """
        body = {
            "divisions": [
                {"id": d.id, "name": d.name, "percentage": d.percentage, "color": d.color}
                for d in divisions
            ]
        }
        try:
            response = await self._get_client().post(DIVISIONS_PATH, json=body)
            response.raise_for_status()
            return _parse_divisions(response.json())
        except LEGACY_ERRORS as e:
            raise LegacyApiError(f"Failed to push divisions: {e}") from e


def _parse_divisions(payload: dict) -> list[CapitalDivision]:
    return [CapitalDivision(**d) for d in payload.get("divisions", [])]
