"""
HTTP client for the optional remote content-filter service.

Every failure mode (transport error, timeout, non-2xx status, malformed body)
surfaces as TransientUpstreamError so callers have one thing to catch before
falling back to local policy.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ...core.exceptions import TransientUpstreamError
from .types import FilterVerdict

logger = logging.getLogger(__name__)

URL_ENDPOINT = "/api/filter/url"
CONTENT_ENDPOINT = "/api/filter/content"
HEALTH_ENDPOINT = "/api/kernel/health"


class RemoteContentFilter:
    """Asks the remote filter service for URL and text verdicts."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 2.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url
        self.client = client or httpx.AsyncClient(
            base_url=base_url, timeout=timeout_seconds
        )

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> FilterVerdict:
        try:
            response = await self.client.post(endpoint, json=payload)
            response.raise_for_status()
            return FilterVerdict.model_validate(response.json())
        except httpx.HTTPError as e:
            raise TransientUpstreamError(
                endpoint, str(e) or type(e).__name__, component="RemoteContentFilter"
            ) from e
        except ValueError as e:
            raise TransientUpstreamError(
                endpoint, f"malformed response: {e}", component="RemoteContentFilter"
            ) from e

    async def filter_url(self, url: str) -> FilterVerdict:
        return await self._post(URL_ENDPOINT, {"url": url})

    async def filter_text(self, text: str) -> FilterVerdict:
        return await self._post(CONTENT_ENDPOINT, {"text": text})

    async def health_check(self) -> bool:
        """Return True when the service answers its health endpoint."""
        try:
            response = await self.client.get(HEALTH_ENDPOINT)
        except httpx.HTTPError as e:
            logger.warning(f"Content filter service not reachable: {e}")
            return False
        return response.is_success

    async def aclose(self) -> None:
        await self.client.aclose()
