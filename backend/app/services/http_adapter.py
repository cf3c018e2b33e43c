"""
StudyGenie Backend — Shared HTTP Plumbing for Provider Adapters
=================================================================

What:  Base class for adapters that talk to their provider over plain HTTPS.
How:   Owns one lazily created httpx.AsyncClient per adapter and a `_post()`
       helper that maps every httpx failure mode onto ProviderCallError /
       ResponseShapeError, so concrete adapters only build requests and read
       replies.
Who:   OpenRouterAdapter, HuggingFaceImageAdapter.
"""

import logging
from typing import Any, Mapping, Optional

import httpx

from app.exceptions import ProviderCallError, ResponseShapeError
from app.services.provider_base import ProviderAdapter, ProviderConfig, extract_error

logger = logging.getLogger(__name__)


class HttpProviderAdapter(ProviderAdapter):
    """
    ProviderAdapter with an httpx client.

    Args:
        config: Immutable provider configuration
        client: Optional pre-built client (tests pass one with httpx.MockTransport)
    """

    def __init__(self, config: ProviderConfig, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
        return self._client

    async def _post(
        self,
        url: str,
        timeout: float,
        headers: Mapping[str, str],
        json_body: Optional[Any] = None,
        content: Optional[bytes] = None,
    ) -> Any:
        """
        POST once and return the decoded JSON body.

        Raises:
            ProviderCallError: timeout, transport error, non-2xx status, or an
                error object in the body
            ResponseShapeError: 2xx reply whose body is not JSON
        """
        client = self._get_client()
        try:
            response = await client.post(
                url,
                json=json_body,
                content=content,
                headers=dict(headers),
                timeout=timeout,
            )
        except httpx.TimeoutException:
            raise ProviderCallError(f"timed out after {timeout:.0f}s", provider=self.name)
        except httpx.HTTPError as e:
            raise ProviderCallError(f"network error ({type(e).__name__})", provider=self.name)

        if not response.is_success:
            detail = ""
            try:
                detail = extract_error(response.json()) or ""
            except ValueError:
                pass
            message = f"HTTP {response.status_code}"
            if detail:
                message = f"{message}: {detail[:200]}"
            raise ProviderCallError(message, provider=self.name)

        try:
            payload = response.json()
        except ValueError:
            raise ResponseShapeError("response body is not JSON", provider=self.name)

        error = extract_error(payload)
        if error:
            raise ProviderCallError(f"provider error: {error[:200]}", provider=self.name)
        return payload

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
