"""Async JSON-over-HTTP transport shared by the REST backends."""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from .errors import APIError, NotFoundError, ProviderInternalError, RateLimitedError

logger = logging.getLogger(__name__)


class RestClient:
    """
    Thin httpx.AsyncClient wrapper mapping HTTP failures onto connector errors.

    404 -> NotFoundError, 429 -> RateLimitedError, other non-2xx -> APIError,
    transport failures -> ProviderInternalError.
    """

    def __init__(
        self,
        base_url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers or {},
            timeout=timeout,
            transport=transport,
        )

    async def close(self):
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
        operation: str = "",
        key: Optional[str] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (or text when not JSON)."""
        logger.debug(f"{method} {path} params={params}")
        try:
            response = await self._http.request(
                method, path, params=params, json=json_body, content=content, headers=headers,
            )
        except httpx.TimeoutException as e:
            raise ProviderInternalError(f"request timed out: {method} {path}", operation=operation, key=key) from e
        except httpx.HTTPError as e:
            raise ProviderInternalError(f"request failed: {e}", operation=operation, key=key) from e

        if response.status_code == 404:
            raise NotFoundError(f"not found: {path}", operation=operation, key=key)
        if response.status_code == 429:
            raise RateLimitedError(f"rate limited: {path}", operation=operation, key=key)
        if response.status_code >= 400:
            raise self._api_error(response, operation, key)

        if not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return response.text

    def _api_error(self, response: httpx.Response, operation: str, key: Optional[str]) -> APIError:
        details: Any = None
        message = f"HTTP {response.status_code}: {response.reason_phrase}"
        provider_code = ""
        try:
            details = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            details = response.text[:500] if response.text else None
        if isinstance(details, dict):
            message = str(details.get("message") or details.get("error") or message)
            provider_code = str(details.get("error") or details.get("code") or "")
        return APIError(
            message,
            status_code=response.status_code,
            provider_code=provider_code,
            details=details,
            operation=operation,
            key=key,
        )

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)
