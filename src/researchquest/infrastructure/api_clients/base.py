"""
Shared async HTTP API client.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientTimeout

logger = logging.getLogger(__name__)

USER_AGENT = "ResearchQuest/1.0"


class APIError(Exception):
    def __init__(self, status: int, url: str, body: str = ""):
        super().__init__(f"API error {status}: {url}")
        self.status = status
        self.url = url
        self.body = body


class APIClient:
    """Async HTTP client with a request interval and retry on 429/5xx."""

    def __init__(
        self,
        base_url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        timeout: int = 30,
        request_interval: float = 0.0,
        max_retries: int = 2,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers or {})
        self.timeout = ClientTimeout(total=timeout)
        self.request_interval = request_interval
        self.max_retries = max_retries
        self._last_request_time = 0.0
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
            headers.update(self.headers)
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=headers)
        return self._session

    async def _wait_for_rate_limit(self) -> None:
        now = time.time()
        elapsed = now - self._last_request_time
        if elapsed < self.request_interval:
            await asyncio.sleep(self.request_interval - elapsed)
        self._last_request_time = time.time()

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    @staticmethod
    def _backoff(attempt: int, retry_after: Optional[str]) -> float:
        if retry_after:
            try:
                return min(float(retry_after), 30.0)
            except (TypeError, ValueError):
                pass
        delay = 1.0 * (2 ** attempt)
        # jitter ±25%
        return max(0.5, delay + delay * 0.25 * (2 * random.random() - 1))

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
        data: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        as_text: bool = False,
    ) -> Any:
        url = self._url(endpoint)
        last_status = 0

        for attempt in range(self.max_retries + 1):
            await self._wait_for_rate_limit()
            session = await self._get_session()
            try:
                async with session.request(
                    method, url, params=params, json=json_data, data=data, headers=headers
                ) as response:
                    last_status = response.status
                    if response.status in (200, 201):
                        if as_text:
                            return await response.text()
                        return await response.json(content_type=None)
                    if response.status == 404:
                        logger.warning("Resource not found: %s", url)
                        return "" if as_text else {}
                    if response.status == 429 or response.status >= 500:
                        retry_after = response.headers.get("Retry-After")
                        await response.read()
                        if attempt >= self.max_retries:
                            break
                        delay = self._backoff(attempt, retry_after)
                        logger.warning(
                            "HTTP %s for %s, retry %s/%s in %.1fs",
                            response.status,
                            url,
                            attempt + 1,
                            self.max_retries,
                            delay,
                        )
                        await asyncio.sleep(delay)
                        continue
                    text = await response.text()
                    logger.error("API error %s: %s", response.status, text[:200])
                    raise APIError(response.status, url, text[:200])
            except asyncio.TimeoutError:
                if attempt >= self.max_retries:
                    logger.error("Request timeout after %s attempts: %s", attempt + 1, url)
                    raise
                await asyncio.sleep(self._backoff(attempt, None))

        raise APIError(last_status, url)

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return await self._request("GET", endpoint, params=params, **kwargs)

    async def get_text(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
        return await self._request("GET", endpoint, params=params, as_text=True)

    async def post(
        self,
        endpoint: str,
        *,
        json_data: Optional[Dict[str, Any]] = None,
        data: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        return await self._request("POST", endpoint, json_data=json_data, data=data, headers=headers)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
