# stable_arb/utils/api_client.py
"""
Small aiohttp JSON client shared by the HTTP quote sources and executors.

Use it as an async context manager to reuse one session across calls;
outside a context each request opens a short-lived session.
"""

import json
from typing import Any, Dict, Optional

import aiohttp

from ..exceptions import HttpStatusError
from .logger import get_logger

logger = get_logger(__name__)


class ApiClient:
    """JSON-over-HTTP client bound to one base URL"""

    def __init__(self, base_url: str, timeout: float = 30.0, headers: Optional[Dict[str, str]] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.headers = {'Content-Type': 'application/json', **(headers or {})}
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(timeout=self.timeout, headers=self.headers)
        logger.debug(f"🌐 HTTP session opened for {self.base_url}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None
            logger.debug(f"🌐 HTTP session closed for {self.base_url}")

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request('GET', path, params=params)

    async def post(self, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request('POST', path, json_body=body)

    async def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                       json_body: Optional[Dict[str, Any]] = None) -> Any:
        if self.session is not None:
            return await self._send(self.session, method, path, params, json_body)

        async with aiohttp.ClientSession(timeout=self.timeout, headers=self.headers) as session:
            return await self._send(session, method, path, params, json_body)

    async def _send(self, session: aiohttp.ClientSession, method: str, path: str,
                    params: Optional[Dict[str, Any]], json_body: Optional[Dict[str, Any]]) -> Any:
        url = self._url(path)
        query = {k: _query_value(v) for k, v in (params or {}).items()}

        async with session.request(method, url, params=query or None, json=json_body) as response:
            text = await response.text()
            payload = _decode(text)

            if response.status >= 400:
                raise HttpStatusError(response.status, payload, f"{method} {url} returned HTTP {response.status}")

            return payload


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _decode(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text
