from __future__ import annotations

"""Async HTTP JSON fetching with bounded timeouts and optional retry.

Every call is capped by a connect timeout and by a total deadline covering
all attempts, so a stalled upstream can never block a request indefinitely.
Only transport failures are retried; status and decode errors are final.
"""
import asyncio
import json
from typing import Any, Dict, Mapping, Optional

import httpx


class HttpError(Exception):
    pass


class HttpTransportError(HttpError):
    """Connection failure, DNS error, timeout or any other request-level failure."""


class HttpStatusError(HttpError):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class HttpDecodeError(HttpError):
    """Response body is not valid JSON."""


async def _fetch_once(client: httpx.AsyncClient, url: str, params) -> Any:
    try:
        resp = await client.get(url, params=params)
    except httpx.RequestError as e:
        # Connection failures, timeouts, redirect loops and broken content encodings.
        raise HttpTransportError(f"Failed to reach {url}: {e!r}") from e
    if not resp.is_success:
        raise HttpStatusError(f"HTTP {resp.status_code} for {url}", resp.status_code)
    try:
        return resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise HttpDecodeError(f"Invalid JSON from {url}: {e}") from e


async def get_json(
    url: str,
    *,
    params: Optional[Mapping[str, str]] = None,
    timeout: float = 15.0,
    connect_timeout: float = 5.0,
    retries: int = 0,
    backoff: float = 0.5,
    headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    client_timeout = httpx.Timeout(timeout, connect=connect_timeout)
    default_headers = {"Accept": "application/json"}
    default_headers.update(headers or {})

    async def _attempts() -> Any:
        last_err: Optional[HttpTransportError] = None
        async with httpx.AsyncClient(
            timeout=client_timeout,
            headers=default_headers,
            follow_redirects=True,
            transport=transport,
        ) as client:
            for attempt in range(retries + 1):
                try:
                    return await _fetch_once(client, url, params)
                except HttpTransportError as e:
                    last_err = e
                    if attempt == retries:
                        break
                    await asyncio.sleep(backoff * (2**attempt))
        assert last_err is not None
        raise last_err

    try:
        return await asyncio.wait_for(_attempts(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise HttpTransportError(f"Timed out after {timeout}s fetching {url}") from e
