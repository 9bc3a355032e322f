"""HTTP client with timeout support for the registry API."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from .config import RegistryConfig
from .logging_config import get_logger
from .models import FetchStats

logger = get_logger("http_client")


class HTTPClient:
    """Thin httpx wrapper: default headers, a timeout policy and request counters.

    Requests are sent exactly once. Failed calls raise ``httpx`` errors so
    the caller decides how to report them.
    """

    def __init__(self, config: Optional[RegistryConfig] = None) -> None:
        self.config = config or RegistryConfig()
        self.timeout = httpx.Timeout(
            connect=10.0,
            read=self.config.timeout_seconds,
            write=10.0,
            pool=5.0,
        )
        self.headers = {
            "User-Agent": self.config.user_agent,
        }

    def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        *,
        headers: Optional[Dict[str, str]] = None,
        stats: Optional[FetchStats] = None,
    ) -> httpx.Response:
        return self.request_sync(
            "POST",
            url,
            headers={"Content-Type": "application/json", **(headers or {})},
            json=payload,
            stats=stats,
        )

    def request_sync(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        follow_redirects: bool = True,
        stats: Optional[FetchStats] = None,
    ) -> httpx.Response:
        merged_headers = {**self.headers, **(headers or {})}

        with httpx.Client(
            timeout=self.timeout,
            follow_redirects=follow_redirects,
        ) as client:
            if stats:
                stats.http_requests += 1
            try:
                response = client.request(
                    method,
                    url,
                    headers=merged_headers,
                    params=params,
                    json=json,
                )
                if stats:
                    stats.last_status_code = response.status_code
                response.raise_for_status()
                return response

            except httpx.HTTPStatusError as exc:
                if stats:
                    stats.failed_requests += 1
                logger.error(
                    "Request %s %s failed with status %s: %s",
                    method,
                    url,
                    exc.response.status_code,
                    exc,
                )
                raise

            except httpx.RequestError as exc:
                if stats:
                    stats.failed_requests += 1
                logger.error("Request %s %s failed: %s", method, url, exc)
                raise
