"""Client for the listed-device query API of the China registry data service."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Optional

import httpx

from ..config import RegistryConfig
from ..http_client import HTTPClient
from ..models import FetchResult, FetchStats, SearchCriteria
from ..parser_utils import parse_envelope
from .base import RegistrySource


class RemoteRegistrySource(RegistrySource):
    """Query NMPA registrations page by page through the remote list endpoint."""

    source_id = "remote"

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        *,
        http_client: Optional[HTTPClient] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        super().__init__()
        self.config = config or RegistryConfig()
        self.http_client = http_client or HTTPClient(self.config)
        self.clock = clock
        self.stats = FetchStats()

    def build_request_body(self, criteria: Optional[SearchCriteria], page: int) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if criteria is not None and not criteria.is_empty():
            body["search"] = criteria.to_search_body()
        body["page"] = page
        return body

    def fetch_page(self, criteria: Optional[SearchCriteria], page: int) -> FetchResult:
        if page < 1:
            raise ValueError("page numbers start at 1")

        credential = self.config.credential
        try:
            expired = credential.is_expired(self.clock())
        except (TypeError, ValueError, OverflowError) as exc:
            reason = f"could not check api key expiry: {exc}"
            self.logger.error(reason)
            return FetchResult.failure(reason)
        if expired:
            reason = f"api key expired at {credential.expires_at}"
            self.logger.error(reason)
            return FetchResult.failure(reason)

        body = self.build_request_body(criteria, page)
        self.logger.info(f"Requesting page {page} from {self.config.list_url}")
        self.logger.debug(f"Request body: {body}")

        try:
            response = self.http_client.post_json(
                self.config.list_url,
                body,
                headers={"Authorization": f"Bearer {credential.api_key}"},
                stats=self.stats,
            )
        except httpx.HTTPStatusError as exc:
            return FetchResult.failure(f"HTTP {exc.response.status_code} from registry API")
        except httpx.HTTPError as exc:
            return FetchResult.failure(f"request failed: {exc}")

        try:
            payload = response.json()
        except ValueError as exc:
            self.logger.error(f"Registry response for page {page} is not JSON: {exc}")
            return FetchResult.failure(f"invalid JSON response: {exc}")

        result_page = parse_envelope(payload)
        if not result_page.ok:
            self.logger.error(f"Unexpected registry response for page {page}: {result_page.error_message}")
            return FetchResult.failure(result_page.error_message or "unexpected response")

        self.logger.info(
            f"Page {page}: {len(result_page.records)} records, {result_page.total} reported in total"
        )
        return FetchResult.success(result_page)

    def search_by_product_name(self, product_name: str, page: int = 1) -> FetchResult:
        return self.fetch_page(SearchCriteria(product_name=product_name), page)

    def search_by_registration_number(self, registration_number: str, page: int = 1) -> FetchResult:
        return self.fetch_page(SearchCriteria(registration_number=registration_number), page)

    def search_by_manufacturer(self, manufacturer: str, page: int = 1) -> FetchResult:
        return self.fetch_page(SearchCriteria(manufacturer=manufacturer), page)

    def search_by_category(self, category: str, page: int = 1) -> FetchResult:
        return self.fetch_page(SearchCriteria(category=category), page)

    def search_by_type(self, device_type: str, page: int = 1) -> FetchResult:
        return self.fetch_page(SearchCriteria(type=device_type), page)

    def test_connection(self) -> bool:
        """Issue an unfiltered first-page query and report whether it succeeded."""
        result = self.fetch_page(None, 1)
        self.logger.info(f"API connection test {'succeeded' if result.ok else 'failed'}")
        return result.ok

    def api_stats(self) -> Dict[str, Any]:
        credential = self.config.credential
        return {
            "endpoint": self.config.list_url,
            "key_expiry": credential.expires_at.isoformat() if credential.expires_at else None,
            "key_expired": credential.is_expired(self.clock()),
            "http_requests": self.stats.http_requests,
            "failed_requests": self.stats.failed_requests,
            "last_status_code": self.stats.last_status_code,
        }
