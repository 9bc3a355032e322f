"""Drive a registry source across pages and accumulate the results."""

from __future__ import annotations

import threading
from typing import List, Optional

from .logging_config import get_logger
from .models import SearchCriteria, SourcePage, SourceRecord
from .sources.base import RegistrySource

logger = get_logger("pagination")

DEFAULT_PAGE_SIZE = 10
DEFAULT_PAGE_DELAY_SECONDS = 1.0


class PaginationOrchestrator:
    """Fetch pages sequentially until the source runs dry or the cap is hit.

    Stops on a failed page, an empty page, a page shorter than
    ``page_size``, or after ``max_pages``. Waits ``page_delay`` seconds
    between pages; setting ``cancel_event`` during the wait ends the loop
    and keeps what was already collected. Failed pages are not retried.
    """

    def __init__(
        self,
        source: RegistrySource,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_delay: float = DEFAULT_PAGE_DELAY_SECONDS,
    ) -> None:
        self.source = source
        self.page_size = page_size
        self.page_delay = page_delay

    def fetch_all(
        self,
        criteria: Optional[SearchCriteria],
        max_pages: int,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> SourcePage:
        logger.info(f"Starting paginated fetch, max pages: {max_pages}")
        cancel_event = cancel_event or threading.Event()

        collected: List[SourceRecord] = []
        total = 0
        current_page = 1

        while current_page <= max_pages:
            result = self.source.fetch_page(criteria, current_page)
            if not result.ok or result.page is None:
                logger.warning(f"Page {current_page} failed ({result.error}), stopping")
                break

            page_records = result.page.records
            if not page_records:
                logger.info(f"Page {current_page} returned no records, stopping")
                break

            collected.extend(page_records)
            total = result.page.total
            logger.info(
                f"Processed page {current_page}: {len(page_records)} records, {len(collected)} so far"
            )

            if len(page_records) < self.page_size:
                break
            if current_page >= max_pages:
                break

            current_page += 1
            if cancel_event.wait(self.page_delay):
                logger.warning("Paginated fetch cancelled, keeping collected pages")
                break

        logger.info(f"Paginated fetch finished with {len(collected)} records")
        return SourcePage(records=collected, total=total)
