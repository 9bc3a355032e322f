"""Base class for registry record sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..logging_config import get_logger
from ..models import FetchResult, SearchCriteria


class RegistrySource(ABC):
    """Produces pages of source records for a set of search criteria.

    Implementations never raise for acquisition problems; they return
    ``FetchResult.failure`` with a reason instead.
    """

    source_id = "registry"

    def __init__(self) -> None:
        self.logger = get_logger(f"sources.{self.source_id}")

    @abstractmethod
    def fetch_page(self, criteria: Optional[SearchCriteria], page: int) -> FetchResult:
        """Fetch one page (1-based) of records matching ``criteria``."""
        pass
