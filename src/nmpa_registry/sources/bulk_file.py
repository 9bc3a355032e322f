"""Reader for pre-fetched registry dumps saved as text files."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from ..models import FetchResult, SearchCriteria, SourcePage
from ..parser_utils import parse_listing
from .base import RegistrySource


class BulkFileSource(RegistrySource):
    """Serve records from one saved ``{list, total}`` dump.

    The whole dump is page 1; later pages are empty. Search criteria are
    applied locally.
    """

    source_id = "bulk_file"

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__()
        self.path = Path(path)

    def load(self) -> SourcePage:
        """Read and parse the dump. Never raises; failures set ``error_message``."""
        if not self.path.exists():
            self.logger.error(f"Data file not found: {self.path}")
            return SourcePage.empty(f"data file not found: {self.path}")

        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self.logger.error(f"Failed to read data file {self.path}: {exc}")
            return SourcePage.empty(f"failed to read data file: {exc}")

        if not content.strip():
            self.logger.error(f"Data file is empty: {self.path}")
            return SourcePage.empty(f"data file is empty: {self.path}")

        page = parse_listing(content)
        if page.ok:
            self.logger.info(f"Parsed {len(page.records)} records from {self.path}")
        else:
            self.logger.error(f"Failed to parse {self.path}: {page.error_message}")
        return page

    def fetch_page(self, criteria: Optional[SearchCriteria], page: int) -> FetchResult:
        if page < 1:
            raise ValueError("page numbers start at 1")

        loaded = self.load()
        if not loaded.ok:
            return FetchResult.failure(loaded.error_message or "failed to load data file")
        if page > 1:
            return FetchResult.success(SourcePage(records=[], total=loaded.total))

        records = loaded.records
        if criteria is not None and not criteria.is_empty():
            records = [record for record in records if criteria.matches(record)]
            return FetchResult.success(SourcePage(records=records, total=len(records)))
        return FetchResult.success(loaded)
