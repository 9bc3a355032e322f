"""Statistics over parsed and persisted registration records."""

from __future__ import annotations

import sqlite3
from collections import Counter
from typing import Any, Dict, Iterable, Optional, Sequence

from .database import RegistrationStore
from .logging_config import get_logger
from .models import RiskLevel, SourceRecord

logger = get_logger("statistics")

KNOWN_DATA_SOURCES = ("CN_NMPA", "US_FDA", "EU_EUDAMED")
OTHER_SOURCES_BUCKET = "other"
UNKNOWN_BUCKET = "unknown"


def _count_by(values: Iterable[Optional[str]]) -> Dict[str, int]:
    counts = Counter(value if value else UNKNOWN_BUCKET for value in values)
    return dict(counts.most_common())


def summarize_records(records: Sequence[SourceRecord]) -> Dict[str, Any]:
    """Group a freshly parsed record set by category, type, province, status and insurance flag."""
    return {
        "total": len(records),
        "by_category": _count_by(record.category for record in records),
        "by_type": _count_by(record.type for record in records),
        "by_province": _count_by(record.province for record in records),
        "by_status": _count_by(record.product_state for record in records),
        "by_insurance": _count_by(record.whether_yibao for record in records),
    }


class StatisticsReporter:
    """Read-only rollups of the store for one data source."""

    def __init__(
        self,
        store: RegistrationStore,
        data_source: str = "CN_NMPA",
        risk_level: RiskLevel = RiskLevel.MEDIUM,
    ) -> None:
        self.store = store
        self.data_source = data_source
        self.risk_level = risk_level

    def conversion_statistics(self) -> Dict[str, Any]:
        try:
            source_count = self.store.count_by_data_source(self.data_source)
            total_records = self.store.count()

            distribution: Dict[str, int] = {}
            for tag in dict.fromkeys((self.data_source, *KNOWN_DATA_SOURCES)):
                distribution[tag] = self.store.count_by_data_source(tag)
            distribution[OTHER_SOURCES_BUCKET] = total_records - sum(distribution.values())

            percentage = source_count / total_records * 100 if total_records > 0 else 0.0

            return {
                "data_source": self.data_source,
                "source_records": source_count,
                "total_records": total_records,
                "source_distribution": distribution,
                "source_percentage": f"{percentage:.2f}%",
                # Risk level is fixed by policy, so the distribution has one bucket
                "risk_distribution": {self.risk_level.value: source_count},
                "by_device_class": self.store.group_counts("device_class", self.data_source),
                "by_status": self.store.group_counts("status_code", self.data_source),
            }
        except sqlite3.Error as exc:
            logger.error(f"Failed to compute conversion statistics: {exc}")
            return {"data_source": self.data_source, "error": str(exc)}
