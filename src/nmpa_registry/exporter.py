"""CSV export of source and canonical registration records."""

from __future__ import annotations

import csv
import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Union

from .logging_config import get_logger
from .models import CanonicalRecord, SourceRecord

logger = get_logger("exporter")

SOURCE_COLUMNS = [
    "keyid",
    "product_name",
    "registration_number",
    "manufacturer_re",
    "category",
    "type",
    "product_state",
    "approval_date",
    "valid_until",
    "whether_yibao",
    "province",
    "city",
    "region",
    "scope_and_use",
]

CANONICAL_COLUMNS = [
    "id",
    "data_source",
    "jd_country",
    "registration_number",
    "device_name",
    "proprietary_name",
    "manufacturer_name",
    "device_class",
    "risk_class",
    "status_code",
    "created_date",
    "risk_level",
    "crawl_time",
]

_LINE_BREAKS = re.compile(r"[\r\n]+")


def clean_cell(value: Any) -> str:
    """Render one cell: None as empty, line breaks collapsed to a space."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    elif isinstance(value, datetime):
        value = value.isoformat()
    return _LINE_BREAKS.sub(" ", str(value))


def export_source_records_csv(
    records: Sequence[SourceRecord],
    output_dir: Union[str, Path],
    *,
    now: Optional[datetime] = None,
) -> Path:
    rows = ([getattr(record, column) for column in SOURCE_COLUMNS] for record in records)
    return _write_csv(rows, SOURCE_COLUMNS, "nmpa_source_records", output_dir, now)


def export_canonical_records_csv(
    records: Sequence[CanonicalRecord],
    output_dir: Union[str, Path],
    *,
    now: Optional[datetime] = None,
) -> Path:
    rows = ([getattr(record, column) for column in CANONICAL_COLUMNS] for record in records)
    return _write_csv(rows, CANONICAL_COLUMNS, "nmpa_registrations", output_dir, now)


def _write_csv(
    rows: Iterable[List[Any]],
    header: List[str],
    prefix: str,
    output_dir: Union[str, Path],
    now: Optional[datetime],
) -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    path = output_dir / f"{prefix}_{stamp}.csv"

    # utf-8-sig prepends the BOM
    with open(path, "w", encoding="utf-8-sig", newline="") as handle:
        writer = csv.writer(handle, quoting=csv.QUOTE_MINIMAL)
        writer.writerow(header)
        count = 0
        for row in rows:
            writer.writerow([clean_cell(value) for value in row])
            count += 1

    logger.info(f"Exported {count} records to {path}")
    return path
