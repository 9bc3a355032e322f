"""Data models for the NMPA registry ingestor."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class RiskLevel(str, Enum):
    """Severity bucket stored on canonical records."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass(frozen=True)
class SourceRecord:
    """One listed device as returned by the registry (注册证/备案 entry).

    Field names follow the upstream JSON keys. Every field is optional
    because the upstream payload is loosely structured; the registration
    number in particular may be blank or repeated across pages.
    """

    keyid: Optional[str] = None
    product_name: Optional[str] = None
    registration_number: Optional[str] = None
    manufacturer_re: Optional[str] = None
    category: Optional[str] = None
    scope_and_use: Optional[str] = None
    approval_date: Optional[str] = None
    valid_until: Optional[str] = None
    type: Optional[str] = None
    whether_yibao: Optional[str] = None
    product_state: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SourceRecord":
        """Build a record from a JSON object, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in payload.items():
            if key not in known or value is None:
                continue
            values[key] = value if isinstance(value, str) else str(value)
        return cls(**values)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


@dataclass
class CanonicalRecord:
    """Cross-source device registration entity persisted by the store."""

    data_source: str
    jd_country: str
    registration_number: Optional[str]
    device_name: Optional[str] = None
    proprietary_name: Optional[str] = None
    manufacturer_name: Optional[str] = None
    device_class: Optional[str] = None
    risk_class: Optional[str] = None
    status_code: Optional[str] = None
    created_date: Optional[str] = None
    risk_level: RiskLevel = RiskLevel.MEDIUM
    keywords: Optional[List[str]] = None
    fei_number: Optional[str] = None
    crawl_time: Optional[datetime] = None
    id: Optional[int] = None

    def to_db_params(self) -> Dict[str, Any]:
        """Convert to named parameters for RegistrationStore inserts."""
        return {
            "data_source": self.data_source,
            "jd_country": self.jd_country,
            "registration_number": self.registration_number,
            "fei_number": self.fei_number,
            "device_name": self.device_name,
            "proprietary_name": self.proprietary_name,
            "manufacturer_name": self.manufacturer_name,
            "device_class": self.device_class,
            "risk_class": self.risk_class,
            "status_code": self.status_code,
            "created_date": self.created_date,
            "risk_level": self.risk_level.value,
            "keywords": None if self.keywords is None else ";".join(self.keywords),
            "crawl_time": self.crawl_time.isoformat() if self.crawl_time else None,
        }

    def sample_info(self) -> Dict[str, Any]:
        """Compact view returned as the spot-check sample of an import."""
        return {
            "id": self.id,
            "device_name": self.device_name,
            "registration_number": self.registration_number,
            "manufacturer_name": self.manufacturer_name,
            "device_class": self.device_class,
            "risk_level": self.risk_level.value,
            "data_source": self.data_source,
            "jd_country": self.jd_country,
            "crawl_time": self.crawl_time.isoformat() if self.crawl_time else None,
        }


@dataclass
class SearchCriteria:
    """Optional filters for registry queries. Unset fields do not filter."""

    product_name: Optional[str] = None
    manufacturer: Optional[str] = None
    registration_number: Optional[str] = None
    category: Optional[str] = None
    type: Optional[str] = None
    product_state: Optional[str] = None
    whether_yibao: Optional[str] = None

    # criteria field -> upstream search key
    SEARCH_KEYS = {
        "product_name": "product_name",
        "manufacturer": "manufacturer_re",
        "registration_number": "registration_number_remark",
        "category": "category",
        "type": "type",
        "product_state": "product_state",
        "whether_yibao": "whether_yibao",
    }

    def to_search_body(self) -> Dict[str, str]:
        return {
            remote_key: getattr(self, attr)
            for attr, remote_key in self.SEARCH_KEYS.items()
            if getattr(self, attr) is not None
        }

    def is_empty(self) -> bool:
        return not self.to_search_body()

    def matches(self, record: SourceRecord) -> bool:
        """Apply the same filters locally: substrings for names, equality otherwise."""
        substring_filters = (
            (self.product_name, record.product_name),
            (self.manufacturer, record.manufacturer_re),
            (self.registration_number, record.registration_number),
        )
        for wanted, actual in substring_filters:
            if wanted is not None and wanted not in (actual or ""):
                return False

        exact_filters = (
            (self.category, record.category),
            (self.type, record.type),
            (self.product_state, record.product_state),
            (self.whether_yibao, record.whether_yibao),
        )
        for wanted, actual in exact_filters:
            if wanted is not None and wanted != actual:
                return False
        return True


@dataclass
class SourcePage:
    """Parsed ``{list, total}`` envelope; ``error_message`` is set on failure."""

    records: List[SourceRecord] = field(default_factory=list)
    total: int = 0
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_message is None

    @classmethod
    def empty(cls, reason: str) -> "SourcePage":
        return cls(records=[], total=0, error_message=reason)


@dataclass
class FetchResult:
    """Outcome of one acquisition call: either a page or a failure reason."""

    page: Optional[SourcePage] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.page is not None

    @classmethod
    def success(cls, page: SourcePage) -> "FetchResult":
        return cls(page=page)

    @classmethod
    def failure(cls, reason: str) -> "FetchResult":
        return cls(error=reason)


@dataclass
class FetchStats:
    """Counters for outbound registry requests."""

    http_requests: int = 0
    failed_requests: int = 0
    last_status_code: Optional[int] = None


@dataclass
class BatchOutcome:
    """Result of one import run."""

    success: bool
    message: str
    total_parsed: int = 0
    converted: int = 0
    skipped: int = 0
    saved: int = 0
    skipped_reasons: List[str] = field(default_factory=list)
    saved_ids: List[int] = field(default_factory=list)
    sample_record: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ClearOutcome:
    """Result of deleting every record of one data source."""

    success: bool
    message: str
    deleted_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReimportOutcome:
    """Clear followed by import; the two steps are reported separately."""

    success: bool
    message: str
    deleted_count: int = 0
    imported_count: int = 0
    clear: Optional[ClearOutcome] = None
    batch: Optional[BatchOutcome] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
