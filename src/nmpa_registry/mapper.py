"""Map NMPA source records onto the cross-source canonical schema."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, Optional

from .config import RegistryConfig
from .logging_config import get_logger
from .models import CanonicalRecord, RiskLevel, SourceRecord

logger = get_logger("mapper")

RISK_CLASS_UNKNOWN = "unknown"
RISK_CLASS_UNCLASSIFIED = "unclassified"

# NMPA management category (Roman numeral code points) -> risk class label
CATEGORY_RISK_CLASSES: Dict[str, str] = {
    "Ⅰ": "Class I device",
    "Ⅱ": "Class II device",
    "Ⅲ": "Class III device",
}

FIELD_MAPPING: Dict[str, str] = {
    "product_name": "device_name, proprietary_name",
    "registration_number": "registration_number",
    "manufacturer_re": "manufacturer_name",
    "category": "device_class + risk_class",
    "product_state": "status_code",
    "approval_date": "created_date",
    "fixed CN_NMPA": "data_source",
    "fixed CN": "jd_country",
    "fixed MEDIUM": "risk_level",
    "fixed null": "keywords",
    "current time": "crawl_time",
}


def map_category_to_risk_class(category: Optional[str]) -> str:
    if category is None:
        return RISK_CLASS_UNKNOWN
    return CATEGORY_RISK_CLASSES.get(category, RISK_CLASS_UNCLASSIFIED)


class FieldMapper:
    """Deterministic SourceRecord -> CanonicalRecord conversion.

    Data source, country and risk level are policy constants taken from the
    configuration; they are never derived from the record itself.
    """

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config or RegistryConfig()
        self.clock = clock

    @property
    def data_source(self) -> str:
        return self.config.data_source

    @property
    def risk_level(self) -> RiskLevel:
        return self.config.risk_level

    def to_canonical(self, record: Optional[SourceRecord]) -> Optional[CanonicalRecord]:
        if record is None:
            return None

        logger.debug(f"Mapping registry record: {record.product_name}")
        return CanonicalRecord(
            data_source=self.config.data_source,
            jd_country=self.config.jd_country,
            registration_number=record.registration_number,
            fei_number=None,
            device_name=record.product_name,
            proprietary_name=record.product_name,
            manufacturer_name=record.manufacturer_re,
            device_class=record.category,
            risk_class=map_category_to_risk_class(record.category),
            status_code=record.product_state,
            created_date=record.approval_date,
            risk_level=self.config.risk_level,
            keywords=None,
            crawl_time=self.clock(),
        )

    def field_mapping(self) -> Dict[str, str]:
        """Human-readable mapping with this configuration's constants."""
        mapping = dict(FIELD_MAPPING)
        mapping[f"fixed {self.config.data_source}"] = mapping.pop("fixed CN_NMPA")
        mapping[f"fixed {self.config.jd_country}"] = mapping.pop("fixed CN")
        mapping[f"fixed {self.config.risk_level.value}"] = mapping.pop("fixed MEDIUM")
        return mapping
