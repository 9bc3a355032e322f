"""Configuration loader for the NMPA registry ingestor."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dateutil import parser as date_parser

from .logging_config import get_logger
from .models import RiskLevel

logger = get_logger("config")

API_KEY_ENV = "NMPA_REGISTRY_API_KEY"


@dataclass
class ApiCredential:
    """Bearer key for the registry API together with its declared expiry."""

    api_key: str = ""
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        if now is None:
            now = datetime.now(self.expires_at.tzinfo)
        expires_at = self.expires_at
        if (now.tzinfo is None) != (expires_at.tzinfo is None):
            # naive datetimes are local time
            now = now.astimezone()
            expires_at = expires_at.astimezone()
        return now > expires_at


@dataclass
class RegistryConfig:
    """Settings injected into the sources, importer and runner."""

    base_url: str = "https://open.bcpmdata.com"
    list_endpoint: str = "/instrument/general/v1/china_listed/list"
    credential: ApiCredential = field(default_factory=ApiCredential)
    user_agent: str = "NMPARegistryIngestor/1.0"
    timeout_seconds: float = 30.0
    page_size: int = 10
    max_pages: int = 5
    page_delay_seconds: float = 1.0
    data_file: Path = Path("data/cn_registration_dump.txt")
    db_path: Path = Path("database/nmpa_registry.db")
    data_source: str = "CN_NMPA"
    jd_country: str = "CN"
    risk_level: RiskLevel = RiskLevel.MEDIUM

    DEFAULT_CONFIG_PATH = Path("config/nmpa_registry.yaml")

    @property
    def list_url(self) -> str:
        return self.base_url.rstrip("/") + self.list_endpoint

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryConfig":
        api = data.get("api", {}) or {}
        pagination = data.get("pagination", {}) or {}
        storage = data.get("storage", {}) or {}
        mapping = data.get("mapping", {}) or {}

        defaults = cls()
        api_key = os.environ.get(API_KEY_ENV) or api.get("api_key", "")
        return cls(
            base_url=api.get("base_url", defaults.base_url),
            list_endpoint=api.get("list_endpoint", defaults.list_endpoint),
            credential=ApiCredential(
                api_key=api_key,
                expires_at=_parse_expiry(api.get("key_expiry")),
            ),
            user_agent=api.get("user_agent", defaults.user_agent),
            timeout_seconds=float(api.get("timeout_seconds", defaults.timeout_seconds)),
            page_size=int(pagination.get("page_size", defaults.page_size)),
            max_pages=int(pagination.get("max_pages", defaults.max_pages)),
            page_delay_seconds=float(pagination.get("page_delay_seconds", defaults.page_delay_seconds)),
            data_file=Path(storage.get("data_file", defaults.data_file)),
            db_path=Path(storage.get("db_path", defaults.db_path)),
            data_source=mapping.get("data_source", defaults.data_source),
            jd_country=mapping.get("jd_country", defaults.jd_country),
            risk_level=RiskLevel(mapping.get("risk_level", defaults.risk_level.value)),
        )

    @classmethod
    def from_file(cls, config_path: Optional[Union[str, Path]] = None) -> "RegistryConfig":
        """Load settings from YAML; a missing file yields the defaults."""
        path = Path(config_path) if config_path else cls.DEFAULT_CONFIG_PATH
        if not path.is_absolute():
            path = Path.cwd() / path
        if not path.exists():
            logger.warning(f"Config file not found at {path}, using defaults")
            return cls.from_dict({})
        with open(path, "r", encoding="utf-8") as handle:
            return cls.from_dict(yaml.safe_load(handle) or {})


def _parse_expiry(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return date_parser.parse(str(value))
    except (ValueError, OverflowError):
        # unreadable expiry: treat the key as never expiring
        logger.warning(f"Could not parse api key expiry '{value}', assuming it has not expired")
        return None
