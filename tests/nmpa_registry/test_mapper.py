"""Tests for the source-to-canonical field mapper."""

from datetime import datetime

import pytest

from src.nmpa_registry.config import RegistryConfig
from src.nmpa_registry.mapper import FieldMapper, map_category_to_risk_class
from src.nmpa_registry.models import RiskLevel, SourceRecord

FIXED_NOW = datetime(2025, 3, 1, 9, 30)


@pytest.fixture
def mapper():
    return FieldMapper(clock=lambda: FIXED_NOW)


@pytest.mark.parametrize(
    "category, expected",
    [
        ("Ⅰ", "Class I device"),
        ("Ⅱ", "Class II device"),
        ("Ⅲ", "Class III device"),
        ("III", "unclassified"),
        ("", "unclassified"),
        (None, "unknown"),
    ],
)
def test_category_to_risk_class(category, expected):
    assert map_category_to_risk_class(category) == expected


def test_to_canonical_copies_fields_and_constants(mapper):
    record = SourceRecord(
        keyid="k1",
        product_name="心脏起搏器",
        registration_number="国械注进20173120456",
        manufacturer_re="Medtronic Inc.",
        category="Ⅲ",
        product_state="有效",
        approval_date="2017-03-02",
        province="北京市",
    )

    canonical = mapper.to_canonical(record)

    assert canonical.data_source == "CN_NMPA"
    assert canonical.jd_country == "CN"
    assert canonical.registration_number == "国械注进20173120456"
    assert canonical.device_name == "心脏起搏器"
    assert canonical.proprietary_name == "心脏起搏器"
    assert canonical.manufacturer_name == "Medtronic Inc."
    assert canonical.device_class == "Ⅲ"
    assert canonical.risk_class == "Class III device"
    assert canonical.status_code == "有效"
    assert canonical.created_date == "2017-03-02"
    assert canonical.risk_level is RiskLevel.MEDIUM
    assert canonical.keywords is None
    assert canonical.fei_number is None
    assert canonical.crawl_time == FIXED_NOW
    assert canonical.id is None


def test_to_canonical_is_deterministic(mapper):
    record = SourceRecord(product_name="口罩", registration_number="R-9", category="Ⅱ")

    first = mapper.to_canonical(record)
    second = mapper.to_canonical(record)

    assert first == second


def test_to_canonical_of_none_is_none(mapper):
    assert mapper.to_canonical(None) is None


def test_risk_level_comes_from_config_not_record():
    config = RegistryConfig(risk_level=RiskLevel.HIGH)
    canonical = FieldMapper(config, clock=lambda: FIXED_NOW).to_canonical(
        SourceRecord(registration_number="R-1", category="Ⅰ")
    )

    assert canonical.risk_level is RiskLevel.HIGH
    assert canonical.risk_class == "Class I device"


def test_field_mapping_reflects_configured_constants():
    mapping = FieldMapper().field_mapping()

    assert mapping["manufacturer_re"] == "manufacturer_name"
    assert mapping["fixed CN_NMPA"] == "data_source"
    assert mapping["fixed MEDIUM"] == "risk_level"
    assert mapping["current time"] == "crawl_time"

    custom = FieldMapper(RegistryConfig(data_source="CN_TEST")).field_mapping()
    assert custom["fixed CN_TEST"] == "data_source"
    assert "fixed CN_NMPA" not in custom
