"""Tests for registry statistics."""

import sqlite3

import pytest

from src.nmpa_registry.database import RegistrationStore
from src.nmpa_registry.models import CanonicalRecord, SourceRecord
from src.nmpa_registry.statistics import StatisticsReporter, summarize_records


@pytest.fixture
def store(tmp_path):
    return RegistrationStore(db_path=str(tmp_path / "nmpa_registry.db"))


def _record(regno, data_source="CN_NMPA", device_class="Ⅱ", status="有效"):
    return CanonicalRecord(
        data_source=data_source,
        jd_country="CN",
        registration_number=regno,
        device_class=device_class,
        status_code=status,
    )


def test_conversion_statistics(store):
    store.save_all(
        [
            _record("R-1", device_class="Ⅲ"),
            _record("R-2", device_class="Ⅱ"),
            _record("R-3", device_class="Ⅱ", status="注销"),
            _record("K-1", data_source="US_FDA"),
            _record("J-1", data_source="JP_PMDA"),
        ]
    )

    stats = StatisticsReporter(store).conversion_statistics()

    assert stats["data_source"] == "CN_NMPA"
    assert stats["source_records"] == 3
    assert stats["total_records"] == 5
    assert stats["source_distribution"] == {"CN_NMPA": 3, "US_FDA": 1, "EU_EUDAMED": 0, "other": 1}
    assert stats["source_percentage"] == "60.00%"
    assert stats["risk_distribution"] == {"MEDIUM": 3}
    assert stats["by_device_class"] == {"Ⅱ": 2, "Ⅲ": 1}
    assert stats["by_status"] == {"有效": 2, "注销": 1}


def test_conversion_statistics_on_empty_store(store):
    stats = StatisticsReporter(store).conversion_statistics()

    assert stats["source_records"] == 0
    assert stats["total_records"] == 0
    assert stats["source_percentage"] == "0.00%"
    assert stats["source_distribution"]["other"] == 0


def test_conversion_statistics_reports_store_errors(store, monkeypatch):
    def broken(*args, **kwargs):
        raise sqlite3.OperationalError("no such table: device_registration_records")

    monkeypatch.setattr(store, "count_by_data_source", broken)

    stats = StatisticsReporter(store).conversion_statistics()

    assert stats == {
        "data_source": "CN_NMPA",
        "error": "no such table: device_registration_records",
    }


def test_summarize_records_groups_missing_values_as_unknown():
    records = [
        SourceRecord(category="Ⅲ", type="境内", province="上海市", product_state="有效", whether_yibao="是"),
        SourceRecord(category="Ⅲ", type="进口", product_state="有效"),
        SourceRecord(category="Ⅱ", type="境内", province="上海市", product_state="注销", whether_yibao="否"),
    ]

    summary = summarize_records(records)

    assert summary["total"] == 3
    assert summary["by_category"] == {"Ⅲ": 2, "Ⅱ": 1}
    assert summary["by_type"] == {"境内": 2, "进口": 1}
    assert summary["by_province"] == {"上海市": 2, "unknown": 1}
    assert summary["by_status"] == {"有效": 2, "注销": 1}
    assert summary["by_insurance"] == {"是": 1, "unknown": 1, "否": 1}
