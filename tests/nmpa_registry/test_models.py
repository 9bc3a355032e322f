"""Tests for search criteria and record models."""

from datetime import datetime

from src.nmpa_registry.models import CanonicalRecord, FetchResult, SearchCriteria, SourcePage, SourceRecord


def test_search_body_uses_upstream_keys():
    criteria = SearchCriteria(manufacturer="迈瑞", registration_number="20153", product_state="有效")

    assert criteria.to_search_body() == {
        "manufacturer_re": "迈瑞",
        "registration_number_remark": "20153",
        "product_state": "有效",
    }
    assert not criteria.is_empty()
    assert SearchCriteria().is_empty()


def test_criteria_matches_substrings_and_exact_fields():
    record = SourceRecord(
        product_name="一次性使用无菌注射器",
        manufacturer_re="上海康德莱企业发展集团股份有限公司",
        registration_number="国械注准20153140001",
        category="Ⅲ",
    )

    assert SearchCriteria(product_name="注射器").matches(record)
    assert SearchCriteria(manufacturer="康德莱", category="Ⅲ").matches(record)
    assert not SearchCriteria(category="Ⅱ").matches(record)
    assert not SearchCriteria(type="进口").matches(record)


def test_canonical_record_db_params():
    record = CanonicalRecord(
        data_source="CN_NMPA",
        jd_country="CN",
        registration_number="R-1",
        keywords=["syringe", "sterile"],
        crawl_time=datetime(2025, 1, 2, 3, 4, 5),
    )

    params = record.to_db_params()
    assert params["keywords"] == "syringe;sterile"
    assert params["crawl_time"] == "2025-01-02T03:04:05"
    assert params["risk_level"] == "MEDIUM"
    assert CanonicalRecord("CN_NMPA", "CN", "R-2").to_db_params()["keywords"] is None


def test_fetch_result_variants():
    page = SourcePage(records=[SourceRecord(keyid="1")], total=1)

    assert FetchResult.success(page).ok
    failed = FetchResult.failure("boom")
    assert not failed.ok
    assert failed.page is None
    assert not SourcePage.empty("bad").ok
