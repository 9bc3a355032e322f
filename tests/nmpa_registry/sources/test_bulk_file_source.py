"""Tests for the bulk dump reader."""

from pathlib import Path

import pytest

from src.nmpa_registry.models import SearchCriteria
from src.nmpa_registry.sources.bulk_file import BulkFileSource

FIXTURES = Path(__file__).parent.parent / "fixtures"
DUMP = FIXTURES / "nmpa_bulk_dump.txt"


def test_load_parses_wrapped_dump():
    page = BulkFileSource(DUMP).load()

    assert page.ok
    assert page.total == 3
    assert [record.registration_number for record in page.records] == [
        "国械注准20153140001",
        "沪械注准20182640123",
        "",
    ]


def test_load_missing_file(tmp_path):
    page = BulkFileSource(tmp_path / "absent.txt").load()

    assert not page.ok
    assert page.error_message.startswith("data file not found")
    assert page.records == []


def test_load_empty_file(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("  \n\n", encoding="utf-8")

    page = BulkFileSource(path).load()

    assert page.error_message.startswith("data file is empty")


def test_load_prose_without_json(tmp_path):
    path = tmp_path / "prose.txt"
    path.write_text("The registry query returned nothing today.", encoding="utf-8")

    page = BulkFileSource(path).load()

    assert page.error_message == "no JSON object found in content"


def test_fetch_page_serves_dump_as_single_page():
    source = BulkFileSource(DUMP)

    first = source.fetch_page(None, 1)
    second = source.fetch_page(None, 2)

    assert first.ok and len(first.page.records) == 3
    assert second.ok and second.page.records == []


def test_fetch_page_filters_locally():
    result = BulkFileSource(DUMP).fetch_page(SearchCriteria(category="Ⅱ"), 1)

    assert result.ok
    assert [record.keyid for record in result.page.records] == ["a2"]
    assert result.page.total == 1


def test_fetch_page_failure_and_invalid_page(tmp_path):
    source = BulkFileSource(tmp_path / "absent.txt")

    result = source.fetch_page(None, 1)
    assert not result.ok
    assert "data file not found" in result.error

    with pytest.raises(ValueError):
        source.fetch_page(None, 0)
