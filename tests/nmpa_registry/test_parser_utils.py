"""Tests for registry payload sanitising and envelope parsing."""

from pathlib import Path

from src.nmpa_registry.parser_utils import (
    extract_json_object,
    parse_envelope,
    parse_listing,
    sanitize_payload,
    strip_wrappers,
)

FIXTURES = Path(__file__).parent / "fixtures"


def test_sanitize_payload_removes_fences_and_markup():
    wrapped = '```json\n<code>{"list":[],"total":0}</code>\n```'

    assert sanitize_payload(wrapped) == '{"list":[],"total":0}'


def test_sanitize_payload_drops_surrounding_prose():
    text = 'Here is the data: {"list": [], "total": 0} hope that helps'

    assert sanitize_payload(text) == '{"list": [], "total": 0}'


def test_sanitize_payload_returns_none_for_blank_input():
    assert sanitize_payload(None) is None
    assert sanitize_payload("   \n") is None


def test_strip_wrappers_leaves_plain_json_untouched():
    text = '  {"list": [{"product_name": "a < b"}]}  '

    assert strip_wrappers(text) == '{"list": [{"product_name": "a < b"}]}'


def test_extract_json_object_without_braces():
    assert extract_json_object("no json here") is None
    assert extract_json_object("} reversed {") is None


def test_parse_listing_reads_wrapped_dump():
    page = parse_listing((FIXTURES / "nmpa_bulk_dump.txt").read_text(encoding="utf-8"))

    assert page.ok
    assert page.total == 3
    assert [record.keyid for record in page.records] == ["a1", "a2", "a3"]
    assert page.records[0].category == "Ⅲ"
    assert page.records[0].manufacturer_re == "上海康德莱企业发展集团股份有限公司"


def test_parse_listing_reports_failures_without_raising():
    assert parse_listing("").error_message == "empty content"
    assert parse_listing("just words").error_message == "no JSON object found in content"

    broken = parse_listing('{"list": [ {"keyid": 1,, } ]}')
    assert not broken.ok
    assert broken.error_message.startswith("invalid JSON")
    assert broken.records == []


def test_parse_envelope_accepts_nested_data_list():
    page = parse_envelope({"data": {"list": [{"keyid": "x", "total_ignored": True}]}, "total": "7"})

    assert page.ok
    assert page.total == 7
    assert page.records[0].keyid == "x"


def test_parse_envelope_total_falls_back_to_record_count():
    page = parse_envelope({"list": [{"keyid": "1"}, {"keyid": "2"}]})

    assert page.total == 2


def test_parse_envelope_stringifies_scalar_fields():
    page = parse_envelope({"list": [{"keyid": 42, "whether_yibao": True, "city": None}]})

    record = page.records[0]
    assert record.keyid == "42"
    assert record.whether_yibao == "True"
    assert record.city is None


def test_parse_envelope_rejects_unexpected_shapes():
    assert parse_envelope([1, 2]).error_message == "response is not a JSON object"
    assert parse_envelope({"code": 401, "msg": "unauthorized"}).error_message == "missing record list in payload"
