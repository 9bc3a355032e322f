"""Parsing utilities for registry payloads.

Bulk dumps of the registry listing are often saved straight out of a chat
tool or a browser, so the JSON document may arrive wrapped in Markdown code
fences, ``<pre>``/``<code>`` markup, or surrounded by explanatory prose. The
helpers here peel those layers off and turn the remaining ``{list, total}``
envelope into :class:`SourceRecord` objects without ever raising.
"""

from __future__ import annotations

import json
import re
from typing import Any, List, Optional

from bs4 import BeautifulSoup

from .logging_config import get_logger
from .models import SourcePage, SourceRecord

logger = get_logger("parser_utils")

_CODE_FENCE = re.compile(r"```[A-Za-z0-9_-]*")
_HTML_TAG = re.compile(r"</?[A-Za-z][A-Za-z0-9]*(\s[^<>]*)?/?>")


def strip_wrappers(text: str) -> str:
    """Remove code fences and HTML markup around a payload."""
    cleaned = _CODE_FENCE.sub("", text)
    if _HTML_TAG.search(cleaned):
        cleaned = BeautifulSoup(cleaned, "lxml").get_text()
    return cleaned.strip()


def extract_json_object(text: str) -> Optional[str]:
    """Return the span from the first ``{`` to the last ``}``, or None."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start : end + 1]


def sanitize_payload(text: Optional[str]) -> Optional[str]:
    """Strip wrappers and excise the embedded JSON object."""
    if not text or not text.strip():
        return None
    return extract_json_object(strip_wrappers(text))


def parse_envelope(payload: Any) -> SourcePage:
    """Convert a decoded ``{list: [...], total: N}`` object into a page."""
    if not isinstance(payload, dict):
        return SourcePage.empty("response is not a JSON object")

    data_list = payload.get("list")
    if data_list is None:
        data_list = payload.get("data")
        if isinstance(data_list, dict):
            data_list = data_list.get("list")
    if not isinstance(data_list, list):
        return SourcePage.empty("missing record list in payload")

    records: List[SourceRecord] = []
    dropped = 0
    for item in data_list:
        if not isinstance(item, dict):
            dropped += 1
            continue
        records.append(SourceRecord.from_dict(item))
    if dropped:
        logger.warning(f"Dropped {dropped} non-object entries from record list")

    try:
        total = int(payload.get("total") or len(records))
    except (TypeError, ValueError):
        total = len(records)

    return SourcePage(records=records, total=total)


def parse_listing(text: Optional[str]) -> SourcePage:
    """Parse raw text (possibly wrapped) into a page; failures set ``error_message``."""
    if text is None or not text.strip():
        return SourcePage.empty("empty content")

    document = sanitize_payload(text)
    if document is None:
        return SourcePage.empty("no JSON object found in content")

    try:
        payload = json.loads(document)
    except json.JSONDecodeError as exc:
        logger.error(f"Failed to decode registry payload: {exc}")
        return SourcePage.empty(f"invalid JSON: {exc}")

    return parse_envelope(payload)
