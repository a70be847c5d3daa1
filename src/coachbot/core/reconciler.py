"""Turns a model reply with an embedded JSON block into structured records."""

import json
import logging
import re
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import httpx

from ..models.reply import GroundingRecord, StructuredReply

logger = logging.getLogger(__name__)

MAX_URL_LENGTH = 1000
MAX_RECORDS = 10
DEFAULT_NAME = "未知名稱"
UNKNOWN = "無"
MAP_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query="

FENCE = "```"
# A fence and its optional language tag; fences pair up in order of appearance
_FENCE_RE = re.compile(r"```([A-Za-z0-9_+-]*)")
JSON_LANGUAGES = ("", "json")


def build_search_url(name: str) -> str:
    return (MAP_SEARCH_URL + quote(name or DEFAULT_NAME, safe=""))[:MAX_URL_LENGTH]


def sanitize_map_url(url: Any, name: str) -> str:
    """Keep absolute http(s) URLs (percent-encoded); otherwise search by name."""
    if isinstance(url, str) and url.strip():
        try:
            parsed = httpx.URL(url.strip())
        except (httpx.InvalidURL, TypeError, ValueError):
            parsed = None
        if parsed is not None and parsed.scheme in ("http", "https") and parsed.host:
            safe_url = str(parsed)
            if len(safe_url) <= MAX_URL_LENGTH:
                return safe_url
    return build_search_url(name)


def _field(item: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None and value != "":
            return value
    return UNKNOWN


def to_record(item: Dict[str, Any]) -> GroundingRecord:
    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        name = DEFAULT_NAME
    name = name.strip()
    return GroundingRecord(
        name=name,
        rating=_field(item, "rating"),
        price=_field(item, "price"),
        highlight=_field(item, "highlight", "item"),
        map_url=sanitize_map_url(item.get("mapUrl") or item.get("map_url"), name),
    )


def find_json_block(raw_reply: str) -> Optional[Tuple[int, int, str]]:
    """Locate the first fenced block tagged ``json`` or left untagged.

    Returns the block's start and end offsets and its body. A closing fence
    may sit on the same line as the body, and blocks in other languages are
    skipped.
    """
    fences = list(_FENCE_RE.finditer(raw_reply))
    for opening, closing in zip(fences[::2], fences[1::2]):
        if opening.group(1).lower() in JSON_LANGUAGES:
            end = closing.start() + len(FENCE)
            return opening.start(), end, raw_reply[opening.end() : closing.start()]
    return None


def reconcile(raw_reply: Optional[str]) -> Optional[StructuredReply]:
    """Parse the first JSON-fenced array in a reply.

    Returns None when the reply should be shown verbatim as plain text.
    """
    if not raw_reply:
        return None

    block = find_json_block(raw_reply)
    if block is None:
        return None
    start, end, body = block

    try:
        items = json.loads(body)
    except json.JSONDecodeError as e:
        logger.warning(f"Structured block is not valid JSON, falling back to text: {e}")
        return None

    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        logger.warning("Structured block is not an array of objects, falling back to text")
        return None

    lead = (raw_reply[:start] + raw_reply[end:]).strip() or None
    records = [to_record(item) for item in items[:MAX_RECORDS]]
    if lead is None and not records:
        return None
    return StructuredReply(lead=lead, records=records)
