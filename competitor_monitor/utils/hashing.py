"""
Content hashing and normalization helpers.
"""

import hashlib
import json
import re
from typing import Any

from bs4 import BeautifulSoup

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
_CLOCK_TIME = re.compile(r"\d{1,2}:\d{2}(:\d{2})?(\s?[ap]m)?", re.IGNORECASE)
_UUID = re.compile(
    r"\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b",
    re.IGNORECASE,
)
_QUERY_STRING = re.compile(r"\?[^\s\"'<>]*")
_WHITESPACE = re.compile(r"\s+")


def hash_content(content: str) -> str:
    """SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def canonical_json(payload: Any) -> str:
    """Serialize to JSON with sorted keys and no insignificant whitespace."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def hash_payload(payload: Any) -> str:
    """Stable hash of a JSON-compatible structure."""
    return hash_content(canonical_json(payload))


def extract_text_from_html(html: str) -> str:
    """Return the visible text of an HTML document, whitespace collapsed."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(["script", "style", "noscript", "template"]):
        element.decompose()

    text = soup.get_text(separator=" ")
    return _WHITESPACE.sub(" ", text).strip()


def normalize_content(html: str) -> str:
    """Reduce a page to a form that is stable across cosmetic changes.

    Markup, dates, clock times, UUIDs, query strings, case and whitespace
    are discarded so that near-identical renders share a cache key.
    """
    text = extract_text_from_html(html)
    text = _ISO_DATE.sub("", text)
    text = _CLOCK_TIME.sub("", text)
    text = _UUID.sub("", text)
    text = _QUERY_STRING.sub("", text)
    return _WHITESPACE.sub(" ", text).strip().lower()
