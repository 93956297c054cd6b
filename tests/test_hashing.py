"""
Unit tests for content hashing and normalization.
"""

from competitor_monitor.utils.hashing import (
    canonical_json,
    extract_text_from_html,
    hash_content,
    hash_payload,
    normalize_content,
)


class TestHashing:
    """Test cases for hashing helpers."""

    def test_hash_content_is_sha256_hex(self):
        digest = hash_content("burger")

        assert len(digest) == 64
        assert digest == hash_content("burger")
        assert digest != hash_content("Burger")

    def test_canonical_json_sorts_keys(self):
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_hash_payload_ignores_key_order(self, sample_extracted_data):
        payload = sample_extracted_data.to_dict()
        reordered = {key: payload[key] for key in reversed(list(payload))}

        assert hash_payload(payload) == hash_payload(reordered)


class TestNormalization:
    """Test cases for text extraction and normalization."""

    def test_extract_text_drops_scripts_and_styles(self):
        html = """
        <html><head><style>.x { color: red }</style><script>var price = "$1";</script></head>
        <body><h1>Menu</h1>
        <p>Classic   Burger
        $10.00</p><noscript>Enable JS</noscript></body></html>
        """

        assert extract_text_from_html(html) == "Menu Classic Burger $10.00"

    def test_normalize_removes_volatile_tokens(self):
        html = (
            "<p>Updated 2024-01-01 at 10:30 pm</p>"
            "<p>Session 123e4567-e89b-12d3-a456-426614174000</p>"
            "<p>See /menu?utm_source=mail</p>"
            "<p>Classic Burger $10.00</p>"
        )

        assert normalize_content(html) == "updated at session see /menu classic burger $10.00"

    def test_cosmetic_changes_share_normalized_form(self):
        first = "<div><b>Classic Burger</b> $10.00 <i>as of 09:15</i></div>"
        second = "<section>CLASSIC BURGER   $10.00 as of 17:45:02</section>"

        assert normalize_content(first) == normalize_content(second)

    def test_price_changes_are_preserved(self):
        assert normalize_content("<p>Burger $10.00</p>") != normalize_content("<p>Burger $9.00</p>")
