"""Tests for common.hashing module."""

from common.hashing import generate_fallback_guid


class TestGenerateFallbackGuid:
    def test_deterministic_output(self) -> None:
        result1 = generate_fallback_guid("https://example.com/rss", "Title", "2024-01-01T00:00:00+00:00")
        result2 = generate_fallback_guid("https://example.com/rss", "Title", "2024-01-01T00:00:00+00:00")
        assert result1 == result2

    def test_urn_prefixed_hex(self) -> None:
        result = generate_fallback_guid("https://example.com/rss", "Title")
        assert result.startswith("urn:sha256:")
        digest = result.removeprefix("urn:sha256:")
        assert len(digest) == 32
        assert all(c in "0123456789abcdef" for c in digest)

    def test_scoped_by_feed_url(self) -> None:
        result1 = generate_fallback_guid("https://a.example.com/rss", "Title")
        result2 = generate_fallback_guid("https://b.example.com/rss", "Title")
        assert result1 != result2

    def test_missing_parts_are_allowed(self) -> None:
        assert generate_fallback_guid("https://example.com/rss", None) == generate_fallback_guid(
            "https://example.com/rss", ""
        )
