"""Tests for short codes and share links."""

import pytest

from lp_api.deployment.short_codes import (
    BASE62_ALPHABET,
    build_share_links,
    build_short_url,
    extract_short_code,
    generate_qr_code_url,
    generate_short_code,
    to_base62,
)


class TestBase62:
    """Test base62 encoding."""

    def test_known_values(self):
        assert to_base62(0) == "0"
        assert to_base62(61) == "z"
        assert to_base62(62) == "10"
        assert to_base62(62**2 + 1) == "101"

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_base62(-1)


class TestGenerateShortCode:
    """Test short code generation."""

    def test_deterministic_for_same_inputs(self):
        assert generate_short_code("project-1", 1_000) == generate_short_code("project-1", 1_000)

    def test_timestamp_changes_code(self):
        assert generate_short_code("project-1", 1_000) != generate_short_code("project-1", 2_000)

    def test_repeated_issue_yields_new_codes(self):
        codes = {generate_short_code("project-1") for _ in range(1000)}
        assert len(codes) == 1000

    def test_code_alphabet_and_length(self):
        for timestamp in range(200):
            code = generate_short_code("abc", timestamp)
            assert len(code) >= 6
            assert all(ch in BASE62_ALPHABET for ch in code)

    def test_codes_vary_between_projects(self):
        codes = {generate_short_code(f"project-{i}", 42) for i in range(500)}
        assert len(codes) == 500


class TestShortUrls:
    """Test short URL building and parsing."""

    def test_build_short_url(self):
        assert build_short_url("aB3xY9", "https://example.com/") == "https://example.com/s/aB3xY9"
        assert build_short_url("aB3xY9", "https://example.com") == "https://example.com/s/aB3xY9"

    def test_extract_short_code(self):
        assert extract_short_code("https://example.com/s/aB3xY9") == "aB3xY9"
        assert extract_short_code("https://example.com/p/aB3xY9") is None
        assert extract_short_code("https://example.com/s/aB3-xY9") is None

    def test_extract_inverts_build(self):
        code = generate_short_code("p", 7)
        assert extract_short_code(build_short_url(code, "https://example.com")) == code


class TestShareLinks:
    """Test share link formatting."""

    def test_share_links(self):
        links = build_share_links("https://user.github.io/repo", "https://example.com/s/abc123")

        assert links["full"] == "https://user.github.io/repo"
        assert links["short"] == "https://example.com/s/abc123"
        assert links["qr"] == generate_qr_code_url("https://example.com/s/abc123")
        assert "https%3A%2F%2Fexample.com%2Fs%2Fabc123" in links["qr"]
        assert links["twitter_share"].startswith("https://twitter.com/intent/tweet?text=")
        assert "https%3A%2F%2Fexample.com%2Fs%2Fabc123" in links["linkedin_share"]
