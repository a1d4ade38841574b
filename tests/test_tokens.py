"""Tests for script detection and token estimation."""

import pytest

from regengraph_cli.language import (
    LANG_EN,
    LANG_RU,
    SCRIPT_CJK,
    SCRIPT_CYRILLIC,
    SCRIPT_LATIN,
    detect_language,
    dominant_script,
    flatten_text,
)
from regengraph_cli.tokens import CHARS_PER_TOKEN, TokenEstimator, estimate_tokens


class TestLanguage:
    """Tests for dominant script and language detection."""

    @pytest.mark.parametrize(
        "text, script",
        [
            ("Hello world", SCRIPT_LATIN),
            ("Привет, мир", SCRIPT_CYRILLIC),
            ("你好世界", SCRIPT_CJK),
            ("Изучаем основы TypeScript", SCRIPT_CYRILLIC),
            ("", SCRIPT_LATIN),
            ("12345 !!", SCRIPT_LATIN),
        ],
    )
    def test_dominant_script(self, text, script):
        assert dominant_script(text) == script

    def test_flatten_text(self):
        assert flatten_text(["a", 1, "b"]) == "a b"
        assert flatten_text({"x": "a", "y": 2}) == "a"
        assert flatten_text(None) == ""

    def test_detect_language_prefers_first_content_with_letters(self):
        """The regenerated text decides; the original is only a fallback."""
        assert detect_language("Объяснить замыкания", "Explain closures") == LANG_RU
        assert detect_language("", ["Объяснить замыкания"]) == LANG_RU
        assert detect_language("Explain closures", "Объяснить") == LANG_EN
        assert detect_language("", None) == LANG_EN


class TestTokenEstimator:
    """Tests for chars-per-token estimation."""

    def test_ratios(self):
        assert CHARS_PER_TOKEN == {"latin": 4.0, "cyrillic": 3.0, "cjk": 1.5, "other": 3.0}

    def test_empty_is_zero(self):
        assert estimate_tokens("") == 0

    def test_latin(self):
        """40 Latin characters at 4 chars/token."""
        assert estimate_tokens("abcd" * 10) == 10

    def test_rounds_up(self):
        assert estimate_tokens("abcde") == 2

    def test_cyrillic_is_denser(self):
        """30 Cyrillic characters at 3 chars/token."""
        assert estimate_tokens("абв" * 10) == 10
        assert estimate_tokens("абвг" * 10) > estimate_tokens("abcd" * 10)

    def test_cjk(self):
        assert estimate_tokens("中文" * 3) == 4

    def test_custom_ratios(self):
        estimator = TokenEstimator(ratios={**CHARS_PER_TOKEN, "latin": 2.0})

        assert estimator.estimate("abcd" * 10) == 20

    def test_custom_classifier(self):
        """The classifier picks the ratio key."""
        estimator = TokenEstimator(classifier=lambda text: "cjk")

        assert estimator.estimate("abc") == 2

    def test_max_chars_fits_any_script(self):
        """Text cut to max_chars(n) never estimates above n."""
        estimator = TokenEstimator()
        limit = estimator.max_chars(100)

        for sample in ("a", "я", "中"):
            assert estimator.estimate(sample * limit) <= 100
