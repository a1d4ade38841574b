"""Coarse script classification and language detection for course text.

Only the dominant *script* matters here: it picks the chars-per-token ratio
for token estimates and the label language for diff descriptions. This is a
character-set heuristic, not a language identifier.
"""

from __future__ import annotations

from typing import Any, Dict

SCRIPT_LATIN = "latin"
SCRIPT_CYRILLIC = "cyrillic"
SCRIPT_CJK = "cjk"
SCRIPT_OTHER = "other"

LANG_RU = "ru"
LANG_EN = "en"


def _char_script(ch: str) -> str:
    code = ord(ch)
    if code < 0x0250:
        return SCRIPT_LATIN
    if 0x0400 <= code <= 0x052F:
        return SCRIPT_CYRILLIC
    if (
        0x3040 <= code <= 0x30FF  # kana
        or 0x3400 <= code <= 0x4DBF
        or 0x4E00 <= code <= 0x9FFF
        or 0xAC00 <= code <= 0xD7AF  # hangul
    ):
        return SCRIPT_CJK
    return SCRIPT_OTHER


def script_counts(text: str) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for ch in text:
        if not ch.isalpha():
            continue
        script = _char_script(ch)
        counts[script] = counts.get(script, 0) + 1
    return counts


def dominant_script(text: str) -> str:
    """Return the script holding the most letters; ties favour Latin."""
    counts = script_counts(text or "")
    if not counts:
        return SCRIPT_LATIN
    order = (SCRIPT_LATIN, SCRIPT_CYRILLIC, SCRIPT_CJK, SCRIPT_OTHER)
    return max(order, key=lambda s: (counts.get(s, 0), -order.index(s)))


def flatten_text(content: Any) -> str:
    """Join the string parts of a scalar, list, or mapping into one text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, dict):
        return " ".join(v for v in content.values() if isinstance(v, str))
    if isinstance(content, (list, tuple)):
        return " ".join(item for item in content if isinstance(item, str))
    return ""


def detect_language(*contents: Any) -> str:
    """Detect ``ru`` or ``en`` from the first content that has any letters."""
    for content in contents:
        text = flatten_text(content)
        if script_counts(text):
            return LANG_RU if dominant_script(text) == SCRIPT_CYRILLIC else LANG_EN
    return LANG_EN
