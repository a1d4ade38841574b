"""Character-count token estimation keyed by the dominant script of the text."""

from __future__ import annotations

import math
from typing import Callable, Dict, Optional

from .language import SCRIPT_CJK, SCRIPT_CYRILLIC, SCRIPT_LATIN, SCRIPT_OTHER, dominant_script

# Average characters per token. Denser scripts pack fewer characters per token.
CHARS_PER_TOKEN: Dict[str, float] = {
    SCRIPT_LATIN: 4.0,
    SCRIPT_CYRILLIC: 3.0,
    SCRIPT_CJK: 1.5,
    SCRIPT_OTHER: 3.0,
}


class TokenEstimator:
    """Estimates token counts from character length.

    The strategy is a pair of a *classifier* (text -> script key) and a
    table of chars-per-token ratios for each key, so callers can swap either
    one without touching the call sites::

        estimator = TokenEstimator(ratios={**CHARS_PER_TOKEN, "latin": 3.5})
        estimator.estimate("Hello world")
    """

    def __init__(
        self,
        ratios: Optional[Dict[str, float]] = None,
        classifier: Callable[[str], str] = dominant_script,
    ) -> None:
        self.ratios = dict(ratios or CHARS_PER_TOKEN)
        self.classifier = classifier

    def chars_per_token(self, text: str) -> float:
        script = self.classifier(text)
        return self.ratios.get(script, self.ratios.get(SCRIPT_OTHER, 3.0))

    def estimate(self, text: str) -> int:
        if not text:
            return 0
        return math.ceil(len(text) / self.chars_per_token(text))

    def max_chars(self, tokens: int) -> int:
        """Longest text guaranteed to estimate at or below *tokens* for any script."""
        floor_ratio = min(self.ratios.values())
        return max(0, int(tokens * floor_ratio))


_default_estimator = TokenEstimator()


def estimate_tokens(text: str) -> int:
    """Estimate tokens for *text* with the default script-keyed ratios."""
    return _default_estimator.estimate(text)
