"""Semantic diff between an original and a regenerated field value.

Classifies an edit as ``simplified``, ``expanded``, ``refined`` or
``restructured`` from two signals: the word-count ratio and the churn of
salient terms ("concepts"). Extraction is a deliberately light heuristic so
the same input always yields the same, explainable label.

Classification thresholds are module constants; boundary cases are decided by
a fixed rule order (see :func:`classify_change`), never by chance.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Iterable, List, Optional, Sequence, Set

from .bloom import BLOOM_VERBS, bloom_level, first_objective
from .language import LANG_RU, detect_language
from .models import (
    CHANGE_EXPANDED,
    CHANGE_REFINED,
    CHANGE_RESTRUCTURED,
    CHANGE_SIMPLIFIED,
    SemanticDiffResult,
)

logger = logging.getLogger(__name__)

# new/old word-count ratio at or above which content counts as grown
EXPANSION_RATIO = 1.3
# new/old word-count ratio at or below which content counts as shrunk
SIMPLIFICATION_RATIO = 0.7
# concept churn at or above which a same-size edit counts as a reorganisation
RESTRUCTURE_CHURN = 0.5
# length ratio (or its inverse) treated as an extreme rewrite for scoring
EXTREME_LENGTH_RATIO = 3.0
# churn band edges; each band crossed costs one alignment point
CHURN_PENALTY_BANDS = (0.1, 0.25, 0.5, 0.75)

MAX_ALIGNMENT = 5
MIN_ALIGNMENT = 1
MAX_REPORTED_CONCEPTS = 10
MIN_CONCEPT_LENGTH = 4

STOPWORDS: Set[str] = {
    # English
    "about", "above", "after", "again", "also", "among", "and", "being", "below", "between", "both",
    "can", "could", "does", "doing", "during", "each", "either", "from", "further", "have", "having",
    "here", "into", "just", "like", "more", "most", "much", "must", "only", "other", "over", "same",
    "should", "some", "such", "than", "that", "their", "them", "then", "there", "these", "they",
    "this", "those", "through", "under", "until", "very", "well", "were", "what", "when", "where",
    "which", "while", "will", "with", "within", "without", "would", "your", "yours", "using",
    "basic", "basics", "various", "different", "including", "include", "includes", "based",
    "students", "learners", "student", "learner", "able", "ability", "understanding",
    # Russian
    "также", "может", "могут", "чтобы", "этот", "этого", "этой", "этом", "эти", "этих", "которые",
    "который", "которая", "которое", "когда", "после", "перед", "между", "через", "более", "менее",
    "очень", "можно", "нужно", "только", "всех", "всего", "всей", "свой", "своих", "своей", "такие",
    "такой", "таких", "основные", "основы", "различные", "включая", "студенты", "студентов",
    "учащиеся", "будет", "будут", "должны", "при", "для", "без", "над", "под", "или",
}

_ACTION_VERBS: Set[str] = {verb for table in BLOOM_VERBS.values() for verbs in table.values() for verb in verbs}

_QUOTED_RE = re.compile(r"[\"«“]([^\"»”]+)[\"»”]")
_WORD_RE = re.compile(r"[^\W_][\w+#-]*")


# ===================================================================
# Content helpers
# ===================================================================


def _items(content: Any) -> List[str]:
    """String parts of a scalar, list, or mapping, in order."""
    if content is None:
        return []
    if isinstance(content, str):
        return [content]
    if isinstance(content, dict):
        return [v for v in content.values() if isinstance(v, str)]
    if isinstance(content, (list, tuple)):
        return [item for item in content if isinstance(item, str)]
    return []


def is_empty(content: Any) -> bool:
    """True when *content* has no non-empty string part (whitespace counts as content)."""
    return not any(_items(content))


def content_length(content: Any) -> int:
    """Word count across all string parts of *content*."""
    return sum(len(item.split()) for item in _items(content))


def _is_concept(word: str, raw: str) -> bool:
    if word.isdigit() or word in STOPWORDS or word in _ACTION_VERBS:
        return False
    if len(word) >= MIN_CONCEPT_LENGTH:
        return True
    # Short acronyms and technical tokens: API, SQL, C#, CI
    return len(raw) >= 2 and (raw.isupper() or "#" in raw or "+" in raw)


def extract_concepts(content: Any) -> List[str]:
    """Normalised salient terms of *content*, deduplicated in first-seen order."""
    seen: dict = {}
    for text in _items(content):
        for quoted in _QUOTED_RE.findall(text):
            term = quoted.strip().lower()
            if len(term) > 2:
                seen.setdefault(term, None)
        for raw in _WORD_RE.findall(text):
            raw = raw.rstrip("-")
            word = raw.lower()
            if _is_concept(word, raw):
                seen.setdefault(word, None)
    return list(seen)


def compare_concepts(original: Sequence[str], regenerated: Sequence[str]):
    original_set, regenerated_set = set(original), set(regenerated)
    added = [c for c in regenerated if c not in original_set]
    removed = [c for c in original if c not in regenerated_set]
    return added, removed


def concept_churn(original: Iterable[str], regenerated: Iterable[str]) -> float:
    original_set, regenerated_set = set(original), set(regenerated)
    union = original_set | regenerated_set
    if not union:
        return 0.0
    return len(original_set ^ regenerated_set) / len(union)


def length_ratio(original_len: int, regenerated_len: int) -> float:
    if original_len == 0:
        return math.inf if regenerated_len else 1.0
    return regenerated_len / original_len


# ===================================================================
# Classification and scoring
# ===================================================================


def classify_change(ratio: float, added: int, removed: int, churn: float, original_empty: bool = False) -> str:
    """Deterministic change label; earlier rules win.

    1. empty original with new content -> expanded
    2. grew and gained at least as many concepts as it lost -> expanded
    3. shrank and lost at least as many concepts as it gained -> simplified
    4. high concept churn -> restructured
    5. grew anyway -> expanded; shrank anyway -> simplified
    6. otherwise -> refined
    """
    if original_empty:
        return CHANGE_EXPANDED
    if ratio >= EXPANSION_RATIO and added >= removed:
        return CHANGE_EXPANDED
    if ratio <= SIMPLIFICATION_RATIO and removed >= added:
        return CHANGE_SIMPLIFIED
    if churn >= RESTRUCTURE_CHURN:
        return CHANGE_RESTRUCTURED
    if ratio >= EXPANSION_RATIO:
        return CHANGE_EXPANDED
    if ratio <= SIMPLIFICATION_RATIO:
        return CHANGE_SIMPLIFIED
    return CHANGE_REFINED


def alignment_score(ratio: float, churn: float) -> int:
    """1-5, higher means closer to the original intent."""
    score = MAX_ALIGNMENT - sum(1 for edge in CHURN_PENALTY_BANDS if churn >= edge)
    if ratio >= EXTREME_LENGTH_RATIO or ratio <= 1 / EXTREME_LENGTH_RATIO:
        score -= 1
    return max(MIN_ALIGNMENT, score)


def is_learning_objective_block(block_type: str) -> bool:
    block_type = (block_type or "").lower()
    return "objective" in block_type or "learning" in block_type


def bloom_level_preserved(original: Any, regenerated: Any, block_type: str, language: str) -> bool:
    if not is_learning_objective_block(block_type):
        return True

    original_text = first_objective(original)
    regenerated_text = first_objective(regenerated)
    if not original_text or not regenerated_text:
        return True

    # Two unlisted verbs share the unknown bucket; unknown never matches a known level.
    return bloom_level(original_text, language) == bloom_level(regenerated_text, language)


# ===================================================================
# Descriptions
# ===================================================================

_DESCRIPTIONS = {
    "en": {
        CHANGE_SIMPLIFIED: ("Simplified: removed {removed} concepts for clarity", "Simplified: improved clarity and readability"),
        CHANGE_EXPANDED: ("Expanded: added {added} new concepts", "Expanded: added additional details"),
        CHANGE_RESTRUCTURED: ("Restructured: reorganized content ({added} added, {removed} removed)",) * 2,
        CHANGE_REFINED: ("Refined: improved wording without changing meaning",) * 2,
    },
    "ru": {
        CHANGE_SIMPLIFIED: ("Упрощено: убрано концепций: {removed}, изложение стало понятнее", "Упрощено: улучшена ясность изложения"),
        CHANGE_EXPANDED: ("Расширено: добавлено новых концепций: {added}", "Расширено: добавлены дополнительные детали"),
        CHANGE_RESTRUCTURED: ("Реструктурировано: изменена организация содержания (добавлено {added}, убрано {removed})",) * 2,
        CHANGE_REFINED: ("Уточнено: улучшена формулировка без изменения смысла",) * 2,
    },
}


def describe_change(
    change_type: str,
    added: int,
    removed: int,
    language: str,
    llm_change_log: Optional[str] = None,
) -> str:
    """Localized one-line description, or *llm_change_log* verbatim when given.

    A change log that is empty or whitespace-only counts as not supplied and
    falls back to the generated description.
    """
    if isinstance(llm_change_log, str) and llm_change_log.strip():
        return llm_change_log

    templates = _DESCRIPTIONS[LANG_RU if language == LANG_RU else "en"][change_type]
    with_counts, without_counts = templates
    has_counts = {
        CHANGE_SIMPLIFIED: removed > 0,
        CHANGE_EXPANDED: added > 0,
    }.get(change_type, True)
    template = with_counts if has_counts else without_counts
    return template.format(added=added, removed=removed)


# ===================================================================
# Public API
# ===================================================================


def generate_semantic_diff(
    original: Any,
    regenerated: Any,
    field_path: str,
    block_type: str,
    llm_change_log: Optional[str] = None,
) -> SemanticDiffResult:
    """Describe how *regenerated* differs from *original*.

    Both sides may be a string or a list of strings (list fields such as
    learning objectives are compared as one pool of items).

    Example::

        diff = generate_semantic_diff(
            ["Explain closures, promises and generators in JavaScript"],
            "Explain closures.",
            "sections[0].learning_objectives",
            "learning_objectives",
        )
        diff.change_type      # 'simplified'
    """
    language = detect_language(regenerated, original)

    original_concepts = extract_concepts(original)
    regenerated_concepts = extract_concepts(regenerated)
    added, removed = compare_concepts(original_concepts, regenerated_concepts)
    churn = concept_churn(original_concepts, regenerated_concepts)

    ratio = length_ratio(content_length(original), content_length(regenerated))
    original_empty = is_empty(original) and not is_empty(regenerated)

    change_type = classify_change(ratio, len(added), len(removed), churn, original_empty=original_empty)
    score = alignment_score(ratio, churn)
    preserved = bloom_level_preserved(original, regenerated, block_type, language)
    description = describe_change(change_type, len(added), len(removed), language, llm_change_log)

    logger.debug(
        "Semantic diff for %s: %s (score=%d, churn=%.2f, ratio=%.2f, +%d/-%d concepts)",
        field_path, change_type, score, churn, ratio, len(added), len(removed),
    )

    return SemanticDiffResult(
        change_type=change_type,
        concepts_added=added[:MAX_REPORTED_CONCEPTS],
        concepts_removed=removed[:MAX_REPORTED_CONCEPTS],
        alignment_score=score,
        change_description=description,
        bloom_level_preserved=preserved,
    )
