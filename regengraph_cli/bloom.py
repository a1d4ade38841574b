"""Bloom's taxonomy level lookup from a learning objective's leading verb."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from .language import LANG_RU

REMEMBER = "remember"
UNDERSTAND = "understand"
APPLY = "apply"
ANALYZE = "analyze"
EVALUATE = "evaluate"
CREATE = "create"
UNKNOWN = "unknown"

# Lowest to highest cognitive complexity. Lookup walks this order, so a verb
# listed under two levels resolves to the lower one.
BLOOM_LEVELS: Tuple[str, ...] = (REMEMBER, UNDERSTAND, APPLY, ANALYZE, EVALUATE, CREATE)

BLOOM_VERBS: Dict[str, Dict[str, List[str]]] = {
    "en": {
        REMEMBER: ["define", "list", "recall", "recognize", "identify", "name", "state", "describe",
                   "label", "match", "select", "reproduce", "cite", "memorize"],
        UNDERSTAND: ["explain", "summarize", "paraphrase", "classify", "compare", "contrast", "interpret",
                     "exemplify", "illustrate", "infer", "predict", "discuss"],
        APPLY: ["execute", "implement", "solve", "use", "demonstrate", "operate", "calculate", "complete",
                "show", "examine", "modify", "apply"],
        ANALYZE: ["analyze", "analyse", "differentiate", "organize", "attribute", "deconstruct", "distinguish",
                  "experiment", "question", "test", "investigate"],
        EVALUATE: ["evaluate", "check", "critique", "judge", "hypothesize", "argue", "defend", "support",
                   "assess", "rate", "recommend"],
        CREATE: ["create", "design", "construct", "plan", "produce", "invent", "develop", "formulate",
                 "assemble", "compose", "devise", "build"],
    },
    "ru": {
        REMEMBER: ["определить", "перечислить", "вспомнить", "распознать", "идентифицировать", "назвать",
                   "описать", "обозначить", "сопоставить", "выбрать", "воспроизвести", "цитировать"],
        UNDERSTAND: ["объяснить", "резюмировать", "перефразировать", "классифицировать", "сравнить",
                     "противопоставить", "интерпретировать", "проиллюстрировать", "предсказать", "обсудить",
                     "понимать", "понять"],
        APPLY: ["выполнить", "реализовать", "решить", "использовать", "применить", "применять",
                "продемонстрировать", "оперировать", "вычислить", "завершить", "показать",
                "модифицировать"],
        ANALYZE: ["анализировать", "проанализировать", "дифференцировать", "организовать", "атрибутировать",
                  "деконструировать", "различить", "изучить", "исследовать", "экспериментировать",
                  "тестировать"],
        EVALUATE: ["оценить", "оценивать", "проверить", "критиковать", "судить", "аргументировать", "защитить",
                   "поддержать", "рекомендовать"],
        CREATE: ["создать", "создавать", "спроектировать", "сконструировать", "спланировать", "произвести",
                 "изобрести", "разработать", "сформулировать", "собрать", "составить", "придумать"],
    },
}

_PUNCTUATION = ".,;:!?()[]\"'«»"


def extract_action_verb(text: str, language: str) -> str:
    """First word of *text*, lowercased; Russian reflexive ``-ся`` is dropped."""
    tokens = (text or "").strip().lower().split()
    if not tokens:
        return ""
    verb = tokens[0].strip(_PUNCTUATION)
    if language == LANG_RU and verb.endswith("ся"):
        verb = verb[:-2]
    return verb


def bloom_level(text: str, language: str) -> str:
    """Map an objective to its Bloom level, or ``unknown`` if the verb is not listed."""
    verb = extract_action_verb(text, language)
    if not verb:
        return UNKNOWN
    tables = [BLOOM_VERBS.get(language, {})] + [t for lang, t in BLOOM_VERBS.items() if lang != language]
    for table in tables:
        for level in BLOOM_LEVELS:
            if verb in table.get(level, ()):
                return level
    return UNKNOWN


def first_objective(content: object) -> Optional[str]:
    if isinstance(content, str):
        return content
    if isinstance(content, (list, tuple)):
        for item in content:
            if isinstance(item, str) and item.strip():
                return item
    return None
