"""Tier-based context assembly for targeted regeneration.

Given the path of one field and a tier, build the tagged context an LLM needs
to regenerate only that field. Tiers trade completeness for size:

- **atomic**: the target field alone.
- **local**: the target plus the other fields of the object that owns it.
- **structural**: local, plus the section (title, objectives) and the
  previous/next lesson when the target sits inside a lesson.
- **global**: analysis summary and course structure overview.

Atomic and local contexts are always trimmed to fit strictly under their
budget. Structural and global budgets are advisory: an oversized course is
reported (and logged), not cut, so the caller can pick a bigger model or trim
on its own terms.
"""

from __future__ import annotations

import html
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import MissingSourceDataError, UnknownTierError
from .models import (
    TIER_ATOMIC,
    TIER_GLOBAL,
    TIER_LOCAL,
    TIER_STRUCTURAL,
    TIERS,
    ContextAssemblyResult,
    ContextMetadata,
    DynamicContext,
    StaticContext,
)
from .paths import format_path, get_field_value, parse_indices, parse_path, resolve_segments, split_owner
from .tokens import TokenEstimator

logger = logging.getLogger(__name__)

# Token budgets per tier: target share, surrounding share, total.
TIER_TOKEN_BUDGETS: Dict[str, Dict[str, int]] = {
    TIER_ATOMIC: {"target": 200, "context": 100, "total": 300},
    TIER_LOCAL: {"target": 500, "context": 500, "total": 1000},
    TIER_STRUCTURAL: {"target": 1000, "context": 1500, "total": 2500},
    TIER_GLOBAL: {"target": 2000, "context": 3000, "total": 5000},
}

# Tiers whose budget is a hard cap rather than advisory.
HARD_BUDGET_TIERS = frozenset({TIER_ATOMIC, TIER_LOCAL})

# The analysis stage resolves block paths against the analysis record;
# every other stage resolves against the course structure.
STAGE_ANALYSIS = "stage_4"
STAGE_STRUCTURE = "stage_5"

ROOT_PATH = "$"
TRUNCATION_MARKER = "…[truncated]"
TARGET_PLACEHOLDER = "…[target]"
MIN_TRIM_CHARS = 16


@dataclass
class ContextBlock:
    """One tagged fragment of the context string.

    ``trim_order`` ranks blocks for truncation under a hard budget (lowest
    trimmed first); ``None`` marks a block that is never trimmed.
    """

    tag: str
    body: str
    attrs: Dict[str, str] = field(default_factory=dict)
    block_ids: List[str] = field(default_factory=list)
    trim_order: Optional[int] = None

    def render(self) -> str:
        attr_text = "".join(f' {key}="{html.escape(str(value), quote=True)}"' for key, value in self.attrs.items())
        if self.body:
            return f"<{self.tag}{attr_text}>\n{self.body}\n</{self.tag}>"
        return f"<{self.tag}{attr_text}>\n</{self.tag}>"


def build_context_string(tier: str, parts: List[str]) -> str:
    """Wrap rendered fragments in the ``regeneration_context`` envelope."""
    body = "\n\n".join(part for part in parts if part)
    return f'<regeneration_context tier="{tier}">\n{body}\n</regeneration_context>'


def _to_json(value: Any) -> str:
    if value is None:
        return ""
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def _dedupe(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


# ===================================================================
# Block builders
# ===================================================================


def _target_block(data: Any, block_path: str) -> Tuple[Any, ContextBlock]:
    target = get_field_value(data, block_path)
    block = ContextBlock(
        tag="target_field",
        body=_to_json(target),
        attrs={"path": block_path},
        block_ids=[block_path],
        trim_order=1,
    )
    return target, block


def _parent_block(data: Any, block_path: str) -> ContextBlock:
    owner_segments, key = split_owner(block_path)
    tail = parse_path(block_path)[len(owner_segments) + 1:]
    owner = resolve_segments(data, owner_segments)
    siblings: Dict[str, Any] = {}
    if isinstance(owner, dict):
        siblings = {k: v for k, v in owner.items() if k != key}
        items = owner.get(key)
        # A single list element keeps its list, with the target slot marked.
        if len(tail) == 1 and isinstance(tail[0], int) and isinstance(items, list):
            siblings[key] = [TARGET_PLACEHOLDER if i == tail[0] else item for i, item in enumerate(items)]
    owner_path = format_path(owner_segments) or ROOT_PATH
    return ContextBlock(
        tag="parent_object",
        body=_to_json(siblings),
        attrs={"path": owner_path},
        block_ids=[owner_path],
        trim_order=0,
    )


def _section_blocks(structure: Mapping[str, Any], block_path: str) -> List[ContextBlock]:
    section_idx, lesson_idx = parse_indices(block_path)
    if section_idx is None:
        return []
    sections = structure.get("sections") or []
    if not 0 <= section_idx < len(sections):
        return []
    section = sections[section_idx]

    objectives = [f"  {n}. {obj}" for n, obj in enumerate(section.get("learning_objectives") or [], 1)]
    body = "\n".join(
        [
            f"<section_title>{section.get('section_title') or ''}</section_title>",
            "<learning_objectives>",
            *objectives,
            "</learning_objectives>",
        ]
    )
    blocks = [
        ContextBlock(
            tag="section_context",
            body=body,
            attrs={"index": str(section_idx)},
            block_ids=[
                f"sections[{section_idx}].section_title",
                f"sections[{section_idx}].learning_objectives",
            ],
        )
    ]

    if lesson_idx is None:
        return blocks

    lessons = section.get("lessons") or []
    for tag, idx in (("previous_lesson", lesson_idx - 1), ("next_lesson", lesson_idx + 1)):
        if not 0 <= idx < len(lessons):
            continue
        neighbour = lessons[idx]
        blocks.append(
            ContextBlock(
                tag=tag,
                body=(
                    f"<lesson_title>{neighbour.get('lesson_title') or ''}</lesson_title>\n"
                    f"<key_topics>{_text(neighbour.get('key_topics'))}</key_topics>"
                ),
                block_ids=[f"sections[{section_idx}].lessons[{idx}]"],
            )
        )
    return blocks


def _analysis_block(analysis: Mapping[str, Any]) -> ContextBlock:
    topic = analysis.get("topic_analysis") or {}
    strategy = analysis.get("pedagogical_strategy") or {}
    body = "\n".join(
        [
            f"<determined_topic>{_text(topic.get('determined_topic'))}</determined_topic>",
            f"<key_concepts>{_text(topic.get('key_concepts'))}</key_concepts>",
            f"<target_audience>{_text(topic.get('target_audience'))}</target_audience>",
            f"<teaching_style>{_text(strategy.get('teaching_style'))}</teaching_style>",
        ]
    )
    return ContextBlock(
        tag="analysis_summary",
        body=body,
        block_ids=[
            "topic_analysis.determined_topic",
            "topic_analysis.target_audience",
            "topic_analysis",
            "pedagogical_strategy",
        ],
    )


def _structure_block(structure: Mapping[str, Any]) -> ContextBlock:
    sections = structure.get("sections") or []
    overview = [
        f"  {n}. {section.get('section_title') or ''} ({len(section.get('lessons') or [])} lessons)"
        for n, section in enumerate(sections, 1)
    ]
    body = "\n".join(
        [
            f"<course_title>{_text(structure.get('course_title'))}</course_title>",
            f"<target_audience>{_text(structure.get('target_audience'))}</target_audience>",
            "<sections_overview>",
            *overview,
            "</sections_overview>",
        ]
    )
    return ContextBlock(
        tag="course_structure",
        body=body,
        block_ids=["course_title", "target_audience", "sections"],
    )


# ===================================================================
# Assembler
# ===================================================================


class ContextAssembler:
    """Builds regeneration contexts; stateless apart from its token estimator."""

    def __init__(self, estimator: Optional[TokenEstimator] = None) -> None:
        self.estimator = estimator or TokenEstimator()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def assemble(
        self,
        course_id: str,
        stage_id: str,
        block_path: str,
        tier: str,
        analysis: Optional[Mapping[str, Any]] = None,
        structure: Optional[Mapping[str, Any]] = None,
    ) -> ContextAssemblyResult:
        logger.debug(
            "Assembling context course=%s stage=%s path=%s tier=%s", course_id, stage_id, block_path, tier,
        )
        data = self._source_for(stage_id, analysis, structure)
        if tier not in TIERS:
            raise UnknownTierError(tier)

        target, blocks = self._tier_blocks(tier, data, block_path, analysis, structure, course_overview=True)
        budget = TIER_TOKEN_BUDGETS[tier]["total"]

        if tier in HARD_BUDGET_TIERS:
            text, tokens = self._fit_to_budget(tier, blocks, budget)
        else:
            text = build_context_string(tier, [b.render() for b in blocks])
            tokens = self.estimator.estimate(text)
            if tokens > budget:
                logger.warning(
                    "Context for %s (%s tier) is %d tokens, over the advisory budget of %d",
                    block_path, tier, tokens, budget,
                )

        blocks_included = _dedupe([block_id for block in blocks for block_id in block.block_ids])
        logger.debug("Context assembled: %d tokens / %d budget, %d blocks", tokens, budget, len(blocks_included))

        return ContextAssemblyResult(
            target_content=target,
            surrounding_context=text,
            token_estimate=tokens,
            metadata=ContextMetadata(tier=tier, blocks_included=blocks_included, token_budget=budget),
        )

    def assemble_static(
        self,
        analysis: Optional[Mapping[str, Any]] = None,
        structure: Optional[Mapping[str, Any]] = None,
    ) -> StaticContext:
        """Course-level context that does not change between requests (cacheable)."""
        blocks: List[ContextBlock] = []
        if analysis is not None:
            blocks.append(_analysis_block(analysis))
        if structure is not None:
            blocks.append(_structure_block(structure))
        content = "\n\n".join(block.render() for block in blocks)
        return StaticContext(content=content, token_estimate=self.estimator.estimate(content))

    def assemble_dynamic(
        self,
        stage_id: str,
        block_path: str,
        tier: str,
        analysis: Optional[Mapping[str, Any]] = None,
        structure: Optional[Mapping[str, Any]] = None,
    ) -> DynamicContext:
        """Request-specific context (target field, owner, neighbours); never cache."""
        data = self._source_for(stage_id, analysis, structure)
        if tier not in TIERS:
            raise UnknownTierError(tier)
        _, blocks = self._tier_blocks(tier, data, block_path, analysis, structure, course_overview=False)
        content = "\n\n".join(block.render() for block in blocks)
        return DynamicContext(content=content, token_estimate=self.estimator.estimate(content))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _source_for(
        stage_id: str,
        analysis: Optional[Mapping[str, Any]],
        structure: Optional[Mapping[str, Any]],
    ) -> Mapping[str, Any]:
        data = analysis if stage_id == STAGE_ANALYSIS else structure
        if data is None:
            raise MissingSourceDataError(stage_id)
        return data

    @staticmethod
    def _tier_blocks(
        tier: str,
        data: Mapping[str, Any],
        block_path: str,
        analysis: Optional[Mapping[str, Any]],
        structure: Optional[Mapping[str, Any]],
        course_overview: bool,
    ) -> Tuple[Any, List[ContextBlock]]:
        target, target_block = _target_block(data, block_path)
        blocks: List[ContextBlock] = []

        if tier == TIER_STRUCTURAL and structure is not None:
            blocks.extend(_section_blocks(structure, block_path))
        if tier == TIER_GLOBAL and course_overview:
            if analysis is not None:
                blocks.append(_analysis_block(analysis))
            if structure is not None:
                blocks.append(_structure_block(structure))
        if tier in (TIER_LOCAL, TIER_STRUCTURAL):
            blocks.append(_parent_block(data, block_path))

        blocks.append(target_block)
        return target, blocks

    def _fit_to_budget(self, tier: str, blocks: List[ContextBlock], budget: int) -> Tuple[str, int]:
        """Trim trimmable blocks until the estimate is strictly under *budget*."""
        text = build_context_string(tier, [b.render() for b in blocks])
        tokens = self.estimator.estimate(text)
        if tokens < budget:
            return text, tokens

        trimmable = sorted((b for b in blocks if b.trim_order is not None), key=lambda b: b.trim_order)
        for block in trimmable:
            while tokens >= budget and block.body:
                block.body = self._shorten(block.body, text, tokens, budget)
                text = build_context_string(tier, [b.render() for b in blocks])
                tokens = self.estimator.estimate(text)
            if tokens < budget:
                break

        # Tags alone exceed the budget (e.g. a pathological path): shorten attribute values.
        for block in trimmable:
            for key in block.attrs:
                while tokens >= budget and block.attrs[key]:
                    block.attrs[key] = self._shorten(block.attrs[key], text, tokens, budget)
                    text = build_context_string(tier, [b.render() for b in blocks])
                    tokens = self.estimator.estimate(text)

        logger.debug("Truncated %s context to %d tokens (budget %d)", tier, tokens, budget)
        return text, tokens

    def _shorten(self, value: str, text: str, tokens: int, budget: int) -> str:
        overflow = math.ceil((tokens - budget + 1) * self.estimator.chars_per_token(text))
        keep = len(value) - max(overflow, MIN_TRIM_CHARS) - len(TRUNCATION_MARKER)
        return value[:keep] + TRUNCATION_MARKER if keep > 0 else ""


_default_assembler = ContextAssembler()


def assemble_context(
    course_id: str,
    stage_id: str,
    block_path: str,
    tier: str,
    analysis: Optional[Mapping[str, Any]] = None,
    structure: Optional[Mapping[str, Any]] = None,
) -> ContextAssemblyResult:
    """Assemble the regeneration context for *block_path* at *tier*.

    Raises:
        MissingSourceDataError: the record *stage_id* resolves against is absent.
        UnknownTierError: *tier* is not atomic, local, structural or global.

    Example::

        result = assemble_context("c-1", "stage_5", "sections[0].lessons[1].lesson_title",
                                  "structural", structure=course_structure)
        result.metadata.blocks_included
        # ['sections[0].section_title', 'sections[0].learning_objectives', ...]
    """
    return _default_assembler.assemble(course_id, stage_id, block_path, tier, analysis, structure)


def assemble_static_context(
    analysis: Optional[Mapping[str, Any]] = None,
    structure: Optional[Mapping[str, Any]] = None,
) -> StaticContext:
    return _default_assembler.assemble_static(analysis, structure)


def assemble_dynamic_context(
    stage_id: str,
    block_path: str,
    tier: str,
    analysis: Optional[Mapping[str, Any]] = None,
    structure: Optional[Mapping[str, Any]] = None,
) -> DynamicContext:
    return _default_assembler.assemble_dynamic(stage_id, block_path, tier, analysis, structure)
