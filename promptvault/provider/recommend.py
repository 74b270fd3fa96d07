"""
Task-based model ranking over a catalogue snapshot.

All functions are pure: the same input list and task always yield the
same output, and ties keep their input order (`sorted` is stable).
"""

from __future__ import annotations

from typing import Iterable, Sequence

from promptvault.schemas.model import Capability, NormalizedModel, RecommendTask

# Earlier entries rank higher.
INSTRUCTION_KEYWORDS: tuple[str, ...] = (
    "claude",
    "gpt-4o",
    "mistral-large",
    "command-a",
    "gemini-1.5-pro",
    "gemini-2",
)


def filter_by_capability(
    models: Iterable[NormalizedModel], capability: Capability | str
) -> list[NormalizedModel]:
    cap = Capability(capability)
    return [m for m in models if m.has_capability(cap)]


def sort_by_cost_tier(models: Iterable[NormalizedModel]) -> list[NormalizedModel]:
    return sorted(models, key=lambda m: m.cost_tier.rank)


def instruction_score(model_id: str) -> int:
    """First matching keyword wins; no match scores zero."""
    lower = model_id.lower()
    for index, keyword in enumerate(INSTRUCTION_KEYWORDS):
        if keyword in lower:
            return len(INSTRUCTION_KEYWORDS) - index
    return 0


def _is_reasoning_only(model: NormalizedModel) -> bool:
    return all(c is Capability.REASONING for c in model.capabilities)


def recommend(
    models: Sequence[NormalizedModel], task: RecommendTask | str
) -> list[NormalizedModel]:
    """
    Rank `models` for `task`.

    - generate: text-capable, not reasoning-only, cheapest tier first.
    - improve: text-capable, best instruction followers first.
    - vision: vision-capable only, input order.
    - research: web-search models first, then reasoning models without
      web search; everything else is dropped.
    """
    task = RecommendTask(task)
    candidates = [m for m in models if m.is_available]

    if task is RecommendTask.GENERATE:
        return sort_by_cost_tier(
            m
            for m in candidates
            if m.has_capability(Capability.TEXT) and not _is_reasoning_only(m)
        )

    if task is RecommendTask.IMPROVE:
        return sorted(
            (m for m in candidates if m.has_capability(Capability.TEXT)),
            key=lambda m: instruction_score(m.original_id),
            reverse=True,
        )

    if task is RecommendTask.VISION:
        return filter_by_capability(candidates, Capability.VISION)

    with_search = [m for m in candidates if m.has_capability(Capability.WEB_SEARCH)]
    with_reasoning = [
        m
        for m in candidates
        if not m.has_capability(Capability.WEB_SEARCH) and m.has_capability(Capability.REASONING)
    ]
    return with_search + with_reasoning


__all__ = [
    "INSTRUCTION_KEYWORDS",
    "filter_by_capability",
    "instruction_score",
    "recommend",
    "sort_by_cost_tier",
]
