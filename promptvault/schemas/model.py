from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Capability(str, Enum):
    """
    Modes a model supports.
    """

    TEXT = "text"
    VISION = "vision"
    REASONING = "reasoning"
    WEB_SEARCH = "web_search"
    CODE = "code"


class CostTier(str, Enum):
    """
    Coarse pricing bucket, ordered free < low < medium < high < unknown.
    """

    FREE = "free"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNKNOWN = "unknown"

    @property
    def rank(self) -> int:
        return COST_TIER_ORDER[self]


COST_TIER_ORDER: dict[CostTier, int] = {
    CostTier.FREE: 0,
    CostTier.LOW: 1,
    CostTier.MEDIUM: 2,
    CostTier.HIGH: 3,
    CostTier.UNKNOWN: 4,
}


class CatalogProvider(str, Enum):
    """
    Providers a key can be stored for; each has a model catalogue fetcher.
    Only the `ProviderId` subset can be proxied.
    """

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    GOOGLE = "google"
    OPENROUTER = "openrouter"
    GROQ = "groq"
    MISTRAL = "mistral"
    TOGETHER = "together"
    COHERE = "cohere"
    DEEPINFRA = "deepinfra"
    PERPLEXITY = "perplexity"


class RecommendTask(str, Enum):
    GENERATE = "generate"
    IMPROVE = "improve"
    VISION = "vision"
    RESEARCH = "research"


class ModelPricing(BaseModel):
    """Per-token prices as reported upstream (kept as strings)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    prompt_price: str | None = Field(None, alias="promptPrice")
    completion_price: str | None = Field(None, alias="completionPrice")


class NormalizedModel(BaseModel):
    """
    Provider-agnostic model record. Serialise with `by_alias=True` to get
    the camelCase wire shape.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., description="'{provider}:{originalId}'")
    original_id: str = Field(..., alias="originalId")
    provider: str
    name: str
    capabilities: list[Capability] = Field(default_factory=lambda: [Capability.TEXT])
    context_window: int | None = Field(None, alias="contextWindow")
    cost_tier: CostTier = Field(CostTier.UNKNOWN, alias="costTier")
    pricing: ModelPricing | None = None
    is_available: bool = Field(True, alias="isAvailable")
    fetched_at: dt.datetime = Field(..., alias="fetchedAt")

    def has_capability(self, capability: Capability | str) -> bool:
        return Capability(capability) in self.capabilities


__all__ = [
    "COST_TIER_ORDER",
    "Capability",
    "CatalogProvider",
    "CostTier",
    "ModelPricing",
    "NormalizedModel",
    "RecommendTask",
]
