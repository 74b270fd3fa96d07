from .api_key import (
    APIKeyActivateRequest,
    APIKeyListResponse,
    APIKeyResponse,
    APIKeySaveRequest,
    APIKeySaveResponse,
    ActiveRoles,
    ModelDefaults,
)
from .model import (
    COST_TIER_ORDER,
    Capability,
    CatalogProvider,
    CostTier,
    ModelPricing,
    NormalizedModel,
    RecommendTask,
)
from .proxy import KeyRole, ProviderId, ProxyRequest

__all__ = [
    "APIKeyActivateRequest",
    "APIKeyListResponse",
    "APIKeyResponse",
    "APIKeySaveRequest",
    "APIKeySaveResponse",
    "ActiveRoles",
    "COST_TIER_ORDER",
    "Capability",
    "CatalogProvider",
    "CostTier",
    "KeyRole",
    "ModelDefaults",
    "ModelPricing",
    "NormalizedModel",
    "ProviderId",
    "ProxyRequest",
    "RecommendTask",
]
