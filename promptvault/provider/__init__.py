from .catalog import FETCHERS, NetworkError, derive_cost_tier, detect_capabilities, normalize
from .recommend import filter_by_capability, instruction_score, recommend, sort_by_cost_tier
from .registry import CatalogSnapshot, FetchResult, ProviderModelRegistry

__all__ = [
    "CatalogSnapshot",
    "FETCHERS",
    "FetchResult",
    "NetworkError",
    "ProviderModelRegistry",
    "derive_cost_tier",
    "detect_capabilities",
    "filter_by_capability",
    "instruction_score",
    "normalize",
    "recommend",
    "sort_by_cost_tier",
]
