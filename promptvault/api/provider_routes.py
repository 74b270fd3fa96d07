from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from promptvault.auth import require_user
from promptvault.deps import get_model_registry
from promptvault.errors import NotFoundError
from promptvault.provider.recommend import filter_by_capability, recommend
from promptvault.provider.registry import FetchResult, ProviderModelRegistry
from promptvault.schemas.model import Capability, NormalizedModel, RecommendTask

router = APIRouter(
    tags=["providers"],
    prefix="/providers",
    dependencies=[Depends(require_user)],
)


def _dump(models: List[NormalizedModel]) -> List[Dict[str, Any]]:
    return [m.model_dump(by_alias=True, mode="json") for m in models]


def _meta(result: FetchResult) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"fetchedAt": result.fetched_at, "count": len(result.models)}
    if result.error:
        meta["error"] = result.error
    return meta


@router.get("/models")
async def list_provider_models(
    registry: ProviderModelRegistry = Depends(get_model_registry),
) -> Dict[str, Any]:
    """
    Normalised models of every configured provider, from cache when fresh.
    """
    credentials = await registry.load_credentials()
    if not credentials:
        return {"_meta": {"configuredCount": 0}, "models": {}}

    results = await registry.fetch_all(credentials)
    return {
        "models": {provider: _dump(r.models) for provider, r in results.items()},
        "_meta": {provider: _meta(r) for provider, r in results.items()},
    }


@router.get("/models/{provider}")
async def refresh_provider_models(
    provider: str,
    registry: ProviderModelRegistry = Depends(get_model_registry),
) -> Dict[str, Any]:
    """
    Force-refresh one provider's catalogue.
    """
    credentials = dict(await registry.load_credentials())
    api_key = credentials.get(provider)
    if not api_key:
        raise NotFoundError(f'Provider "{provider}" not configured')

    result = await registry.refresh_one(provider, api_key)
    body: Dict[str, Any] = {
        "provider": provider,
        "models": _dump(result.models),
        "fetchedAt": result.fetched_at,
    }
    if result.error:
        body["error"] = result.error
    return body


@router.get("/capabilities")
async def provider_capabilities(
    registry: ProviderModelRegistry = Depends(get_model_registry),
) -> Dict[str, Any]:
    credentials = await registry.load_credentials()
    results = await registry.fetch_all(credentials)
    summary = registry.capabilities_summary()
    return {"capabilities": {p: summary[p] for p in results if p in summary}}


@router.get("/recommend")
async def recommend_models(
    task: RecommendTask = Query(...),
    provider: Optional[str] = Query(None),
    capability: Optional[Capability] = Query(None),
    registry: ProviderModelRegistry = Depends(get_model_registry),
) -> Dict[str, Any]:
    """
    Rank cached models for a task, optionally narrowed to one provider
    and/or one capability.
    """
    snapshot = registry.snapshot()
    if provider is not None:
        models = snapshot.get(provider, [])
    else:
        models = [m for provider_models in snapshot.values() for m in provider_models]
    if capability is not None:
        models = filter_by_capability(models, capability)
    ranked = recommend(models, task)
    return {"task": task.value, "models": _dump(ranked), "count": len(ranked)}
