"""
In-memory provider model registry.

The cache maps provider -> `CatalogSnapshot` and is only ever replaced
with a new dict, so readers see either the old or the new catalogue as a
whole. A failed fetch keeps the previous snapshot for that provider and
records the error next to it (stale-while-error).

Usage::

    registry = ProviderModelRegistry(credential_loader=load_keys)
    await registry.fetch_all()
    registry.get_models("openai")
    registry.start()   # periodic refresh in the background
"""

from __future__ import annotations

import asyncio
import datetime as dt
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Sequence

import httpx

from promptvault.logging_config import logger
from promptvault.provider.catalog import FETCHERS, Fetcher, NetworkError
from promptvault.schemas.model import Capability, NormalizedModel
from promptvault.settings import settings

Credentials = Sequence[tuple[str, str]]
CredentialLoader = Callable[[], Credentials]


@dataclass(frozen=True)
class CatalogSnapshot:
    provider: str
    models: tuple[NormalizedModel, ...]
    fetched_at: dt.datetime
    # Monotonic clock reading used for TTL checks.
    loaded_at: float


@dataclass(frozen=True)
class FetchResult:
    """
    Outcome of fetching one provider.

    `snapshot` is the freshest good catalogue available: the new one on
    success, the previous one (possibly None) on failure.
    """

    provider: str
    snapshot: CatalogSnapshot | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def models(self) -> list[NormalizedModel]:
        return list(self.snapshot.models) if self.snapshot else []

    @property
    def fetched_at(self) -> dt.datetime | None:
        return self.snapshot.fetched_at if self.snapshot else None


@dataclass
class ProviderModelRegistry:
    credential_loader: CredentialLoader | None = None
    client: httpx.AsyncClient | None = None
    ttl: float = field(default_factory=lambda: float(settings.models_cache_ttl))
    refresh_interval: float = field(
        default_factory=lambda: float(settings.models_refresh_interval)
    )
    fetchers: Mapping[str, Fetcher] = field(default_factory=lambda: dict(FETCHERS))
    clock: Callable[[], float] = time.monotonic

    def __post_init__(self) -> None:
        self._cache: dict[str, CatalogSnapshot] = {}
        self._errors: dict[str, str] = {}
        self._owns_client = self.client is None
        self._task: asyncio.Task[None] | None = None

    # ---- reads -------------------------------------------------------------

    def snapshot(self) -> dict[str, list[NormalizedModel]]:
        cache = self._cache
        return {provider: list(snap.models) for provider, snap in cache.items()}

    def get_models(self, provider: str) -> list[NormalizedModel]:
        snap = self._cache.get(provider)
        return list(snap.models) if snap else []

    def get_fetched_at(self, provider: str) -> dt.datetime | None:
        snap = self._cache.get(provider)
        return snap.fetched_at if snap else None

    @property
    def errors(self) -> dict[str, str]:
        return dict(self._errors)

    def capabilities_summary(self) -> dict[str, dict[str, Any]]:
        """Per-provider union of capabilities over the cached catalogue."""
        summary: dict[str, dict[str, Any]] = {}
        for provider, snap in self._cache.items():
            caps: list[Capability] = []
            for model in snap.models:
                for cap in model.capabilities:
                    if cap not in caps:
                        caps.append(cap)
            summary[provider] = {
                "capabilities": [c.value for c in caps],
                "modelCount": len(snap.models),
                "hasVision": Capability.VISION in caps,
                "hasReasoning": Capability.REASONING in caps,
                "hasWebSearch": Capability.WEB_SEARCH in caps,
                "fetchedAt": snap.fetched_at,
            }
        return summary

    # ---- fetching ----------------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=settings.models_fetch_timeout)
        return self.client

    async def load_credentials(self) -> list[tuple[str, str]]:
        """
        Configured (provider, api_key) pairs, one per provider, first wins.
        """
        if self.credential_loader is None:
            return []
        pairs = await asyncio.to_thread(self.credential_loader)
        seen: dict[str, str] = {}
        for provider, api_key in pairs:
            if api_key and provider not in seen:
                seen[provider] = api_key
        return list(seen.items())

    async def _fetch_provider(self, provider: str, api_key: str, *, force: bool) -> FetchResult:
        previous = self._cache.get(provider)
        fetcher = self.fetchers.get(provider)
        if fetcher is None:
            logger.warning("Model registry: no fetcher for provider %s", provider)
            return FetchResult(provider, previous, error=f"No fetcher for provider: {provider}")

        if not force and previous is not None and self.clock() - previous.loaded_at < self.ttl:
            return FetchResult(provider, previous)

        try:
            models = await fetcher(self._get_client(), api_key)
        except NetworkError as exc:
            logger.error("Model registry: failed to fetch %s: %s", provider, exc)
            return FetchResult(provider, previous, error=str(exc))
        except Exception as exc:
            # Malformed catalogue entries stay scoped to this provider.
            logger.exception("Model registry: could not normalise %s catalogue", provider)
            return FetchResult(
                provider,
                previous,
                error=f"{provider}: unexpected catalogue format ({type(exc).__name__}: {exc})",
            )

        logger.info("Model registry: fetched %d models from %s", len(models), provider)
        return FetchResult(
            provider,
            CatalogSnapshot(
                provider=provider,
                models=tuple(models),
                fetched_at=dt.datetime.now(dt.timezone.utc),
                loaded_at=self.clock(),
            ),
        )

    def _apply(self, results: Iterable[FetchResult]) -> None:
        cache = dict(self._cache)
        errors = dict(self._errors)
        for result in results:
            if result.ok:
                if result.snapshot is not None:
                    cache[result.provider] = result.snapshot
                errors.pop(result.provider, None)
            else:
                errors[result.provider] = result.error or "fetch failed"
        self._cache = cache
        self._errors = errors

    async def fetch_all(
        self, credentials: Credentials | None = None, *, force: bool = False
    ) -> dict[str, FetchResult]:
        """
        Fetch every configured provider concurrently.

        Providers still inside their TTL are served from cache unless
        `force` is set. Failures never raise; see `FetchResult.error`.
        """
        if credentials is None:
            credentials = await self.load_credentials()
        fetchable = [(p, k) for p, k in credentials if p in self.fetchers and k]
        if not fetchable:
            return {}

        results = await asyncio.gather(
            *(self._fetch_provider(p, k, force=force) for p, k in fetchable)
        )
        self._apply(results)
        return {r.provider: r for r in results}

    async def refresh_one(self, provider: str, api_key: str) -> FetchResult:
        """Force-refetch one provider and replace only its slice."""
        result = await self._fetch_provider(provider, api_key, force=True)
        self._apply([result])
        return result

    # ---- background refresh ------------------------------------------------

    async def _run_periodic(self) -> None:
        while True:
            try:
                results = await self.fetch_all(force=True)
                logger.info(
                    "Model registry refresh complete: %d providers, %d errors",
                    len(results),
                    sum(1 for r in results.values() if not r.ok),
                )
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Model registry refresh failed")
            await asyncio.sleep(self.refresh_interval)

    def start(self) -> None:
        """Fetch now, then every `refresh_interval` seconds."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run_periodic())

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def aclose(self) -> None:
        await self.stop()
        if self._owns_client and self.client is not None:
            await self.client.aclose()
            self.client = None


__all__ = [
    "CatalogSnapshot",
    "CredentialLoader",
    "FetchResult",
    "ProviderModelRegistry",
]
