"""
Per-provider model catalogue fetchers.

Every fetcher takes a shared `httpx.AsyncClient` plus the decrypted API key
for that provider and returns a list of `NormalizedModel`. Providers that
publish no usable listing endpoint (perplexity, anthropic, google) are served
from a fixed catalogue without any HTTP call.

Fetchers raise `NetworkError` on transport failures, non-2xx answers and
unparseable bodies; the registry decides what to do with it.
"""

from __future__ import annotations

import datetime as dt
import math
import re
from typing import Any, Awaitable, Callable, Iterable

import httpx

from promptvault.schemas.model import Capability, CostTier, ModelPricing, NormalizedModel
from promptvault.settings import settings


class NetworkError(Exception):
    """A provider's model listing could not be retrieved."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


REASONING_RE = re.compile(r"reasoning|magistral|r1|deepseek-r|thinking|o1|o3|qwen.*thinking", re.I)
WEB_SEARCH_RE = re.compile(r"online$|compound", re.I)
CODE_RE = re.compile(r"codestral|code\b|coder|starcoder|deepseek-coder", re.I)
VISION_ID_RE = re.compile(r"llava|vision|[\-_]vl[\-_]|pixtral|llama-4|kimi-k2", re.I)


def derive_cost_tier(cost_per_token: Any) -> CostTier:
    """
    Bucket a per-token completion price.

    Thresholds are per million output tokens: 0 is free, below $1 is low,
    up to $5 is medium, anything above is high.
    """
    if cost_per_token is None:
        return CostTier.UNKNOWN
    try:
        per_million = float(cost_per_token) * 1_000_000
    except (TypeError, ValueError):
        return CostTier.UNKNOWN
    if math.isnan(per_million):
        return CostTier.UNKNOWN
    if per_million == 0:
        return CostTier.FREE
    if per_million < 1:
        return CostTier.LOW
    if per_million <= 5:
        return CostTier.MEDIUM
    return CostTier.HIGH


def detect_capabilities(
    model_id: str,
    *,
    vision: bool = False,
    reasoning: bool = False,
    web_search: bool = False,
    code: bool = False,
) -> list[Capability]:
    """Combine provider hints with what the model id itself suggests."""
    caps = [Capability.TEXT]
    if vision or VISION_ID_RE.search(model_id):
        caps.append(Capability.VISION)
    if reasoning or REASONING_RE.search(model_id):
        caps.append(Capability.REASONING)
    if web_search or WEB_SEARCH_RE.search(model_id):
        caps.append(Capability.WEB_SEARCH)
    if code or CODE_RE.search(model_id):
        caps.append(Capability.CODE)
    return caps


def normalize(
    *,
    original_id: str,
    provider: str,
    name: str | None = None,
    capabilities: Iterable[Capability] | None = None,
    context_window: Any = None,
    cost_tier: CostTier | None = None,
    pricing: ModelPricing | None = None,
    fetched_at: dt.datetime | None = None,
) -> NormalizedModel:
    try:
        context = int(context_window) if context_window else None
    except (TypeError, ValueError):
        context = None

    return NormalizedModel(
        id=f"{provider}:{original_id}",
        original_id=original_id,
        provider=provider,
        name=name or original_id,
        capabilities=list(capabilities) if capabilities else [Capability.TEXT],
        context_window=context,
        cost_tier=cost_tier or CostTier.UNKNOWN,
        pricing=pricing,
        is_available=True,
        fetched_at=fetched_at or dt.datetime.now(dt.timezone.utc),
    )


async def _get_json(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    api_key: str,
    *,
    timeout: float | None = None,
) -> Any:
    headers = {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}
    try:
        resp = await client.get(
            url, headers=headers, timeout=timeout or settings.models_fetch_timeout
        )
    except httpx.HTTPError as exc:
        raise NetworkError(provider, f"request failed: {exc}") from exc

    if resp.status_code < 200 or resp.status_code >= 300:
        raise NetworkError(provider, f"/models -> {resp.status_code}")
    try:
        return resp.json()
    except ValueError as exc:
        raise NetworkError(provider, "invalid JSON from /models") from exc


def _data_list(payload: Any, key: str = "data") -> list[dict[str, Any]]:
    if isinstance(payload, dict):
        payload = payload.get(key)
    if not isinstance(payload, list):
        return []
    return [item for item in payload if isinstance(item, dict)]


def _short_name(model_id: str) -> str:
    return model_id.split("/")[-1] or model_id


async def fetch_openrouter(client: httpx.AsyncClient, api_key: str) -> list[NormalizedModel]:
    payload = await _get_json(client, "openrouter", "https://openrouter.ai/api/v1/models", api_key)
    models: list[NormalizedModel] = []
    for item in _data_list(payload):
        model_id = item.get("id")
        if not isinstance(model_id, str):
            continue
        architecture = item.get("architecture") or {}
        raw_pricing = item.get("pricing") if isinstance(item.get("pricing"), dict) else None
        completion = raw_pricing.get("completion") if raw_pricing else None

        models.append(
            normalize(
                original_id=model_id,
                provider="openrouter",
                name=item.get("name"),
                capabilities=detect_capabilities(
                    model_id,
                    vision=architecture.get("modality") == "multimodal",
                    web_search="online" in model_id,
                ),
                context_window=item.get("context_length"),
                cost_tier=CostTier.FREE if completion == "0" else derive_cost_tier(completion),
                pricing=(
                    ModelPricing(
                        prompt_price=_as_price(raw_pricing.get("prompt")),
                        completion_price=_as_price(completion),
                    )
                    if raw_pricing
                    else None
                ),
            )
        )
    return models


GROQ_VISION_MODELS = frozenset(
    {
        "meta-llama/llama-4-scout-17b-16e-instruct",
        "meta-llama/llama-4-maverick-17b-128e-instruct",
    }
)


async def fetch_groq(client: httpx.AsyncClient, api_key: str) -> list[NormalizedModel]:
    payload = await _get_json(client, "groq", "https://api.groq.com/openai/v1/models", api_key)
    return [
        normalize(
            original_id=item["id"],
            provider="groq",
            name=_short_name(item["id"]),
            capabilities=detect_capabilities(item["id"], vision=item["id"] in GROQ_VISION_MODELS),
            context_window=item.get("context_window"),
            # No pricing in the listing; Groq is consistently cheap.
            cost_tier=CostTier.LOW,
        )
        for item in _data_list(payload)
        if isinstance(item.get("id"), str)
    ]


async def fetch_mistral(client: httpx.AsyncClient, api_key: str) -> list[NormalizedModel]:
    payload = await _get_json(client, "mistral", "https://api.mistral.ai/v1/models", api_key)
    models = []
    for item in _data_list(payload):
        model_id = item.get("id")
        if not isinstance(model_id, str):
            continue
        caps = item.get("capabilities") or {}
        models.append(
            normalize(
                original_id=model_id,
                provider="mistral",
                capabilities=detect_capabilities(
                    model_id, vision=isinstance(caps, dict) and caps.get("vision") is True
                ),
                cost_tier=CostTier.MEDIUM,
            )
        )
    return models


_TOGETHER_TEXT_TYPES = {"chat", "language", "code"}


async def fetch_together(client: httpx.AsyncClient, api_key: str) -> list[NormalizedModel]:
    payload = await _get_json(client, "together", "https://api.together.xyz/v1/models", api_key)
    models = []
    for item in _data_list(payload):
        model_id = item.get("id")
        model_type = item.get("type")
        if not isinstance(model_id, str):
            continue
        if model_type and model_type not in _TOGETHER_TEXT_TYPES:
            continue

        raw_pricing = item.get("pricing") if isinstance(item.get("pricing"), dict) else None
        output_price = raw_pricing.get("output") if raw_pricing else None
        models.append(
            normalize(
                original_id=model_id,
                provider="together",
                name=item.get("display_name"),
                capabilities=detect_capabilities(
                    model_id,
                    vision=model_type == "vision" or "vision" in (item.get("capabilities") or []),
                    code=model_type == "code",
                ),
                context_window=item.get("context_length"),
                cost_tier=(
                    derive_cost_tier(output_price) if output_price is not None else CostTier.MEDIUM
                ),
                pricing=(
                    ModelPricing(
                        prompt_price=_as_price(raw_pricing.get("input")),
                        completion_price=_as_price(output_price),
                    )
                    if raw_pricing
                    else None
                ),
            )
        )
    return models


async def fetch_cohere(client: httpx.AsyncClient, api_key: str) -> list[NormalizedModel]:
    payload = await _get_json(
        client, "cohere", "https://api.cohere.com/v1/models?endpoint=chat", api_key
    )
    return [
        normalize(
            original_id=item["name"],
            provider="cohere",
            capabilities=detect_capabilities(
                item["name"], vision="vision" in item["name"].lower()
            ),
            context_window=item.get("context_length"),
            cost_tier=CostTier.MEDIUM,
        )
        for item in _data_list(payload, key="models")
        if isinstance(item.get("name"), str)
    ]


async def fetch_deepinfra(client: httpx.AsyncClient, api_key: str) -> list[NormalizedModel]:
    payload = await _get_json(
        client, "deepinfra", "https://api.deepinfra.com/v1/openai/models", api_key
    )
    return [
        normalize(
            original_id=item["id"],
            provider="deepinfra",
            name=_short_name(item["id"]),
            capabilities=detect_capabilities(item["id"]),
            cost_tier=CostTier.LOW,
        )
        for item in _data_list(payload)
        if isinstance(item.get("id"), str)
    ]


OPENAI_CHAT_MODELS = frozenset(
    {"gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-4", "gpt-3.5-turbo", "o1", "o1-mini", "o3-mini"}
)
OPENAI_VISION_MODELS = frozenset({"gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-4-vision-preview"})


def _is_openai_chat_model(model_id: str) -> bool:
    return model_id in OPENAI_CHAT_MODELS or model_id.startswith(("gpt-", "o1", "o3"))


def _openai_cost_tier(model_id: str) -> CostTier:
    if "mini" in model_id or model_id.startswith("gpt-3"):
        return CostTier.LOW
    return CostTier.HIGH


async def fetch_openai(client: httpx.AsyncClient, api_key: str) -> list[NormalizedModel]:
    payload = await _get_json(client, "openai", "https://api.openai.com/v1/models", api_key)
    return [
        normalize(
            original_id=item["id"],
            provider="openai",
            capabilities=detect_capabilities(
                item["id"], vision=item["id"] in OPENAI_VISION_MODELS
            ),
            cost_tier=_openai_cost_tier(item["id"]),
        )
        for item in _data_list(payload)
        if isinstance(item.get("id"), str) and _is_openai_chat_model(item["id"])
    ]


# (id, display name)
PERPLEXITY_MODELS = (
    ("sonar", "Sonar"),
    ("sonar-pro", "Sonar Pro"),
    ("sonar-reasoning", "Sonar Reasoning"),
    ("sonar-reasoning-pro", "Sonar Reasoning Pro"),
    ("sonar-deep-research", "Sonar Deep Research"),
)

ANTHROPIC_MODELS = (
    ("claude-opus-4-5", "Claude Opus 4.5", CostTier.HIGH),
    ("claude-sonnet-4-5", "Claude Sonnet 4.5", CostTier.MEDIUM),
    ("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet", CostTier.MEDIUM),
    ("claude-3-5-haiku-20241022", "Claude 3.5 Haiku", CostTier.LOW),
    ("claude-3-opus-20240229", "Claude 3 Opus", CostTier.HIGH),
    ("claude-3-haiku-20240307", "Claude 3 Haiku", CostTier.LOW),
)

GOOGLE_MODELS = (
    ("gemini-2.5-pro-preview-05-06", "Gemini 2.5 Pro Preview", CostTier.HIGH),
    ("gemini-2.0-flash", "Gemini 2.0 Flash", CostTier.LOW),
    ("gemini-2.0-flash-thinking-exp", "Gemini 2.0 Flash Thinking", CostTier.LOW),
    ("gemini-1.5-pro-latest", "Gemini 1.5 Pro", CostTier.MEDIUM),
    ("gemini-1.5-flash-latest", "Gemini 1.5 Flash", CostTier.LOW),
)


async def fetch_perplexity(client: httpx.AsyncClient, api_key: str) -> list[NormalizedModel]:
    models = []
    for model_id, name in PERPLEXITY_MODELS:
        caps = [Capability.TEXT, Capability.WEB_SEARCH]
        if "reasoning" in model_id:
            caps.append(Capability.REASONING)
        models.append(
            normalize(
                original_id=model_id,
                provider="perplexity",
                name=name,
                capabilities=caps,
                context_window=127_000,
                cost_tier=(
                    CostTier.MEDIUM if "pro" in model_id or "deep" in model_id else CostTier.LOW
                ),
            )
        )
    return models


async def fetch_anthropic(client: httpx.AsyncClient, api_key: str) -> list[NormalizedModel]:
    return [
        normalize(
            original_id=model_id,
            provider="anthropic",
            name=name,
            capabilities=detect_capabilities(model_id, vision=True),
            context_window=200_000,
            cost_tier=tier,
        )
        for model_id, name, tier in ANTHROPIC_MODELS
    ]


def _google_catalogue(provider: str) -> Fetcher:
    """Static Gemini catalogue labelled with the registry key it is served under."""

    async def fetch(client: httpx.AsyncClient, api_key: str) -> list[NormalizedModel]:
        return [
            normalize(
                original_id=model_id,
                provider=provider,
                name=name,
                capabilities=detect_capabilities(model_id, vision=True),
                context_window=1_000_000,
                cost_tier=tier,
            )
            for model_id, name, tier in GOOGLE_MODELS
        ]

    return fetch


fetch_google = _google_catalogue("google")
fetch_gemini = _google_catalogue("gemini")


def _as_price(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


Fetcher = Callable[[httpx.AsyncClient, str], Awaitable[list[NormalizedModel]]]

FETCHERS: dict[str, Fetcher] = {
    "openrouter": fetch_openrouter,
    "groq": fetch_groq,
    "mistral": fetch_mistral,
    "together": fetch_together,
    "cohere": fetch_cohere,
    "deepinfra": fetch_deepinfra,
    "perplexity": fetch_perplexity,
    "openai": fetch_openai,
    "anthropic": fetch_anthropic,
    "google": fetch_google,
    "gemini": fetch_gemini,
}


__all__ = [
    "CODE_RE",
    "FETCHERS",
    "Fetcher",
    "NetworkError",
    "REASONING_RE",
    "VISION_ID_RE",
    "WEB_SEARCH_RE",
    "derive_cost_tier",
    "detect_capabilities",
    "normalize",
]
