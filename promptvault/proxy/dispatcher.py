"""
Authenticated pass-through to upstream AI provider APIs.

One call runs: validate -> authenticate -> resolve key -> decrypt ->
dispatch -> respond. Any failing step raises a `GatewayError` subclass and
the later steps do not run. Nothing is shared between calls; the vault key
is derived per request.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from promptvault.auth import resolve_caller
from promptvault.errors import (
    InternalError,
    NotFoundError,
    UpstreamError,
    UpstreamUnavailableError,
    ValidationError,
)
from promptvault.logging_config import logger
from promptvault.proxy.auth_styles import PROVIDER_ROUTES, ProviderRoute
from promptvault.schemas.proxy import ProviderId, ProxyRequest
from promptvault.services import api_key_service
from promptvault.settings import settings
from promptvault.vault import CredentialVault, DecryptionFailure


@dataclass
class ProxyResponse:
    status_code: int
    body: Any


def _first_error_message(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def _parse_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


class ProxyDispatcher:
    """
    Forward a caller's request to their chosen provider using the caller's
    stored, active key for that provider.
    """

    def __init__(
        self,
        session: Session,
        client: httpx.AsyncClient,
        *,
        secret: Optional[str] = None,
        routes: Mapping[ProviderId, ProviderRoute] = PROVIDER_ROUTES,
    ) -> None:
        self.session = session
        self.client = client
        self.vault = CredentialVault(secret if secret is not None else settings.vault_secret)
        self.routes = routes

    @staticmethod
    def validate(raw: Any) -> ProxyRequest:
        try:
            return ProxyRequest.model_validate(raw)
        except PydanticValidationError as exc:
            raise ValidationError(_first_error_message(exc)) from exc

    async def _resolve_key(self, user_id, request: ProxyRequest) -> str:
        provider = request.provider.value
        record = api_key_service.get_active_key(
            self.session, user_id, provider, request.role.value
        )
        if record is None:
            raise NotFoundError(f"No active API key configured for {provider}")

        try:
            # PBKDF2 derivation is CPU bound; keep it off the event loop.
            return await asyncio.to_thread(self.vault.decrypt, record.encrypted_key)
        except DecryptionFailure as exc:
            # Detail stays in the log; callers only see a generic 500.
            logger.error(
                "Could not decrypt stored key provider=%s hint=%s: %s",
                provider,
                record.key_hint,
                exc,
            )
            raise InternalError() from exc

    async def _forward(self, request: ProxyRequest, api_key: str) -> httpx.Response:
        route = self.routes.get(request.provider)
        if route is None:
            raise ValidationError("Unsupported provider")

        headers = {"Content-Type": "application/json", **route.auth.headers(api_key)}
        url = route.url_for(request.endpoint)
        try:
            return await self.client.request(
                request.method,
                url,
                headers=headers,
                params=route.auth.params(api_key) or None,
                json=request.body,
            )
        except httpx.HTTPError as exc:
            logger.error(
                "Upstream %s %s%s failed: %s",
                request.method,
                route.base_url,
                request.endpoint,
                type(exc).__name__,
            )
            raise UpstreamUnavailableError("Upstream provider unreachable") from exc

    async def dispatch(self, raw: Any, authorization: Optional[str]) -> ProxyResponse:
        """
        Run one proxied call.

        Raises:
            ValidationError: Body does not match the request schema (400).
            AuthError: Missing or invalid bearer token (401).
            NotFoundError: No active key for the provider (404).
            InternalError: Stored key could not be decrypted (500).
            UpstreamError: Provider answered non-2xx; status relayed.
            UpstreamUnavailableError: Provider could not be reached (502).
        """
        request = self.validate(raw)
        caller = resolve_caller(authorization, self.session)
        api_key = await self._resolve_key(caller.id, request)

        resp = await self._forward(request, api_key)
        body = _parse_body(resp)
        logger.info(
            "Proxy %s %s%s -> %s (user=%s)",
            request.method,
            request.provider.value,
            request.endpoint,
            resp.status_code,
            caller.id,
        )

        if not resp.is_success:
            raise UpstreamError(resp.status_code, body)
        return ProxyResponse(status_code=resp.status_code, body=body)


__all__ = ["ProxyDispatcher", "ProxyResponse"]
