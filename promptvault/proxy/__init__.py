from .auth_styles import (
    PROVIDER_ROUTES,
    AuthStyle,
    BearerAuth,
    HeaderAuth,
    ProviderRoute,
    QueryParamAuth,
    resolve_route,
)
from .dispatcher import ProxyDispatcher, ProxyResponse

__all__ = [
    "AuthStyle",
    "BearerAuth",
    "HeaderAuth",
    "PROVIDER_ROUTES",
    "ProviderRoute",
    "ProxyDispatcher",
    "ProxyResponse",
    "QueryParamAuth",
    "resolve_route",
]
