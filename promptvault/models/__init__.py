from .api_key_record import ROLES, APIKeyRecord
from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from .local_endpoint import LocalEndpoint
from .user import User

__all__ = [
    "APIKeyRecord",
    "Base",
    "LocalEndpoint",
    "ROLES",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "User",
]
