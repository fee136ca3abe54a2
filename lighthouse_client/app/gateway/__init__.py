"""Bearer credential attachment and access-token recovery."""

from .interceptor import AUTH_ENDPOINTS, RETRY_MARKER, AuthGateway, is_auth_endpoint
from .state import RefreshState

__all__ = ["AUTH_ENDPOINTS", "RETRY_MARKER", "AuthGateway", "RefreshState", "is_auth_endpoint"]
