from .authentication import AuthenticatedUser, BearerTokenAuthentication
from .tokens import TokenConfigurationError, decode_access_token

__all__ = [
    "AuthenticatedUser",
    "BearerTokenAuthentication",
    "TokenConfigurationError",
    "decode_access_token",
]
