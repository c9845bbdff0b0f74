from __future__ import annotations

from functools import lru_cache
from typing import Any

import jwt
from django.conf import settings
from rest_framework.exceptions import AuthenticationFailed


class TokenConfigurationError(RuntimeError):
    pass


@lru_cache(maxsize=2)
def _build_jwks_client(jwks_url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(jwks_url)


def _signing_key(token: str) -> tuple[Any, list[str]]:
    jwks_url = str(getattr(settings, "AUTH_JWKS_URL", "") or "").strip()
    if jwks_url:
        try:
            return _build_jwks_client(jwks_url).get_signing_key_from_jwt(token).key, ["RS256", "ES256"]
        except jwt.PyJWKClientError as exc:
            raise AuthenticationFailed("Unable to resolve token signing key.") from exc

    secret = str(getattr(settings, "AUTH_JWT_SECRET", "") or "")
    if secret:
        return secret, ["HS256"]
    raise TokenConfigurationError("AUTH_JWKS_URL or AUTH_JWT_SECRET must be configured.")


def decode_access_token(token: str) -> dict[str, Any]:
    key, algorithms = _signing_key(token)
    issuer = getattr(settings, "AUTH_JWT_ISSUER", "") or None
    audience = getattr(settings, "AUTH_JWT_AUDIENCE", "") or None

    options = {"require": ["exp", "sub"], "verify_aud": bool(audience)}
    try:
        claims = jwt.decode(
            token,
            key=key,
            algorithms=algorithms,
            audience=audience,
            issuer=issuer,
            options=options,
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationFailed("Token has expired.") from exc
    except jwt.PyJWTError as exc:
        raise AuthenticationFailed("Invalid token.") from exc

    if not str(claims.get("sub") or "").strip():
        raise AuthenticationFailed("Token is missing a subject.")
    return claims
