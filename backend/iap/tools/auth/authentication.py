from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed

from .tokens import TokenConfigurationError, decode_access_token


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    claims: dict[str, Any]

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_anonymous(self) -> bool:
        return False

    @property
    def id(self) -> str:
        return self.user_id

    @property
    def pk(self) -> str:
        return self.user_id


class BearerTokenAuthentication(BaseAuthentication):
    keyword = "Bearer"

    def authenticate(self, request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].decode("utf-8").lower() != self.keyword.lower():
            return None
        if len(auth) == 1:
            raise AuthenticationFailed("Invalid Authorization header: missing token.")
        if len(auth) > 2:
            raise AuthenticationFailed("Invalid Authorization header: token has spaces.")

        try:
            claims = decode_access_token(auth[1].decode("utf-8"))
        except TokenConfigurationError as exc:
            raise AuthenticationFailed(str(exc)) from exc

        return AuthenticatedUser(user_id=str(claims["sub"]).strip(), claims=claims), claims

    def authenticate_header(self, request) -> str:
        return self.keyword
