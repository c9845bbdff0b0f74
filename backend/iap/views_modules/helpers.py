from __future__ import annotations

from typing import Any

from rest_framework.exceptions import NotAuthenticated


def _safe_str(value: Any) -> str:
    return str(value).strip() if value else ""


def get_request_claims(request) -> dict[str, Any]:
    claims = request.auth or {}
    return claims if isinstance(claims, dict) else {}


def get_request_user_id(request) -> str:
    user_id = _safe_str(getattr(request.user, "user_id", "")) or _safe_str(get_request_claims(request).get("sub"))
    if not user_id:
        raise NotAuthenticated("Missing user identity in token claims.")
    return user_id


def query_flag(request, name: str, default: bool) -> bool:
    raw = request.query_params.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes"}
