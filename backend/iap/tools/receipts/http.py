from __future__ import annotations

import http.client
import json
import logging
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from django.conf import settings

from ...exceptions import VerificationUnavailable

logger = logging.getLogger(__name__)


class StoreRequestError(RuntimeError):
    """Non-retryable HTTP error answered by a store API."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Store request failed with HTTP {status_code}.")
        self.status_code = status_code
        self.body = body


def verification_timeout() -> int:
    return int(getattr(settings, "IAP_VERIFICATION_TIMEOUT_SECONDS", 10))


def store_request_json(
    url: str,
    *,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    form: dict[str, str] | None = None,
) -> dict[str, Any]:
    merged_headers = {"Accept": "application/json", **(headers or {})}
    data = None
    if form is not None:
        data = urlencode(form).encode("utf-8")
        merged_headers["Content-Type"] = "application/x-www-form-urlencoded"

    request = Request(url=url, data=data, headers=merged_headers, method=method)
    try:
        with urlopen(request, timeout=verification_timeout()) as response:  # noqa: S310 - store endpoints are fixed
            body = response.read().decode("utf-8")
            payload = json.loads(body) if body else {}
            return payload if isinstance(payload, dict) else {"raw": payload}
    except HTTPError as exc:
        body = exc.read().decode("utf-8", errors="ignore")
        if exc.code == 429 or exc.code >= 500:
            logger.warning("Store API %s answered HTTP %s.", url, exc.code)
            raise VerificationUnavailable(
                f"Store verification failed with HTTP {exc.code}. Retry later."
            ) from exc
        raise StoreRequestError(exc.code, body[:400]) from exc
    except (URLError, TimeoutError, OSError, http.client.HTTPException) as exc:
        reason = getattr(exc, "reason", exc)
        logger.warning("Store API %s unreachable: %s", url, reason)
        raise VerificationUnavailable("Store verification timed out or could not connect.") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Store API %s returned an unreadable body.", url)
        raise VerificationUnavailable("Store returned a non-JSON response.") from exc
