"""Client utilities for the Supabase Auth (GoTrue) user endpoint."""

import base64
import json
import logging
import time
from typing import Any, Dict, Optional

import requests

from portal.core.config import get_settings
from portal.core.errors import AuthResolutionFailure

logger = logging.getLogger(__name__)

_USER_PATH = "/auth/v1/user"


class SupabaseAuthError(AuthResolutionFailure):
    """Raised when the auth endpoint does not return a user."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    @property
    def is_unauthorized(self) -> bool:
        return self.status in (401, 403)


def decode_jwt_claims(token: str) -> Optional[Dict[str, Any]]:
    """Return the JWT payload without verifying it, or ``None`` if it is not a JWT."""
    parts = token.split(".")
    if len(parts) != 3:
        return None
    payload = parts[1]
    payload += "=" * (-len(payload) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload.encode("ascii")))
    except (ValueError, UnicodeError):
        return None
    return claims if isinstance(claims, dict) else None


def is_token_expired(token: str, now: Optional[float] = None) -> bool:
    """True when the token carries an ``exp`` claim in the past.

    Opaque tokens and tokens without ``exp`` are left to the auth service.
    """
    claims = decode_jwt_claims(token)
    if not claims:
        return False
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return False
    current = time.time() if now is None else now
    return current >= exp


class SupabaseAuthClient:
    """Resolves the user behind an access token.

    One instance is built per process and shared between requests; the
    underlying ``requests.Session`` only pools connections.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls) -> "SupabaseAuthClient":
        settings = get_settings()
        return cls(
            base_url=settings.supabase_url,
            api_key=settings.supabase_anon_key,
            timeout=settings.http_timeout_seconds,
        )

    def get_user(self, access_token: str) -> Dict[str, Any]:
        if not self.base_url or not self.api_key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY are required for session resolution")

        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {access_token}",
        }
        try:
            response = self._session.get(f"{self.base_url}{_USER_PATH}", headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SupabaseAuthError(f"auth request failed: {exc}") from exc

        if response.status_code >= 400:
            message = _error_message(response)
            logger.debug("get_user rejected: status=%s, message=%s", response.status_code, message)
            raise SupabaseAuthError(message, status=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise SupabaseAuthError("auth response was not JSON", status=response.status_code) from exc

        # Some deployments wrap the user as {"user": {...}}
        if isinstance(payload, dict) and isinstance(payload.get("user"), dict):
            payload = payload["user"]
        if not isinstance(payload, dict) or not payload.get("id"):
            raise SupabaseAuthError("auth response did not contain a user", status=response.status_code)
        return payload


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"
