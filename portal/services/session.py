"""Session composition: resolve the signed-in principal and join its profile."""

import base64
import json
import logging
import re
from typing import Any, Mapping, Optional

import psycopg2

from portal.core.config import get_settings
from portal.core.db import Database, fetch_profile_row
from portal.etl.transform import to_principal, to_profile
from portal.models import AuthAbsent, AuthFailed, AuthFound, AuthResult, HeaderContext, Profile
from portal.vendors.supabase_auth import SupabaseAuthClient, SupabaseAuthError, is_token_expired

logger = logging.getLogger(__name__)

_SB_COOKIE = re.compile(r"^sb-[^.]+-auth-token(?:\.(\d+))?$")
_BASE64_PREFIX = "base64-"

NO_TOKEN = "No access token"
TOKEN_EXPIRED = "Access token expired"


def _token_from_supabase_cookie(cookies: Mapping[str, str]) -> Optional[str]:
    """Read ``access_token`` out of an ``sb-<ref>-auth-token`` cookie, joining chunks."""
    chunks = []
    for name, value in cookies.items():
        match = _SB_COOKIE.match(name)
        if match:
            chunks.append((int(match.group(1) or 0), value))
    if not chunks:
        return None

    raw = "".join(value for _, value in sorted(chunks))
    try:
        if raw.startswith(_BASE64_PREFIX):
            encoded = raw[len(_BASE64_PREFIX):]
            raw = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4)).decode("utf-8")
        session = json.loads(raw)
    except (ValueError, UnicodeError):
        logger.debug("Ignoring undecodable Supabase auth cookie")
        return None

    if isinstance(session, dict):
        token = session.get("access_token")
    elif isinstance(session, list) and session:
        token = session[0]
    else:
        token = None
    return token if isinstance(token, str) and token else None


def extract_access_token(
    cookies: Mapping[str, str],
    headers: Mapping[str, str],
    cookie_name: Optional[str] = None,
) -> Optional[str]:
    """Find the access token: named cookie, then Supabase cookie, then bearer header."""
    cookie_name = cookie_name or get_settings().session_cookie_name
    token = (cookies.get(cookie_name) or "").strip()
    if token:
        return token

    token = _token_from_supabase_cookie(cookies)
    if token:
        return token

    authorization = headers.get("Authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def get_current_user(
    request: Any,
    *,
    auth_client: SupabaseAuthClient,
    cookie_name: Optional[str] = None,
) -> AuthResult:
    """Resolve the principal behind ``request`` without ever raising."""
    try:
        token = extract_access_token(request.cookies, request.headers, cookie_name)
        if not token:
            return AuthAbsent(NO_TOKEN)
        if is_token_expired(token):
            return AuthAbsent(TOKEN_EXPIRED)

        raw_user = auth_client.get_user(token)
        return AuthFound(to_principal(raw_user))
    except SupabaseAuthError as exc:
        if exc.is_unauthorized:
            return AuthAbsent(f"Session rejected: {exc}")
        return AuthFailed(f"Auth service error: {exc}")
    except Exception as exc:  # noqa: BLE001
        return AuthFailed(f"Unexpected error: {exc!r}")


def fetch_profile(database: Database, user_id: str) -> Optional[Profile]:
    try:
        row = fetch_profile_row(database, user_id)
    except psycopg2.Error as exc:
        logger.warning("Profile lookup failed for user %s: %s", user_id, exc)
        return None
    if row is None:
        return None
    return to_profile(row)


def resolve_header_context(
    request: Any,
    *,
    auth_client: SupabaseAuthClient,
    database: Database,
    cookie_name: Optional[str] = None,
) -> HeaderContext:
    """Principal and profile for the page header; anonymous on any failure."""
    try:
        result = get_current_user(request, auth_client=auth_client, cookie_name=cookie_name)
        if isinstance(result, AuthFailed):
            logger.warning("Session resolution failed: %s", result.reason)
            return HeaderContext()
        if isinstance(result, AuthAbsent):
            logger.info("No principal: %s", result.reason)
            return HeaderContext()

        principal = result.principal
        profile = fetch_profile(database, principal.id)
        logger.info(
            "Header context: user=%s profile=%s",
            principal.email or "null",
            (profile.display_name or "unnamed") if profile else "null",
        )
        return HeaderContext(principal=principal, profile=profile)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Header context resolution crashed: %s", exc)
        return HeaderContext()
