"""Utilities for reshaping data-service rows and identity-provider users."""

import json
import logging
import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from portal.models import ContactInfo, PartnerView, Principal, Profile

logger = logging.getLogger(__name__)

_CONTACT_FIELDS = ("phone", "email", "website")
_PROFILE_FIELDS = {"id", "display_name", "avatar_url", "preferred_language", "role"}


def parse_rating(value: Any) -> Optional[float]:
    """Coerce a stored rating to float; unusable values become ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            rating = float(text)
        except ValueError:
            logger.warning("Unparseable partner rating %r", value)
            return None
    elif isinstance(value, (int, float, Decimal)):
        rating = float(value)
    else:
        logger.warning("Unexpected partner rating type %s", type(value).__name__)
        return None

    if not math.isfinite(rating):
        logger.warning("Non-finite partner rating %r", value)
        return None
    return rating


def _decode_json(value: Any) -> Any:
    # jsonb columns arrive decoded, json stored as text does not
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            logger.debug("Ignoring non-JSON text value: %.80s", value)
            return None
    return value


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    logger.warning("Expected a list, got %s; using empty list", type(value).__name__)
    return []


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def to_contact_info(value: Any) -> Optional[ContactInfo]:
    block = _decode_json(value)
    if not isinstance(block, Mapping):
        return None
    picked = {name: block.get(name) or None for name in _CONTACT_FIELDS}
    if not any(picked.values()):
        return None
    return ContactInfo(**picked)


def to_partner_view(row: Mapping[str, Any]) -> PartnerView:
    partner_id = row.get("id")
    if partner_id is None:
        raise ValueError("partner row has no id")

    coordinates = _decode_json(row.get("coordinates"))
    if coordinates is not None and not isinstance(coordinates, Mapping):
        logger.warning("Discarding malformed coordinates for partner %s", partner_id)
        coordinates = None

    return PartnerView(
        id=str(partner_id),
        name=row.get("name"),
        type=row.get("type"),
        description=row.get("description"),
        location=row.get("location"),
        price_range=row.get("price_range"),
        rating=parse_rating(row.get("rating")),
        amenities=_as_list(row.get("amenities")),
        coordinates=dict(coordinates) if coordinates is not None else None,
        images=_as_list(row.get("images")),
        contact_info=to_contact_info(row.get("contact_info")),
        created_at=_as_text(row.get("created_at")),
        updated_at=_as_text(row.get("updated_at")),
    )


def _first(raw: Mapping[str, Any], names: Iterable[str]) -> Any:
    for name in names:
        if raw.get(name) is not None:
            return raw[name]
    return None


def to_principal(raw: Mapping[str, Any]) -> Principal:
    """Map a provider user (snake_case) or an API user (camelCase) onto ``Principal``.

    Provider users signal confirmation with ``email_confirmed_at``, API users
    with a boolean ``emailConfirmed``. Fields neither shape carries keep the
    dataclass defaults.
    """
    user_id = raw.get("id")
    if not user_id:
        raise ValueError("identity has no id")

    created_at = _as_text(_first(raw, ("created_at", "createdAt")))
    if "emailConfirmed" in raw:
        # API users carry no timestamps beyond createdAt
        email_confirmed = bool(raw["emailConfirmed"])
        email_confirmed_at = created_at if email_confirmed else None
        confirmed_at = email_confirmed_at
        updated_at = created_at
    else:
        email_confirmed_at = _as_text(raw.get("email_confirmed_at"))
        confirmed_at = _as_text(raw.get("confirmed_at")) or email_confirmed_at
        email_confirmed = email_confirmed_at is not None or confirmed_at is not None
        updated_at = _as_text(raw.get("updated_at"))

    user_metadata = _first(raw, ("user_metadata", "userMetadata")) or {}
    if not isinstance(user_metadata, Mapping):
        user_metadata = {}
    app_metadata = raw.get("app_metadata") or {}
    if not isinstance(app_metadata, Mapping):
        app_metadata = {}

    role = user_metadata.get("role") or raw.get("role") or "authenticated"

    return Principal(
        id=str(user_id),
        email=raw.get("email") or "",
        email_confirmed=email_confirmed,
        created_at=created_at,
        updated_at=updated_at,
        email_confirmed_at=email_confirmed_at,
        confirmed_at=confirmed_at,
        last_sign_in_at=_as_text(_first(raw, ("last_sign_in_at", "lastSignInAt"))),
        user_metadata=dict(user_metadata),
        phone=raw.get("phone") or "",
        aud=raw.get("aud") or "authenticated",
        role=str(role),
        app_metadata=dict(app_metadata),
        identities=_as_list(raw.get("identities")),
        is_anonymous=bool(raw.get("is_anonymous", False)),
    )


def to_profile(row: Mapping[str, Any]) -> Profile:
    extra = {
        name: _as_text(value) if isinstance(value, (datetime, date)) else value
        for name, value in row.items()
        if name not in _PROFILE_FIELDS
    }
    return Profile(
        id=str(row["id"]),
        display_name=row.get("display_name"),
        avatar_url=row.get("avatar_url"),
        preferred_language=row.get("preferred_language"),
        role=row.get("role") or "user",
        extra=extra,
    )
