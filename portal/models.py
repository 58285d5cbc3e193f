"""Core data models shared by the partner and session adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass(slots=True)
class ContactInfo:
    """Contact block of a partner; only these three keys are ever exposed."""

    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        # unset subfields are left out rather than sent as null
        fields = {"phone": self.phone, "email": self.email, "website": self.website}
        return {name: value for name, value in fields.items() if value is not None}


@dataclass(slots=True)
class PartnerView:
    """Normalized snapshot of a row from the unified ``partners`` view."""

    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    price_range: Optional[str] = None
    rating: Optional[float] = None
    amenities: List[str] = field(default_factory=list)
    coordinates: Optional[Dict[str, Any]] = None
    images: List[str] = field(default_factory=list)
    contact_info: Optional[ContactInfo] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "location": self.location,
            "price_range": self.price_range,
            "rating": self.rating,
            "amenities": list(self.amenities),
            "coordinates": self.coordinates,
            "images": list(self.images),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.contact_info is not None:
            payload["contact_info"] = self.contact_info.to_dict()
        return payload


@dataclass(slots=True)
class Principal:
    """Authenticated identity, in the shape the identity provider's clients expect.

    ``phone``, ``aud``, ``role``, ``app_metadata``, ``identities`` and
    ``is_anonymous`` are never resolved by this service but are always
    present so every consumer sees the same shape.
    """

    id: str
    email: str = ""
    email_confirmed: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    email_confirmed_at: Optional[str] = None
    confirmed_at: Optional[str] = None
    last_sign_in_at: Optional[str] = None
    user_metadata: Dict[str, Any] = field(default_factory=dict)
    phone: str = ""
    aud: str = "authenticated"
    role: str = "authenticated"
    app_metadata: Dict[str, Any] = field(default_factory=dict)
    identities: List[Dict[str, Any]] = field(default_factory=list)
    is_anonymous: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "aud": self.aud,
            "role": self.role,
            "email": self.email,
            "email_confirmed_at": self.email_confirmed_at,
            "confirmed_at": self.confirmed_at,
            "phone": self.phone,
            "last_sign_in_at": self.last_sign_in_at,
            "app_metadata": dict(self.app_metadata),
            "user_metadata": dict(self.user_metadata),
            "identities": list(self.identities),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_anonymous": self.is_anonymous,
        }

    def to_api_user(self) -> Dict[str, Any]:
        """Compact camelCase shape returned by ``/api/auth/me``."""
        return {
            "id": self.id,
            "email": self.email,
            "emailConfirmed": self.email_confirmed,
            "createdAt": self.created_at,
            "lastSignInAt": self.last_sign_in_at,
            "userMetadata": dict(self.user_metadata),
        }


@dataclass(slots=True)
class Profile:
    """Presentation data a user chose for themselves, keyed by principal id."""

    id: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    preferred_language: Optional[str] = None
    role: str = "user"
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.extra,
            "id": self.id,
            "display_name": self.display_name,
            "avatar_url": self.avatar_url,
            "preferred_language": self.preferred_language,
            "role": self.role,
        }


@dataclass(slots=True)
class HeaderContext:
    principal: Optional[Principal] = None
    profile: Optional[Profile] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "principal": self.principal.to_dict() if self.principal else None,
            "profile": self.profile.to_dict() if self.profile else None,
        }


@dataclass(slots=True, frozen=True)
class AuthFound:
    principal: Principal


@dataclass(slots=True, frozen=True)
class AuthAbsent:
    reason: str = "No access token"


@dataclass(slots=True, frozen=True)
class AuthFailed:
    reason: str


AuthResult = Union[AuthFound, AuthAbsent, AuthFailed]
