"""Pydantic models for contact records."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError

NO_NAME = "No Name"


class MatchType(str, Enum):
    """Why two contacts were considered duplicates."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    PHONETIC = "phonetic"
    CONTACT_INFO = "contact_info"


class MergeStrategy(str, Enum):
    """How duplicates are grouped and merged."""

    CONSERVATIVE = "conservative"
    MOST_COMPLETE = "most_complete"
    MOST_RECENT = "most_recent"
    INTERACTIVE = "interactive"

    @classmethod
    def parse(cls, value: Any) -> "MergeStrategy":
        """Parse a strategy name, falling back to conservative."""
        if isinstance(value, cls):
            return value

        key = str(value or "").strip().lower().replace("-", "").replace("_", "")
        aliases = {
            "conservative": cls.CONSERVATIVE,
            "mostcomplete": cls.MOST_COMPLETE,
            "mostrecent": cls.MOST_RECENT,
            "interactive": cls.INTERACTIVE,
        }
        return aliases.get(key, cls.CONSERVATIVE)


class LabeledValue(BaseModel):
    """A labelled email, phone, URL or messaging handle."""

    model_config = ConfigDict(frozen=True)

    value: str
    label: Optional[str] = None


class PostalAddress(BaseModel):
    """Postal address."""

    model_config = ConfigDict(frozen=True)

    label: Optional[str] = None
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""


class SocialProfile(BaseModel):
    """Social network profile."""

    model_config = ConfigDict(frozen=True)

    service: str
    username: str = ""
    url: Optional[str] = None


class ContactRecord(BaseModel):
    """Immutable snapshot of a single contact.

    Records are never mutated by the engine. Merging builds a new record with
    ``model_copy(update=...)``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name_prefix: str = ""
    given_name: str = ""
    middle_name: str = ""
    family_name: str = ""
    name_suffix: str = ""
    nickname: str = ""
    emails: Tuple[LabeledValue, ...] = ()
    phones: Tuple[LabeledValue, ...] = ()
    organization: str = ""
    department: str = ""
    job_title: str = ""
    postal_addresses: Tuple[PostalAddress, ...] = ()
    urls: Tuple[LabeledValue, ...] = ()
    social_profiles: Tuple[SocialProfile, ...] = ()
    instant_messages: Tuple[LabeledValue, ...] = ()
    birthday: Optional[date] = None
    note: str = ""
    image_available: bool = False
    modified_at: Optional[datetime] = Field(
        default=None, description="Last modification time reported by the source"
    )

    @field_validator("id")
    def id_not_blank(cls, v):
        """Reject blank ids."""
        if not v or not v.strip():
            raise ValueError("contact id must not be empty")
        return v

    @field_validator("emails", "phones", "urls", "instant_messages", mode="before")
    def wrap_plain_strings(cls, v):
        """Accept plain strings in place of labelled values."""
        if v is None:
            return ()
        # A single value, not a list of them
        if isinstance(v, (str, dict, LabeledValue)):
            v = (v,)
        return tuple(
            {"value": item} if isinstance(item, str) else item for item in v
        )

    @property
    def name_components(self) -> Tuple[str, ...]:
        """Non-empty name parts in display order (nickname excluded)."""
        parts = (
            self.name_prefix,
            self.given_name,
            self.middle_name,
            self.family_name,
            self.name_suffix,
        )
        return tuple(part.strip() for part in parts if part and part.strip())

    @property
    def full_name(self) -> str:
        """Space-joined name components, empty when there are none."""
        return " ".join(self.name_components)

    @property
    def display_name(self) -> str:
        """Full name, or the "No Name" sentinel."""
        return self.full_name or NO_NAME

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContactRecord":
        """Build a record from a dictionary supplied by a contact source."""
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid contact record: {e.errors()[0]['msg']}",
                field=".".join(str(p) for p in e.errors()[0]["loc"]),
                value=data.get("id") if isinstance(data, dict) else None,
            ) from e
