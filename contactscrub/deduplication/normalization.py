"""
Field Normalization

Canonical forms for names, phone numbers and email addresses so that the
similarity scorers compare like with like.
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Tuple

from ..models import ContactRecord

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class NormalizedName:
    """Lowercased name components and their space-joined form."""
    components: Tuple[str, ...]

    @property
    def full(self) -> str:
        return " ".join(self.components)

    @property
    def words(self) -> Tuple[str, ...]:
        return tuple(self.full.split())

    def __bool__(self) -> bool:
        return bool(self.components)


def normalize_name(record: ContactRecord) -> NormalizedName:
    """Normalize a record's name components.

    A record without any name components normalizes to an empty name. Callers
    that display names substitute ``NO_NAME`` themselves.
    """
    return NormalizedName(tuple(part.lower() for part in record.name_components))


def normalize_phone(phone: str) -> str:
    """Reduce a phone number to its digits.

    An 11-digit number starting with the NANP country code "1" loses that
    digit, so "+1 (555) 123-4567" and "555-123-4567" compare equal. Other
    country codes are left as they are.
    """
    digits = _NON_DIGITS.sub("", phone or "")
    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]
    return digits


def normalize_email(email: str) -> str:
    """Trim and lowercase an email address."""
    return (email or "").strip().lower()


def email_set(record: ContactRecord) -> FrozenSet[str]:
    """Normalized, non-empty email addresses of a record."""
    return frozenset(
        normalized
        for normalized in (normalize_email(e.value) for e in record.emails)
        if normalized
    )


def phone_set(record: ContactRecord) -> FrozenSet[str]:
    """Normalized, non-empty phone numbers of a record."""
    return frozenset(
        normalized
        for normalized in (normalize_phone(p.value) for p in record.phones)
        if normalized
    )
