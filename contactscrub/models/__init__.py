"""Data models for contact deduplication."""

from .contact import (
    NO_NAME,
    ContactRecord,
    LabeledValue,
    MatchType,
    MergeStrategy,
    PostalAddress,
    SocialProfile,
)

__all__ = [
    "NO_NAME",
    "ContactRecord",
    "LabeledValue",
    "MatchType",
    "MergeStrategy",
    "PostalAddress",
    "SocialProfile",
]
