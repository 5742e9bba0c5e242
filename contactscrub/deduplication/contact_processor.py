"""
Contact Processor

Field accounting for contact records and selection of the record that
survives a merge.
"""

import logging
from typing import Sequence

from ..models import ContactRecord, MergeStrategy

logger = logging.getLogger(__name__)

SCALAR_FIELDS = (
    "name_prefix",
    "given_name",
    "middle_name",
    "family_name",
    "name_suffix",
    "nickname",
    "organization",
    "department",
    "job_title",
    "note",
)

COLLECTION_FIELDS = (
    "emails",
    "phones",
    "postal_addresses",
    "urls",
    "social_profiles",
)


def count_fields(record: ContactRecord) -> int:
    """Number of populated fields.

    Each non-empty scalar counts once, each entry of a repeating field counts
    once, plus one for a birthday and one for an image.
    """
    count = sum(1 for name in SCALAR_FIELDS if getattr(record, name).strip())
    count += sum(len(getattr(record, name)) for name in COLLECTION_FIELDS)

    if record.birthday is not None:
        count += 1
    if record.image_available:
        count += 1

    return count


def select_primary(
    members: Sequence[ContactRecord],
    strategy: MergeStrategy = MergeStrategy.CONSERVATIVE,
) -> ContactRecord:
    """Pick the record to keep for a group.

    The member with the strictly greatest field count wins, ties going to the
    earliest member. Under ``most_recent`` the most recently modified member
    wins instead, as long as at least one member reports a modification time.
    """
    if not members:
        raise ValueError("cannot select a primary record from an empty group")

    if MergeStrategy.parse(strategy) == MergeStrategy.MOST_RECENT:
        dated = [m for m in members if m.modified_at is not None]
        if dated:
            primary = dated[0]
            for member in dated[1:]:
                if _timestamp(member) > _timestamp(primary):
                    primary = member
            return primary
        logger.debug("No modification times in group, falling back to field count")

    primary = members[0]
    best = count_fields(primary)
    for member in members[1:]:
        fields = count_fields(member)
        if fields > best:
            primary, best = member, fields

    return primary


def _timestamp(record: ContactRecord) -> float:
    # Naive and aware datetimes are not comparable; compare epoch seconds
    return record.modified_at.timestamp()
