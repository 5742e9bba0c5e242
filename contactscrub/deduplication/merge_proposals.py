"""
Merge Construction and Execution

Builds one merged contact per duplicate group and, when asked, replaces the
group's records in a caller-supplied contact store.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import ErrorHandler, MergeError, PersistenceError
from ..models import ContactRecord, MergeStrategy
from .contact_processor import count_fields, select_primary
from .normalization import normalize_email, normalize_phone

if TYPE_CHECKING:
    from .core_engine import DuplicateGroup

logger = logging.getLogger(__name__)

# Filled from other members only while empty on the merged record
SCALAR_MERGE_FIELDS = (
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
    "birthday",
)

# Concatenated across members without further deduplication
APPEND_FIELDS = (
    "postal_addresses",
    "urls",
    "social_profiles",
    "instant_messages",
)

ConflictResolver = Callable[[str, Any, Any, ContactRecord], Any]


@dataclass
class MergeResult:
    """Result of merging one duplicate group."""
    merged_record: ContactRecord
    original_records: List[ContactRecord]
    conflicts_resolved: List[str] = field(default_factory=list)
    fields_merged: int = 0
    success: bool = True
    error: Optional[str] = None
    persisted_id: Optional[str] = None

    @property
    def original_ids(self) -> List[str]:
        return [r.id for r in self.original_records]


@dataclass
class MergeRunSummary:
    """Outcome of merging a list of groups into a store."""
    results: List[MergeResult] = field(default_factory=list)
    groups_merged: int = 0
    records_removed: int = 0

    @property
    def failures(self) -> List[MergeResult]:
        return [r for r in self.results if not r.success]


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _same_value(a: Any, b: Any) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        return a.strip().lower() == b.strip().lower()
    return a == b


def _union_by_key(entries, key_func) -> Tuple:
    """Keep the first entry for each normalized key."""
    seen = set()
    kept = []
    for entry in entries:
        key = key_func(entry.value) or entry.value.strip().lower()
        if key and key not in seen:
            seen.add(key)
            kept.append(entry)
    return tuple(kept)


def create_merged_record(
    members: Sequence[ContactRecord],
    strategy: MergeStrategy = MergeStrategy.MOST_COMPLETE,
    resolver: Optional[ConflictResolver] = None,
    primary: Optional[ContactRecord] = None,
) -> Tuple[ContactRecord, List[str]]:
    """
    Fuse a group of records into a new record.

    Starts from the primary record and walks the other members in group order.
    Empty scalar fields are filled from the first member that has a value;
    the primary's own values are kept. Emails and phones are unioned on their
    normalized form, keeping the first entry (and its label) seen. Addresses,
    URLs, social profiles and messaging handles are concatenated.

    Under the ``interactive`` strategy a differing non-empty value is passed
    to ``resolver(field, current, candidate, candidate_record)``, whose return
    value is kept; without a resolver the current value stays.

    Args:
        members: Group members in group order
        strategy: Merge strategy
        resolver: Conflict callback for the interactive strategy
        primary: Record to start from; selected from members when omitted

    Returns:
        The merged record (with a fresh id) and descriptions of the conflicts
        that were resolved
    """
    if not members:
        raise MergeError("Cannot merge an empty group")

    strategy = MergeStrategy.parse(strategy)
    primary = primary or select_primary(members, strategy)
    others = [m for m in members if m.id != primary.id]
    ordered = [primary] + others

    values: Dict[str, Any] = {name: getattr(primary, name) for name in SCALAR_MERGE_FIELDS}
    conflicts: List[str] = []
    ask = resolver if strategy == MergeStrategy.INTERACTIVE else None

    for member in others:
        for name in SCALAR_MERGE_FIELDS:
            current = values[name]
            candidate = getattr(member, name)

            if _is_empty(candidate) or _same_value(current, candidate):
                continue

            if _is_empty(current):
                values[name] = candidate
                continue

            if ask is not None:
                chosen = ask(name, current, candidate, member)
                if chosen is not None:
                    values[name] = chosen
                rejected = candidate if values[name] == current else current
                conflicts.append(
                    f"{name}: chose {values[name]!r} over {rejected!r} ({member.id})"
                )
            else:
                conflicts.append(
                    f"{name}: kept {current!r}, ignored {candidate!r} from {member.id}"
                )

    update: Dict[str, Any] = dict(values)
    update["id"] = str(uuid.uuid4())
    update["emails"] = _union_by_key(
        (e for m in ordered for e in m.emails), normalize_email
    )
    update["phones"] = _union_by_key(
        (p for m in ordered for p in m.phones), normalize_phone
    )
    for name in APPEND_FIELDS:
        update[name] = tuple(item for m in ordered for item in getattr(m, name))
    update["image_available"] = any(m.image_available for m in ordered)

    return primary.model_copy(update=update), conflicts


def merge_group(
    group: "DuplicateGroup",
    strategy: MergeStrategy = MergeStrategy.MOST_COMPLETE,
    resolver: Optional[ConflictResolver] = None,
) -> MergeResult:
    """Build the merge result for a duplicate group. Nothing is persisted."""
    merged, conflicts = create_merged_record(
        group.members, strategy, resolver=resolver, primary=group.primary_record
    )

    logger.debug(
        f"Merged {len(group.members)} records into {merged.id} "
        f"with {len(conflicts)} conflict(s)"
    )

    return MergeResult(
        merged_record=merged,
        original_records=list(group.members),
        conflicts_resolved=conflicts,
        fields_merged=count_fields(merged),
        success=True,
    )


class ContactStore(ABC):
    """Write access to the contact source, supplied by the caller."""

    @abstractmethod
    def create_contact(self, record: ContactRecord) -> str:
        """Persist a new record and return its id in the store."""
        pass

    @abstractmethod
    def delete_contact(self, record_id: str) -> None:
        """Delete a record."""
        pass


class MergeExecutor:
    """
    Replaces duplicate groups with their merged record in a contact store.

    The merged record is created first; originals are deleted only after the
    create succeeded. Failures are reported on the returned MergeResult and
    never retried.
    """

    def __init__(self, error_handler: Optional[ErrorHandler] = None):
        """Initialize the merge executor."""
        self.error_handler = error_handler or ErrorHandler()

        self.stats = {
            "total_merges": 0,
            "successful_merges": 0,
            "failed_merges": 0,
            "records_deleted": 0,
        }

    def apply(self, result: MergeResult, store: ContactStore) -> MergeResult:
        """
        Persist one merge result.

        Args:
            result: Output of ``merge_group``
            store: Caller's contact store

        Returns:
            The result, updated with the persisted id or the failure
        """
        self.stats["total_merges"] += 1

        if not result.success:
            self.stats["failed_merges"] += 1
            return result

        original_ids = result.original_ids

        with self.error_handler.error_context(operation="create", record_ids=original_ids):
            try:
                persisted_id = store.create_contact(result.merged_record)
            except Exception as e:
                return self._failed(
                    result,
                    PersistenceError(
                        f"creating merged contact failed: {e}",
                        operation="create",
                        record_ids=original_ids,
                        cause=e,
                    ),
                )

        remaining = list(original_ids)
        with self.error_handler.error_context(operation="delete", record_ids=original_ids):
            for record_id in original_ids:
                try:
                    store.delete_contact(record_id)
                except Exception as e:
                    return self._failed(
                        replace(result, persisted_id=persisted_id),
                        PersistenceError(
                            f"deleting {record_id} failed: {e}",
                            operation="delete",
                            record_ids=remaining,
                            cause=e,
                        ),
                    )
                remaining.remove(record_id)
                self.stats["records_deleted"] += 1

        self.stats["successful_merges"] += 1
        logger.info(
            f"Merged {len(original_ids)} contacts into {persisted_id}"
        )
        return replace(result, persisted_id=persisted_id)

    def merge_all(
        self,
        groups: Sequence["DuplicateGroup"],
        store: ContactStore,
        strategy: MergeStrategy = MergeStrategy.MOST_COMPLETE,
        resolver: Optional[ConflictResolver] = None,
    ) -> MergeRunSummary:
        """Merge and persist every group, continuing past failures."""
        summary = MergeRunSummary()

        for index, group in enumerate(groups, 1):
            logger.info(f"Processing group {index}/{len(groups)}")
            result = self.apply(merge_group(group, strategy, resolver), store)
            summary.results.append(result)

            if result.success:
                summary.groups_merged += 1
                summary.records_removed += len(group.duplicates)

        logger.info(
            f"Merge run complete: {summary.groups_merged} group(s) merged, "
            f"{summary.records_removed} duplicate(s) removed, "
            f"{len(summary.failures)} failure(s)"
        )
        return summary

    def _failed(self, result: MergeResult, error: PersistenceError) -> MergeResult:
        self.error_handler.handle_error(error, reraise=False)
        self.stats["failed_merges"] += 1
        return replace(
            result,
            success=False,
            error=self.error_handler.create_user_friendly_message(error),
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Get merge executor statistics."""
        total = self.stats["total_merges"]
        return {
            **self.stats,
            "success_rate": (self.stats["successful_merges"] / max(total, 1)) * 100,
        }
