"""
Core Deduplication Engine

Pairwise matching of contact records and greedy, seed-anchored grouping of
the matches into disjoint duplicate groups.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

from ..config import Config, MatchingConfig
from ..logging_config import Timer, log_context, log_performance
from ..models import ContactRecord, MatchType, MergeStrategy
from .contact_processor import count_fields, select_primary
from .merge_proposals import ConflictResolver, MergeResult, merge_group
from .parallel_matching import compute_match_table
from .similarity_scoring import SimilarityScorer, has_field

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """Why and how strongly two records look like the same person."""
    id_a: str
    id_b: str
    match_type: MatchType
    confidence: float
    matching_fields: List[str] = field(default_factory=list)
    conflicting_fields: List[str] = field(default_factory=list)


@dataclass
class DuplicateGroup:
    """Records believed to describe one person."""
    members: List[ContactRecord]
    primary_record: ContactRecord
    duplicates: List[ContactRecord]
    group_confidence: float = 0.0
    total_field_count: int = 0

    @property
    def member_ids(self) -> List[str]:
        return [m.id for m in self.members]

    def to_dict(self) -> Dict[str, Any]:
        """Summary suitable for read-only reporting."""
        return {
            "primary_id": self.primary_record.id,
            "primary_name": self.primary_record.display_name,
            "duplicate_ids": [d.id for d in self.duplicates],
            "confidence": self.group_confidence,
            "total_field_count": self.total_field_count,
            "members": [
                {
                    "id": m.id,
                    "name": m.display_name,
                    "emails": [e.value for e in m.emails],
                    "phones": [p.value for p in m.phones],
                    "organization": m.organization,
                }
                for m in self.members
            ],
        }


@dataclass
class DeduplicationReport:
    """Results of one duplicate search."""
    total_records: int
    strategy: MergeStrategy
    groups: List[DuplicateGroup] = field(default_factory=list)
    comparisons: int = 0
    processing_time: float = 0.0

    @property
    def duplicate_count(self) -> int:
        """Records that would be removed by merging every group."""
        return sum(len(g.duplicates) for g in self.groups)


MatchLookup = Callable[[int, int], Optional[MatchResult]]


class DeduplicationEngine:
    """
    Contact deduplication engine.

    Scores record pairs with weighted per-field similarity, clusters them in
    one greedy pass and hands groups to the merge engine.
    """

    def __init__(self, config: Optional[Config] = None):
        """Initialize the deduplication engine."""
        self.config = config or Config()
        self.matching: MatchingConfig = self.config.matching
        self.similarity_scorer = SimilarityScorer(self.matching)

        self.stats = {
            "total_comparisons": 0,
            "groups_found": 0,
            "records_grouped": 0,
        }

    def detect_duplicate(
        self, record_a: ContactRecord, record_b: ContactRecord
    ) -> Optional[MatchResult]:
        """
        Compare two records.

        Args:
            record_a: First record
            record_b: Second record

        Returns:
            MatchResult, or None when the fused confidence is below the
            configured minimum
        """
        scores = self.similarity_scorer.calculate_similarity(record_a, record_b)
        matching_fields: List[str] = []
        conflicting_fields: List[str] = []
        confidence = 0.0

        name_score = scores["name"]
        match_type = name_score.match_type

        for field_name, score in scores.items():
            if score.matched:
                matching_fields.append(field_name)
                confidence += score.confidence * self.similarity_scorer.weight_for(field_name)
            elif field_name == "name" or (
                has_field(record_a, field_name) and has_field(record_b, field_name)
            ):
                conflicting_fields.append(field_name)

        # Distinct or garbled names sharing a verified channel
        if not name_score.matched and (
            scores["email"].confidence > self.matching.contact_info_override
            or scores["phone"].confidence > self.matching.contact_info_override
        ):
            match_type = MatchType.CONTACT_INFO

        if confidence < self.matching.minimum_confidence:
            return None

        return MatchResult(
            id_a=record_a.id,
            id_b=record_b.id,
            match_type=match_type,
            confidence=confidence,
            matching_fields=matching_fields,
            conflicting_fields=conflicting_fields,
        )

    def find_duplicates(
        self,
        records: Sequence[ContactRecord],
        strategy: MergeStrategy = MergeStrategy.CONSERVATIVE,
    ) -> List[DuplicateGroup]:
        """Group duplicate records. See ``analyze`` for run statistics."""
        return self.analyze(records, strategy).groups

    def analyze(
        self,
        records: Sequence[ContactRecord],
        strategy: MergeStrategy = MergeStrategy.CONSERVATIVE,
    ) -> DeduplicationReport:
        """
        Find duplicate groups in a snapshot of contacts.

        Each unvisited record seeds a group; every later unvisited record
        whose match with the seed reaches the strategy threshold joins it.
        Members are compared with the seed only, so this is not a transitive
        closure: two records that each match the seed end up together even if
        they do not match each other, and a record that matches a member but
        not the seed is left for a later group.

        Args:
            records: Contact snapshot, in source order
            strategy: Merge strategy; selects the grouping threshold

        Returns:
            DeduplicationReport with groups sorted by descending confidence
        """
        strategy = MergeStrategy.parse(strategy)
        threshold = self.matching.threshold_for(strategy)
        records = list(records)

        with log_context(run_id=str(uuid.uuid4()), strategy=strategy.value):
            logger.info(f"Finding duplicates among {len(records)} contacts")

            report = DeduplicationReport(total_records=len(records), strategy=strategy)
            with Timer() as timer:
                groups = self._group_records(records, threshold, strategy, report)
                report.groups = sorted(groups, key=lambda g: g.group_confidence, reverse=True)
            report.processing_time = timer.duration_ms / 1000

            self.stats["total_comparisons"] += report.comparisons
            self.stats["groups_found"] += len(report.groups)
            self.stats["records_grouped"] += sum(len(g.members) for g in report.groups)

            logger.info(
                f"Found {len(report.groups)} duplicate group(s), "
                f"{report.duplicate_count} duplicate contact(s)"
            )
            log_performance(
                __name__,
                "duplicate search",
                timer.duration_ms,
                comparisons=report.comparisons,
                groups=len(report.groups),
            )

        return report

    def _group_records(
        self,
        records: List[ContactRecord],
        threshold: float,
        strategy: MergeStrategy,
        report: DeduplicationReport,
    ) -> List[DuplicateGroup]:
        lookup = self._build_lookup(records, report)

        visited: Set[str] = set()
        groups: List[DuplicateGroup] = []

        for i, seed in enumerate(records):
            if seed.id in visited:
                continue
            visited.add(seed.id)
            member_indices = [i]

            for j in range(i + 1, len(records)):
                candidate = records[j]
                if candidate.id in visited:
                    continue

                match = lookup(i, j)
                if match and match.confidence >= threshold:
                    logger.debug(
                        f"Grouping {candidate.id} with {seed.id} "
                        f"({match.match_type.value}, {match.confidence:.2f})"
                    )
                    member_indices.append(j)
                    visited.add(candidate.id)

            if len(member_indices) > 1:
                groups.append(self._build_group(records, member_indices, strategy, lookup))

        return groups

    def _build_lookup(
        self, records: List[ContactRecord], report: DeduplicationReport
    ) -> MatchLookup:
        """Pairwise match access, precomputed across workers when configured."""
        if self.matching.max_workers > 1:
            table = compute_match_table(
                records, self.detect_duplicate, self.matching.max_workers
            )
            report.comparisons = len(table)
            return lambda i, j: table[(i, j)]

        cache: Dict[Tuple[int, int], Optional[MatchResult]] = {}

        def lookup(i: int, j: int) -> Optional[MatchResult]:
            key = (i, j)
            if key not in cache:
                cache[key] = self.detect_duplicate(records[i], records[j])
                report.comparisons += 1
            return cache[key]

        return lookup

    def _build_group(
        self,
        records: List[ContactRecord],
        member_indices: List[int],
        strategy: MergeStrategy,
        lookup: MatchLookup,
    ) -> DuplicateGroup:
        members = [records[i] for i in member_indices]
        primary = select_primary(members, strategy)

        return DuplicateGroup(
            members=members,
            primary_record=primary,
            duplicates=[m for m in members if m.id != primary.id],
            group_confidence=self._group_confidence(member_indices, lookup),
            total_field_count=sum(count_fields(m) for m in members),
        )

    def _group_confidence(self, member_indices: List[int], lookup: MatchLookup) -> float:
        """Mean confidence over member pairs that clear the minimum confidence."""
        confidences = []
        for pos, i in enumerate(member_indices):
            for j in member_indices[pos + 1:]:
                match = lookup(i, j)
                if match is not None:
                    confidences.append(match.confidence)

        return sum(confidences) / len(confidences) if confidences else 0.0

    def calculate_group_confidence(self, members: Sequence[ContactRecord]) -> float:
        """Mean pairwise confidence of an arbitrary list of records."""
        members = list(members)
        return self._group_confidence(
            list(range(len(members))),
            lambda i, j: self.detect_duplicate(members[i], members[j]),
        )

    def merge_group(
        self,
        group: DuplicateGroup,
        strategy: MergeStrategy = MergeStrategy.MOST_COMPLETE,
        resolver: Optional[ConflictResolver] = None,
    ) -> MergeResult:
        """Build the merged record for a group."""
        return merge_group(group, strategy=strategy, resolver=resolver)

    def get_statistics(self) -> Dict[str, Any]:
        """Get engine statistics and configuration."""
        return {
            "engine_stats": self.stats.copy(),
            "configuration": self.matching.model_dump(),
        }


def find_duplicates(
    records: Sequence[ContactRecord],
    strategy: MergeStrategy = MergeStrategy.CONSERVATIVE,
    config: Optional[Config] = None,
) -> List[DuplicateGroup]:
    """Group duplicate records using a fresh engine."""
    return DeduplicationEngine(config).find_duplicates(records, strategy)


def detect_duplicate(
    record_a: ContactRecord,
    record_b: ContactRecord,
    config: Optional[Config] = None,
) -> Optional[MatchResult]:
    """Compare two records using a fresh engine."""
    return DeduplicationEngine(config).detect_duplicate(record_a, record_b)
