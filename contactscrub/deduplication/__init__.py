"""
Contact Deduplication

Finds records that describe the same person, groups them and builds one
merged record per group.

Components:
- Normalization: canonical names, phone numbers and email addresses
- Similarity Scoring: name, email, phone and organization comparators
- Core Engine: weighted pairwise matching and greedy grouping
- Contact Processor: field counting and primary record selection
- Merge Proposals: merged record construction and store replacement
- Parallel Matching: thread-pool evaluation of the pairwise comparisons

Usage:
    from contactscrub.deduplication import DeduplicationEngine

    engine = DeduplicationEngine()
    groups = engine.find_duplicates(records, MergeStrategy.CONSERVATIVE)
    result = engine.merge_group(groups[0])
"""

from .core_engine import (
    DeduplicationEngine,
    DeduplicationReport,
    DuplicateGroup,
    MatchResult,
    detect_duplicate,
    find_duplicates,
)
from .similarity_scoring import SimilarityScorer, FieldScore, SCORERS, soundex
from .normalization import NormalizedName, normalize_name, normalize_phone, normalize_email
from .contact_processor import count_fields, select_primary
from .merge_proposals import (
    ContactStore,
    ConflictResolver,
    MergeExecutor,
    MergeResult,
    MergeRunSummary,
    create_merged_record,
    merge_group,
)
from .parallel_matching import compute_match_table

__all__ = [
    # Core engine
    "DeduplicationEngine",
    "DeduplicationReport",
    "DuplicateGroup",
    "MatchResult",
    "detect_duplicate",
    "find_duplicates",
    # Similarity scoring
    "SimilarityScorer",
    "FieldScore",
    "SCORERS",
    "soundex",
    # Normalization
    "NormalizedName",
    "normalize_name",
    "normalize_phone",
    "normalize_email",
    # Primary selection
    "count_fields",
    "select_primary",
    # Merge execution
    "ContactStore",
    "ConflictResolver",
    "MergeExecutor",
    "MergeResult",
    "MergeRunSummary",
    "create_merged_record",
    "merge_group",
    # Concurrency
    "compute_match_table",
]
