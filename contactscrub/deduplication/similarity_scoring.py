"""
Similarity Scoring System

Per-field comparators for contact records. Each scorer is a pure function
returning a ``FieldScore`` (matched flag, confidence in [0, 1], match type);
``SCORERS`` maps field names to scorers and ``SimilarityScorer`` runs them
with a given ``MatchingConfig``.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Optional

import jellyfish

from ..config import MatchingConfig
from ..models import ContactRecord, MatchType
from .normalization import email_set, normalize_name, phone_set

logger = logging.getLogger(__name__)

SOUNDEX_CODES = {
    **dict.fromkeys("BFPV", "1"),
    **dict.fromkeys("CGJKQSXZ", "2"),
    **dict.fromkeys("DT", "3"),
    "L": "4",
    **dict.fromkeys("MN", "5"),
    "R": "6",
}


@dataclass(frozen=True)
class FieldScore:
    """Outcome of comparing one field of two contacts."""
    matched: bool
    confidence: float = 0.0
    match_type: MatchType = MatchType.EXACT


NO_MATCH = FieldScore(False, 0.0)


def soundex(value: str) -> str:
    """Four character Soundex code.

    The first character is kept as is; later letters map to digit codes,
    unmapped characters are dropped and a code equal to the previous emitted
    character is not repeated.
    """
    value = value.upper()
    if not value:
        return "0000"

    code = value[0]
    for char in value[1:]:
        mapped = SOUNDEX_CODES.get(char)
        if mapped and code[-1] != mapped:
            code += mapped

    return code.ljust(4, "0")[:4]


def levenshtein_similarity(a: str, b: str) -> float:
    """1 - edit distance / length of the longer string."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - jellyfish.levenshtein_distance(a, b) / longest


def jaccard(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    """|A and B| / |A or B|, 0.0 for two empty sets."""
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def compare_names(
    record_a: ContactRecord, record_b: ContactRecord, config: MatchingConfig
) -> FieldScore:
    """Compare full names: exact, word containment, edit distance, then Soundex."""
    normalized_a = normalize_name(record_a)
    normalized_b = normalize_name(record_b)
    name_a, name_b = normalized_a.full, normalized_b.full

    if name_a == name_b:
        return FieldScore(True, 1.0, MatchType.EXACT)

    # "John Smith" vs "John" or "Jon Smithson"
    words_a = normalized_a.words
    words_b = normalized_b.words
    if len(words_a) != len(words_b):
        shorter, longer = (words_a, words_b) if len(words_a) < len(words_b) else (words_b, words_a)
        if all(any(w in other or other in w for other in longer) for w in shorter):
            return FieldScore(True, config.name_containment_confidence, MatchType.FUZZY)

    similarity = levenshtein_similarity(name_a, name_b)
    if similarity >= config.fuzzy_name_threshold:
        return FieldScore(True, similarity, MatchType.FUZZY)

    if similarity >= config.phonetic_name_threshold and soundex(name_a) == soundex(name_b):
        return FieldScore(True, similarity * config.phonetic_penalty, MatchType.PHONETIC)

    return NO_MATCH


def compare_emails(
    record_a: ContactRecord, record_b: ContactRecord, config: MatchingConfig
) -> FieldScore:
    """Jaccard similarity of normalized email sets."""
    emails_a, emails_b = email_set(record_a), email_set(record_b)
    if not emails_a & emails_b:
        return NO_MATCH
    return FieldScore(True, jaccard(emails_a, emails_b))


def compare_phones(
    record_a: ContactRecord, record_b: ContactRecord, config: MatchingConfig
) -> FieldScore:
    """Jaccard similarity of normalized phone sets."""
    phones_a, phones_b = phone_set(record_a), phone_set(record_b)
    if not phones_a & phones_b:
        return NO_MATCH
    return FieldScore(True, jaccard(phones_a, phones_b))


def compare_organizations(
    record_a: ContactRecord, record_b: ContactRecord, config: MatchingConfig
) -> FieldScore:
    """Exact or containment match of organization names."""
    org_a = record_a.organization.strip().lower()
    org_b = record_b.organization.strip().lower()

    if not org_a or not org_b:
        return NO_MATCH

    if org_a == org_b:
        return FieldScore(True, 1.0)

    if org_a in org_b or org_b in org_a:
        return FieldScore(True, config.organization_containment_confidence)

    return NO_MATCH


Scorer = Callable[[ContactRecord, ContactRecord, MatchingConfig], FieldScore]

SCORERS: Dict[str, Scorer] = {
    "name": compare_names,
    "email": compare_emails,
    "phone": compare_phones,
    "organization": compare_organizations,
}


def has_field(record: ContactRecord, field_name: str) -> bool:
    """Whether a record carries data for a scored field."""
    if field_name == "name":
        return bool(normalize_name(record))
    if field_name == "email":
        return bool(email_set(record))
    if field_name == "phone":
        return bool(phone_set(record))
    if field_name == "organization":
        return bool(record.organization.strip())
    return False


class SimilarityScorer:
    """Runs every field scorer for a pair of contacts."""

    def __init__(self, config: Optional[MatchingConfig] = None):
        self.config = config or MatchingConfig()

    def weight_for(self, field_name: str) -> float:
        return getattr(self.config, f"{field_name}_weight")

    def score(self, field_name: str, record_a: ContactRecord, record_b: ContactRecord) -> FieldScore:
        return SCORERS[field_name](record_a, record_b, self.config)

    def calculate_similarity(
        self, record_a: ContactRecord, record_b: ContactRecord
    ) -> Dict[str, FieldScore]:
        """Score every field, in weight order."""
        return {
            field_name: scorer(record_a, record_b, self.config)
            for field_name, scorer in SCORERS.items()
        }
