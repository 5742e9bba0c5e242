"""Tests for the per-field similarity scorers."""

import pytest

from contactscrub.config import MatchingConfig
from contactscrub.deduplication.similarity_scoring import (
    SCORERS,
    SimilarityScorer,
    compare_emails,
    compare_names,
    compare_organizations,
    compare_phones,
    jaccard,
    levenshtein_similarity,
    soundex,
)
from contactscrub.models import MatchType


@pytest.fixture
def config():
    return MatchingConfig()


class TestSoundex:
    """Soundex encoding."""

    def test_similar_sounding_names_share_code(self):
        assert soundex("Robert") == "R163"
        assert soundex("Rupert") == "R163"

    def test_drops_unmapped_and_collapses_repeats(self):
        assert soundex("Ashcraft") == "A261"

    def test_padding_and_empty(self):
        assert soundex("A") == "A000"
        assert soundex("") == "0000"

    def test_case_insensitive(self):
        assert soundex("john smith") == soundex("JOHN SMITH") == "J525"


class TestHelpers:
    """Levenshtein and Jaccard helpers."""

    def test_levenshtein_similarity(self):
        assert levenshtein_similarity("john smith", "jon smith") == pytest.approx(0.9)
        assert levenshtein_similarity("", "") == 1.0

    def test_jaccard(self):
        assert jaccard(frozenset({"a", "b"}), frozenset({"b", "c"})) == pytest.approx(1 / 3)
        assert jaccard(frozenset(), frozenset()) == 0.0


class TestCompareNames:
    """Name scorer."""

    def test_exact_case_insensitive(self, make_contact, config):
        a = make_contact(given_name="John", family_name="Smith")
        b = make_contact(given_name="john", family_name="SMITH")
        score = compare_names(a, b, config)
        assert score.matched
        assert score.confidence == 1.0
        assert score.match_type == MatchType.EXACT

    def test_word_containment_when_counts_differ(self, make_contact, config):
        a = make_contact(given_name="John", family_name="Smith")
        b = make_contact(given_name="John")
        score = compare_names(a, b, config)
        assert score.matched
        assert score.confidence == pytest.approx(0.85)
        assert score.match_type == MatchType.FUZZY

    def test_initial_contained_in_longer_word(self, make_contact, config):
        a = make_contact(given_name="J", family_name="Smith")
        b = make_contact(given_name="John", middle_name="Alan", family_name="Smith")
        assert compare_names(a, b, config).confidence == pytest.approx(0.85)

    def test_containment_counts_words_not_components(self, make_contact, config):
        a = make_contact(given_name="Mary Ann", family_name="Smith")
        b = make_contact(given_name="Mary", family_name="Smith")
        score = compare_names(a, b, config)
        assert score.confidence == pytest.approx(0.85)
        assert score.match_type == MatchType.FUZZY

    def test_levenshtein_fuzzy(self, make_contact, config):
        a = make_contact(given_name="John", family_name="Smith")
        b = make_contact(given_name="Jon", family_name="Smith")
        score = compare_names(a, b, config)
        assert score.matched
        assert score.confidence == pytest.approx(0.9)
        assert score.match_type == MatchType.FUZZY

    def test_phonetic(self, make_contact, config):
        a = make_contact(given_name="John", family_name="Smith")
        b = make_contact(given_name="Jon", family_name="Smythe")
        score = compare_names(a, b, config)
        assert score.matched
        assert score.confidence == pytest.approx(0.7 * 0.9)
        assert score.match_type == MatchType.PHONETIC

    def test_different_names(self, make_contact, config):
        a = make_contact(given_name="Alice", family_name="Brown")
        b = make_contact(given_name="Bob", family_name="Brown")
        score = compare_names(a, b, config)
        assert not score.matched
        assert score.confidence == 0.0

    def test_symmetric(self, make_contact, config):
        a = make_contact(given_name="J", family_name="Smith")
        b = make_contact(given_name="John", middle_name="Alan", family_name="Smith")
        assert compare_names(a, b, config) == compare_names(b, a, config)


class TestCompareChannels:
    """Email and phone scorers."""

    def test_emails_jaccard(self, make_contact, config):
        a = make_contact(emails=["a@x.com", "b@x.com"])
        b = make_contact(emails=["B@X.com", "c@x.com"])
        score = compare_emails(a, b, config)
        assert score.matched
        assert score.confidence == pytest.approx(1 / 3)

    def test_emails_disjoint(self, make_contact, config):
        a = make_contact(emails=["a@x.com"])
        b = make_contact(emails=["b@x.com"])
        assert not compare_emails(a, b, config).matched

    def test_emails_missing(self, make_contact, config):
        assert not compare_emails(make_contact(), make_contact(), config).matched

    def test_phones_normalized_before_comparison(self, make_contact, config):
        a = make_contact(phones=["+1 (555) 123-4567"])
        b = make_contact(phones=["555.123.4567"])
        score = compare_phones(a, b, config)
        assert score.matched
        assert score.confidence == 1.0


class TestCompareOrganizations:
    """Organization scorer."""

    def test_exact(self, make_contact, config):
        score = compare_organizations(
            make_contact(organization="Acme"), make_contact(organization=" acme"), config
        )
        assert score.matched and score.confidence == 1.0

    def test_containment(self, make_contact, config):
        score = compare_organizations(
            make_contact(organization="Acme Corp"), make_contact(organization="acme"), config
        )
        assert score.matched and score.confidence == pytest.approx(0.8)

    def test_empty_never_matches(self, make_contact, config):
        assert not compare_organizations(
            make_contact(organization=""), make_contact(organization=""), config
        ).matched
        assert not compare_organizations(
            make_contact(organization="Acme"), make_contact(), config
        ).matched

    def test_unrelated(self, make_contact, config):
        assert not compare_organizations(
            make_contact(organization="Acme"), make_contact(organization="Globex"), config
        ).matched


class TestSimilarityScorer:
    """Scorer table wrapper."""

    def test_scores_every_field(self, make_contact):
        scorer = SimilarityScorer()
        scores = scorer.calculate_similarity(
            make_contact(given_name="Ann"), make_contact(given_name="Ann")
        )
        assert list(scores) == list(SCORERS) == ["name", "email", "phone", "organization"]

    def test_weights_follow_config(self):
        scorer = SimilarityScorer(MatchingConfig(email_weight=0.5))
        assert scorer.weight_for("email") == 0.5
        assert scorer.weight_for("name") == 0.4

    def test_configured_containment_confidence(self, make_contact):
        scorer = SimilarityScorer(MatchingConfig(name_containment_confidence=0.7))
        score = scorer.score(
            "name", make_contact(given_name="Ann", family_name="Lee"), make_contact(given_name="Ann")
        )
        assert score.confidence == pytest.approx(0.7)
