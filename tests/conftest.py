"""Shared fixtures for contact deduplication tests."""

import itertools
from typing import Any, Dict, List

import pytest

from contactscrub.config import Config
from contactscrub.deduplication import ContactStore, DeduplicationEngine
from contactscrub.models import ContactRecord


_ids = itertools.count(1)


def build_contact(**fields: Any) -> ContactRecord:
    """Build a ContactRecord, generating an id when none is given."""
    fields.setdefault("id", f"contact-{next(_ids)}")
    return ContactRecord(**fields)


@pytest.fixture
def make_contact():
    """Factory fixture for contact records."""
    return build_contact


@pytest.fixture
def engine():
    """Engine with default configuration."""
    return DeduplicationEngine(Config())


@pytest.fixture
def sample_contacts(make_contact) -> List[ContactRecord]:
    """Small address book with two duplicate clusters and two singletons."""
    return [
        make_contact(
            id="john-1",
            given_name="John",
            family_name="Smith",
            emails=["john@x.com"],
            phones=["+1 (555) 123-4567"],
            organization="Acme",
        ),
        make_contact(
            id="alice-1",
            given_name="Alice",
            family_name="Brown",
            emails=["alice@work.com"],
        ),
        make_contact(
            id="john-2",
            given_name="Jon",
            family_name="Smith",
            emails=["JOHN@x.com "],
            phones=["555-123-4567"],
            job_title="Engineer",
        ),
        make_contact(
            id="bob-1",
            given_name="Bob",
            family_name="Brown",
            emails=["alice@work.com"],
        ),
        make_contact(
            id="mary-1",
            given_name="Mary",
            family_name="Jones",
            emails=["mary@home.org"],
            phones=["0207 946 0000"],
        ),
        make_contact(
            id="mary-2",
            given_name="Mary",
            family_name="Jones",
            emails=["mary@home.org"],
            phones=["0207-946-0000"],
            note="Met at conference",
        ),
    ]


class InMemoryContactStore(ContactStore):
    """Contact store double recording every call."""

    def __init__(self, records: List[ContactRecord] = (), fail_create=False, fail_delete_ids=()):
        self.records: Dict[str, ContactRecord] = {r.id: r for r in records}
        self.calls: List[tuple] = []
        self.fail_create = fail_create
        self.fail_delete_ids = set(fail_delete_ids)

    def create_contact(self, record: ContactRecord) -> str:
        self.calls.append(("create", record.id))
        if self.fail_create:
            raise ConnectionError("store unavailable")
        self.records[record.id] = record
        return record.id

    def delete_contact(self, record_id: str) -> None:
        self.calls.append(("delete", record_id))
        if record_id in self.fail_delete_ids:
            raise PermissionError(f"{record_id} is read-only")
        del self.records[record_id]


@pytest.fixture
def store_factory():
    """Factory for in-memory contact stores."""
    return InMemoryContactStore
