"""
Shared fakes and fixtures: an in-memory record store and sample bookings.
"""

import pytest

from recordguard.models import AccessContext, Record, Role, Status


class FakeLookup:
    """In-memory stand-in for SqlRecordLookup."""

    def __init__(self, records=(), fail=None):
        self.records = {r.code: r for r in records}
        self.fail = fail
        self.calls = []
        self.updates = []

    def _maybe_fail(self):
        if self.fail is not None:
            raise self.fail

    def fetch_by_code(self, code):
        self.calls.append(("code", code))
        self._maybe_fail()
        return self.records.get(code.upper())

    def search_by_fragment(self, fragment):
        self.calls.append(("fragment", fragment))
        self._maybe_fail()
        frag = fragment.lower()
        return [
            r for r in self.records.values()
            if frag in r.owner_name.lower() or frag in r.provider_name.lower()
        ]

    def list_for_owner(self, owner_id):
        self.calls.append(("owner", owner_id))
        self._maybe_fail()
        return [r for r in self.records.values() if r.owner_id == owner_id]

    def list_for_provider(self, provider_id):
        self.calls.append(("provider", provider_id))
        self._maybe_fail()
        return [r for r in self.records.values() if r.provider_id == provider_id]

    def update_status(self, code, status):
        self.updates.append((code, status))
        self.records[code].status = status


def make_records():
    return [
        Record(
            code="AUR1234", owner_id="C1", provider_id="P1", status=Status.CLOSING,
            owner_name="Laura Perez", provider_name="Sarah Johnson",
            owner_email="laura@example.com", owner_phone="+57 300 000 0001",
            service_name="Relaxing massage", scheduled_date="2026-10-20",
            start_time="17:00", duration_minutes=60, price=120000.0,
            notes="Home visit",
        ),
        Record(
            code="AUR7TX9", owner_id="C2", provider_id="P2", status=Status.RECOVERY,
            owner_name="Laura Gomez", provider_name="Mike Chen",
            owner_email="lgomez@example.com", service_name="Reflexology",
            scheduled_date="2026-10-21", start_time="11:00", duration_minutes=45,
        ),
        Record(
            code="ZX9K2Q1", owner_id="C3", provider_id="P1", status=Status.CHECKED_IN,
            owner_name="John Smith", provider_name="Sarah Johnson",
            service_name="Deep tissue massage", scheduled_date="2026-10-22",
            start_time="09:00", duration_minutes=90,
        ),
    ]


@pytest.fixture
def records():
    return make_records()


@pytest.fixture
def lookup(records):
    return FakeLookup(records)


@pytest.fixture
def guest():
    return AccessContext(user_id=None, display_name="Guest", role=Role.GUEST, party_id=None)


@pytest.fixture
def owner():
    return AccessContext(user_id=3, display_name="Laura Perez", role=Role.OWNER, party_id="C1")


@pytest.fixture
def staff():
    return AccessContext(user_id=2, display_name="Sarah Johnson", role=Role.PRIVILEGED_STAFF, party_id="P1")


@pytest.fixture
def admin():
    return AccessContext(user_id=1, display_name="Admin", role=Role.ADMIN, party_id=None)
