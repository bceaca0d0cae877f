"""
Unit tests for the role-gated booking search.
"""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from conftest import FakeLookup, make_records
from recordguard.authorizer import (
    authorize,
    authorize_async,
    disclose,
    name_fragments,
    own_records,
)
from recordguard.models import (
    AccessContext,
    CodeLookup,
    Forbidden,
    IntentKind,
    LookupFailure,
    Multiple,
    NameLookup,
    NoQuery,
    NotFound,
    RecordList,
    Role,
    Single,
)
from recordguard.rbac import STAFF_FIELDS, policy_for


# ── Helpers / Fakes ──────────────────────────────────────────────────

class AsyncFakeLookup:
    def __init__(self, records=(), delay=0.0, fail=None):
        self._sync = FakeLookup(records, fail=fail)
        self.delay = delay

    async def fetch_by_code(self, code):
        await asyncio.sleep(self.delay)
        return self._sync.fetch_by_code(code)

    async def search_by_fragment(self, fragment):
        await asyncio.sleep(self.delay)
        return self._sync.search_by_fragment(fragment)


# ── Tests: code lookups ──────────────────────────────────────────────

def test_guest_code_lookup_discloses_code_and_status_only(guest, lookup):
    result = authorize(guest, "Check AUR1234", lookup)
    assert isinstance(result, Single)
    assert result.intent == CodeLookup("AUR1234")
    assert result.record == {"code": "AUR1234", "status": "closing"}


def test_code_lookup_is_case_insensitive(guest, lookup):
    result = authorize(guest, "status of aur1234?", lookup)
    assert isinstance(result, Single)
    assert lookup.calls == [("code", "AUR1234")]


def test_unknown_code_is_not_found(guest, lookup):
    result = authorize(guest, "Check QQQ999", lookup)
    assert isinstance(result, NotFound)
    assert result.intent == CodeLookup("QQQ999")


def test_owner_sees_full_detail_on_own_booking(owner, lookup):
    result = authorize(owner, "AUR1234", lookup)
    assert isinstance(result, Single)
    assert result.record["owner_email"] == "laura@example.com"
    assert result.record["provider_name"] == "Sarah Johnson"
    assert "owner_initials" not in result.record


def test_owner_sees_only_status_on_someone_elses_code(owner, lookup):
    result = authorize(owner, "AUR7TX9", lookup)
    assert isinstance(result, Single)
    assert set(result.record) == {"code", "status"}


def test_staff_sees_initials_and_schedule_on_assignment(staff, lookup):
    result = authorize(staff, "Check AUR1234", lookup)
    assert isinstance(result, Single)
    assert set(result.record) == STAFF_FIELDS
    assert result.record["owner_initials"] == "Laura P."
    assert "owner_email" not in result.record


def test_staff_other_providers_booking_is_not_found(staff, lookup):
    result = authorize(staff, "Check AUR7TX9", lookup)
    assert isinstance(result, NotFound)
    assert "scope:provider-mismatch" in result.trail


def test_scope_mismatch_looks_like_absence_to_caller(staff, lookup):
    mismatch = authorize(staff, "Check AUR7TX9", lookup).to_dict()
    absent = authorize(staff, "Check QQQ999", lookup).to_dict()
    assert set(mismatch) == set(absent)
    assert mismatch["kind"] == absent["kind"] == "not_found"
    assert "trail" not in mismatch


# ── Tests: name lookups ──────────────────────────────────────────────

@pytest.mark.parametrize("role", [Role.GUEST, Role.OWNER, Role.PRIVILEGED_STAFF])
def test_name_search_is_forbidden_for_non_admin(role, lookup):
    ctx = AccessContext(user_id=5, display_name="X", role=role, party_id="C1")
    result = authorize(ctx, "How is Laura Perez doing?", lookup)
    assert isinstance(result, Forbidden)
    assert result.attempted == IntentKind.NAME
    assert lookup.calls == []


def test_forbidden_is_the_same_whether_or_not_a_match_exists(owner, lookup):
    existing = authorize(owner, "How is Laura Perez doing?", lookup)
    missing = authorize(owner, "How is Nadie Ninguno doing?", lookup)
    assert existing.to_dict() == missing.to_dict()


def test_admin_name_search_multiple(admin, lookup):
    result = authorize(admin, "How is Laura Perez doing?", lookup)
    assert isinstance(result, Multiple)
    assert result.intent == NameLookup("Laura Perez")
    assert result.matches == [
        {"code": "AUR1234", "label": "Laura Perez (AUR1234)"},
        {"code": "AUR7TX9", "label": "Laura Gomez (AUR7TX9)"},
    ]


def test_admin_name_search_matches_provider_names(admin, lookup):
    result = authorize(admin, "Find Sarah Johnson", lookup)
    assert isinstance(result, Multiple)
    assert {m["code"] for m in result.matches} == {"AUR1234", "ZX9K2Q1"}


def test_admin_name_search_single(admin, lookup):
    result = authorize(admin, "Find Mike Chen", lookup)
    assert isinstance(result, Single)
    assert result.record["code"] == "AUR7TX9"
    assert result.record["owner_name"] == "Laura Gomez"


def test_admin_name_search_none(admin, lookup):
    result = authorize(admin, "How is Nadie Ninguno doing?", lookup)
    assert isinstance(result, NotFound)


def test_name_fragments_whole_then_words():
    assert name_fragments("Laura  Perez") == ["laura perez", "laura", "perez"]
    assert name_fragments("Ana") == ["ana"]


# ── Tests: no query / failures ───────────────────────────────────────

def test_no_query(guest, lookup):
    result = authorize(guest, "hello there", lookup)
    assert isinstance(result, NoQuery)
    assert lookup.calls == []


def test_lookup_failure_is_not_not_found(guest):
    failing = FakeLookup(make_records(), fail=OperationalError("SELECT", {}, Exception("down")))
    result = authorize(guest, "Check AUR1234", failing)
    assert isinstance(result, LookupFailure)
    assert result.reason == "record store unavailable"
    assert result.intent == CodeLookup("AUR1234")


def test_lookup_timeout_is_reported(admin):
    failing = FakeLookup(make_records(), fail=TimeoutError("slow"))
    result = authorize(admin, "Find Mike Chen", failing)
    assert isinstance(result, LookupFailure)
    assert result.reason == "lookup timed out"
    assert len(failing.calls) == 1


# ── Tests: async store ───────────────────────────────────────────────

def test_authorize_async_code(guest):
    result = asyncio.run(authorize_async(guest, "Check AUR1234", AsyncFakeLookup(make_records())))
    assert isinstance(result, Single)
    assert result.record == {"code": "AUR1234", "status": "closing"}


def test_authorize_async_name_multiple(admin):
    result = asyncio.run(authorize_async(admin, "Laura Perez", AsyncFakeLookup(make_records())))
    assert isinstance(result, Multiple)
    assert len(result.matches) == 2


def test_authorize_async_timeout(guest):
    slow = AsyncFakeLookup(make_records(), delay=1.0)
    result = asyncio.run(authorize_async(guest, "Check AUR1234", slow, timeout=0.01))
    assert isinstance(result, LookupFailure)
    assert result.reason == "lookup timed out"


def test_authorize_async_cancellation_propagates(guest):
    slow = AsyncFakeLookup(make_records(), delay=5.0)

    async def scenario():
        task = asyncio.ensure_future(authorize_async(guest, "Check AUR1234", slow))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())


# ── Tests: disclosure / own records ──────────────────────────────────

def test_disclose_returns_none_outside_staff_scope(staff, records):
    policy = policy_for(Role.PRIVILEGED_STAFF)
    assert disclose(records[1], staff, policy) is None
    assert disclose(records[0], staff, policy) is not None


def test_own_records_for_owner(owner, lookup):
    result = own_records(owner, lookup)
    assert isinstance(result, RecordList)
    assert [r["code"] for r in result.records] == ["AUR1234"]
    assert result.records[0]["owner_email"] == "laura@example.com"


def test_own_records_for_staff(staff, lookup):
    result = own_records(staff, lookup)
    assert [r["code"] for r in result.records] == ["AUR1234", "ZX9K2Q1"]
    assert all(set(r) == STAFF_FIELDS for r in result.records)


@pytest.mark.parametrize("ctx_name", ["guest", "admin"])
def test_own_records_forbidden_without_scope(ctx_name, request, lookup):
    ctx = request.getfixturevalue(ctx_name)
    result = own_records(ctx, lookup)
    assert isinstance(result, Forbidden)
    assert result.attempted is None


def test_own_records_lookup_failure(owner):
    failing = FakeLookup(make_records(), fail=TimeoutError())
    result = own_records(owner, failing)
    assert isinstance(result, LookupFailure)
    assert result.intent is None
    assert result.to_dict()["query"] is None
