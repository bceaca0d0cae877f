#!/usr/bin/env python3
"""
Provisioning helpers: booking codes, portal API keys and demo bookings.
Run as a script to print SQL inserts for a demo database.
"""

import random
import secrets
import string
from typing import Callable, List, Optional

from faker import Faker

from recordguard.config import CODE_ALPHABET, GENERATED_CODE_LENGTH
from recordguard.models import Record
from recordguard.status_guard import STATUS_SEQUENCE

SERVICES = [
    ("Relaxing massage", 60, 120000.0),
    ("Deep tissue massage", 90, 180000.0),
    ("Lymphatic drainage", 60, 150000.0),
    ("Reflexology", 45, 90000.0),
    ("Sports physiotherapy", 60, 160000.0),
]


def generate_record_code(
    exists: Callable[[str], bool],
    length: int = GENERATED_CODE_LENGTH,
    max_attempts: int = 10,
    rng: Optional[random.Random] = None,
) -> str:
    """Random A-Z0-9 code, with at least one digit, not already taken
    according to *exists*."""
    choice = rng.choice if rng is not None else secrets.choice
    for _ in range(max_attempts):
        chars = [choice(CODE_ALPHABET) for _ in range(length)]
        # all-letter codes are only recognised when typed in capitals
        if not any(ch.isdigit() for ch in chars):
            chars[choice(range(length))] = choice(string.digits)
        code = "".join(chars)
        if not exists(code):
            return code
    raise RuntimeError("Unable to generate unique booking code")


def generate_api_key(prefix: str = "aura", length: int = 32) -> str:
    """Generate a secure random API key."""
    chars = string.ascii_letters + string.digits
    random_part = "".join(secrets.choice(chars) for _ in range(length))
    return f"{prefix}_{random_part}"


def fake_records(count: int, seed: int = 42, providers: int = 3) -> List[Record]:
    """Deterministic demo bookings spread over a few providers."""
    fake = Faker()
    Faker.seed(seed)
    rng = random.Random(seed)

    provider_names = [fake.name() for _ in range(providers)]
    taken = set()
    records = []
    for i in range(count):
        code = generate_record_code(lambda c: c in taken, rng=rng)
        taken.add(code)
        service, minutes, price = rng.choice(SERVICES)
        p = rng.randrange(providers)
        day = fake.date_between(start_date="-10d", end_date="+30d")
        records.append(Record(
            code=code,
            owner_id=f"C{i + 1:04d}",
            provider_id=f"P{p + 1:02d}",
            status=rng.choice(STATUS_SEQUENCE),
            owner_name=fake.name(),
            provider_name=provider_names[p],
            owner_email=fake.email(),
            owner_phone=fake.phone_number(),
            service_name=service,
            scheduled_date=day.isoformat(),
            start_time=f"{rng.randint(8, 18):02d}:00",
            duration_minutes=minutes,
            price=price,
            notes=rng.choice(["", "", "Prefers low pressure", "Home visit"]),
        ))
    return records


def _sql_literal(value) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, (int, float)):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


def booking_insert(record: Record) -> str:
    values = record.as_fields()
    values.pop("owner_initials")
    columns = ", ".join(values)
    literals = ", ".join(_sql_literal(v) for v in values.values())
    return f"INSERT INTO dbo.bookings ({columns}) VALUES ({literals});"


if __name__ == "__main__":
    print("=" * 70)
    print("Aura booking demo data")
    print("=" * 70)
    print()

    demo = fake_records(10)
    for rec in demo:
        print(booking_insert(rec))
    print()

    print("-- Portal users (one per role):")
    for name, role, party in [
        ("System Admin", "admin", None),
        (demo[0].provider_name, "therapist", demo[0].provider_id),
        (demo[0].owner_name, "customer", demo[0].owner_id),
    ]:
        print(
            "INSERT INTO dbo.portal_users (display_name, role, party_id, api_key, is_active) "
            f"VALUES ({_sql_literal(name)}, '{role}', {_sql_literal(party)}, '{generate_api_key()}', 1);"
        )
    print()
    print("=" * 70)
    print("Note: run these statements against the database before logging in.")
    print("=" * 70)
