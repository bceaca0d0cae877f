"""
Database engine initialisation and the SQL-backed booking record store.
"""

import sys
from typing import Awaitable, List, Optional, Protocol

from sqlalchemy import create_engine, text

from recordguard.config import get_env
from recordguard.models import Record, Status


class RecordLookup(Protocol):
    """Read side of the record store used by the authorizer."""

    def fetch_by_code(self, code: str) -> Optional[Record]: ...

    def search_by_fragment(self, fragment: str) -> List[Record]: ...


class AsyncRecordLookup(Protocol):
    def fetch_by_code(self, code: str) -> Awaitable[Optional[Record]]: ...

    def search_by_fragment(self, fragment: str) -> Awaitable[List[Record]]: ...


def init_engine():
    """Create a SQLAlchemy engine and verify the connection."""
    db_uri = get_env("DB_URI")
    engine = create_engine(db_uri, echo=False, future=True, pool_pre_ping=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


_BOOKING_COLUMNS = """
    code, owner_id, provider_id, status, owner_name, provider_name,
    owner_email, owner_phone, service_name, scheduled_date, start_time,
    duration_minutes, price, notes
"""


def row_to_record(row) -> Record:
    """Build a Record from a dbo.bookings mapping row."""
    duration = row.get("duration_minutes")
    price = row.get("price")
    return Record(
        code=str(row["code"]).upper(),
        owner_id=str(row["owner_id"]),
        provider_id=str(row["provider_id"]),
        status=Status(str(row["status"]).strip().lower()),
        owner_name=row.get("owner_name") or "",
        provider_name=row.get("provider_name") or "",
        owner_email=row.get("owner_email") or "",
        owner_phone=row.get("owner_phone") or "",
        service_name=row.get("service_name") or "",
        scheduled_date=str(row.get("scheduled_date") or ""),
        start_time=str(row.get("start_time") or ""),
        duration_minutes=int(duration) if duration is not None else None,
        price=float(price) if price is not None else None,
        notes=row.get("notes") or "",
    )


class SqlRecordLookup:
    """Record store over dbo.bookings. Read-only except for update_status."""

    def __init__(self, engine):
        self.engine = engine

    def _select(self, where: str, params: dict) -> List[Record]:
        sql = text(f"SELECT {_BOOKING_COLUMNS} FROM dbo.bookings WHERE {where}")
        with self.engine.connect() as conn:
            rows = conn.execute(sql, params).mappings().all()
        return [row_to_record(r) for r in rows]

    def fetch_by_code(self, code: str) -> Optional[Record]:
        hits = self._select("UPPER(code) = :code", {"code": code.upper()})
        return hits[0] if hits else None

    def search_by_fragment(self, fragment: str) -> List[Record]:
        return self._select(
            "LOWER(owner_name) LIKE :frag OR LOWER(provider_name) LIKE :frag",
            {"frag": f"%{fragment.lower()}%"},
        )

    def list_for_owner(self, owner_id: str) -> List[Record]:
        return self._select("owner_id = :pid ORDER BY scheduled_date, start_time", {"pid": owner_id})

    def list_for_provider(self, provider_id: str) -> List[Record]:
        return self._select("provider_id = :pid ORDER BY scheduled_date, start_time", {"pid": provider_id})

    def update_status(self, code: str, status: Status) -> None:
        sql = text("UPDATE dbo.bookings SET status = :status WHERE UPPER(code) = :code")
        with self.engine.begin() as conn:
            conn.execute(sql, {"status": status.value, "code": code.upper()})
