"""
Domain dataclasses and enums used across the application.
"""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional, Tuple, Union


class Role(str, Enum):
    GUEST = "guest"
    OWNER = "owner"
    PRIVILEGED_STAFF = "staff"
    ADMIN = "admin"


class IntentKind(str, Enum):
    CODE = "code"
    NAME = "name"


class Status(str, Enum):
    """Booking lifecycle status, declared in progression order."""
    CHECKED_IN = "checked-in"
    PRE_PROCEDURE = "pre-procedure"
    IN_PROGRESS = "in-progress"
    CLOSING = "closing"
    RECOVERY = "recovery"
    COMPLETE = "complete"
    DISMISSAL = "dismissal"


class StatusAccess(str, Enum):
    NONE = "none"
    FORWARD_ONLY = "forward_only"
    BYPASS = "bypass"


# ── Identity ─────────────────────────────────────────────────────────

@dataclass
class AccessContext:
    """Represents the caller's identity and scope."""
    user_id: Optional[int]
    display_name: str
    role: Role
    party_id: Optional[str]    # owner id for OWNER, provider id for PRIVILEGED_STAFF


@dataclass(frozen=True)
class Policy:
    """Capabilities of a single role."""
    role: Role
    permitted_intents: FrozenSet[IntentKind]
    disclosed_fields: FrozenSet[str]
    # Fields shown on a record outside the caller's own scope (OWNER only).
    foreign_fields: FrozenSet[str]
    record_scope: Optional[str]    # None, "owner" or "provider"
    status_access: StatusAccess
    notes: str


# ── Records ──────────────────────────────────────────────────────────

@dataclass
class Record:
    """A booking as returned by the record store."""
    code: str
    owner_id: str
    provider_id: str
    status: Status
    owner_name: str = ""
    provider_name: str = ""
    owner_email: str = ""
    owner_phone: str = ""
    service_name: str = ""
    scheduled_date: str = ""
    start_time: str = ""
    duration_minutes: Optional[int] = None
    price: Optional[float] = None
    notes: str = ""

    @property
    def owner_initials(self) -> str:
        """First name plus last initial, e.g. ``Laura P.``."""
        parts = self.owner_name.split()
        if not parts:
            return ""
        if len(parts) == 1:
            return parts[0]
        return f"{parts[0]} {parts[-1][0]}."

    def as_fields(self) -> Dict[str, Any]:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values["status"] = self.status.value
        values["owner_initials"] = self.owner_initials
        return values


RECORD_FIELDS = frozenset(f.name for f in fields(Record)) | {"owner_initials"}


# ── Search intents ───────────────────────────────────────────────────

@dataclass(frozen=True)
class CodeLookup:
    code: str
    kind: ClassVar[IntentKind] = IntentKind.CODE

    @property
    def query(self) -> str:
        return self.code


@dataclass(frozen=True)
class NameLookup:
    name: str
    kind: ClassVar[IntentKind] = IntentKind.NAME

    @property
    def query(self) -> str:
        return self.name


@dataclass(frozen=True)
class Rejected:
    reason: str
    kind: ClassVar[Optional[IntentKind]] = None

    @property
    def query(self) -> Optional[str]:
        return None


SearchIntent = Union[CodeLookup, NameLookup, Rejected]


# ── Authorization results ────────────────────────────────────────────

class AuthResult:
    """Base for every outcome of an authorization request."""
    kind: ClassVar[str] = ""

    def to_dict(self, include_trail: bool = False) -> Dict[str, Any]:
        """Serialise for the reply layer. The trail is kept for the audit log only."""
        payload: Dict[str, Any] = {"kind": self.kind}
        for name, value in asdict(self).items():
            if name == "intent":
                intent = getattr(self, "intent")
                kind = getattr(intent, "kind", None)
                payload["intent"] = kind.value if kind else None
                payload["query"] = intent.query if intent is not None else None
            elif name == "trail":
                if include_trail:
                    payload["trail"] = list(value)
            elif isinstance(value, Enum):
                payload[name] = value.value
            else:
                payload[name] = value
        return payload


@dataclass(frozen=True)
class NoQuery(AuthResult):
    reason: str
    trail: Tuple[str, ...] = ()
    kind: ClassVar[str] = "no_query"


@dataclass(frozen=True)
class Forbidden(AuthResult):
    attempted: Optional[IntentKind]    # None for own-record listing
    trail: Tuple[str, ...] = ()
    kind: ClassVar[str] = "forbidden"


@dataclass(frozen=True)
class NotFound(AuthResult):
    intent: SearchIntent
    trail: Tuple[str, ...] = ()
    kind: ClassVar[str] = "not_found"


@dataclass(frozen=True)
class Single(AuthResult):
    record: Dict[str, Any]
    intent: SearchIntent
    trail: Tuple[str, ...] = ()
    kind: ClassVar[str] = "single"


@dataclass(frozen=True)
class Multiple(AuthResult):
    matches: List[Dict[str, str]]
    intent: SearchIntent
    trail: Tuple[str, ...] = ()
    kind: ClassVar[str] = "multiple"


@dataclass(frozen=True)
class LookupFailure(AuthResult):
    intent: Optional[SearchIntent]
    reason: str
    trail: Tuple[str, ...] = ()
    kind: ClassVar[str] = "lookup_failure"


@dataclass(frozen=True)
class RecordList(AuthResult):
    """Own-record listing for owners and staff."""
    records: List[Dict[str, Any]] = field(default_factory=list)
    trail: Tuple[str, ...] = ()
    kind: ClassVar[str] = "record_list"


# ── Status transitions ───────────────────────────────────────────────

@dataclass(frozen=True)
class TransitionResult:
    allowed: bool
    current: Status
    proposed: Status
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "current": self.current.value,
            "proposed": self.proposed.value,
            "message": self.message,
        }
