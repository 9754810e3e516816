"""
Domain types shared by the record store, the providers and the reconciler.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class RecordState(str, Enum):
    """Desired-state lifecycle of a record."""

    PENDING_CREATE = "pending_create"
    PENDING_UPDATE = "pending_update"
    ACTIVE = "active"
    REFRESHED = "refreshed"
    PENDING_REMOVAL = "pending_removal"

    @classmethod
    def parse(cls, value: str) -> Optional["RecordState"]:
        """Return the state named by ``value``, or None if it is unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


# States the reconciler pushes to the provider
CONVERGENCE_STATES = (RecordState.PENDING_CREATE, RecordState.PENDING_UPDATE)

# States that expire once last_refreshed_at is older than the TTL
LIVE_STATES = (RecordState.ACTIVE, RecordState.REFRESHED)


@dataclass
class Record:
    """Desired state for one hostname -> IPv4 mapping."""

    owner_token: str
    hostname: str
    ip_address: str
    state: RecordState = RecordState.PENDING_CREATE
    last_refreshed_at: datetime = field(default_factory=utcnow)
    previous_hostname: Optional[str] = None
    id: Optional[int] = None

    def touch(self, now: Optional[datetime] = None) -> None:
        """Bump last_refreshed_at without ever moving it backwards."""
        now = now or utcnow()
        if now > self.last_refreshed_at:
            self.last_refreshed_at = now

    def is_expired(self, ttl_seconds: int, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return (
            self.state in LIVE_STATES
            and (now - self.last_refreshed_at).total_seconds() > ttl_seconds
        )

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "hostname": self.hostname,
            "ip_address": self.ip_address,
            "state": self.state.value,
            "previous_hostname": self.previous_hostname,
            "last_refreshed_at": self.last_refreshed_at.isoformat(),
        }


@dataclass
class Account:
    email: str
    token: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class ProviderResult:
    """Outcome of a single DNS provider call."""

    success: bool
    message: str = ""

    @classmethod
    def ok(cls, message: str = "") -> "ProviderResult":
        return cls(True, message)

    @classmethod
    def failed(cls, message: str) -> "ProviderResult":
        return cls(False, message)

    def __bool__(self) -> bool:
        return self.success


class RefreshOutcome(str, Enum):
    """Result of a client keep-alive call."""

    REFRESHED = "refreshed"
    IP_CHANGED = "ip_changed"
    TOUCHED = "touched"


@dataclass
class CycleReport:
    """Counters collected during one reconciliation cycle."""

    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    expired: int = 0
    removed: int = 0
    removal_failures: int = 0
    converged: int = 0
    convergence_failures: int = 0
    rename_cleanups: int = 0
    rename_cleanup_failures: int = 0
    store_errors: int = 0
    skipped: int = 0
    cancelled: bool = False
    aborted: bool = False
    error: Optional[str] = None

    @property
    def total_changes(self) -> int:
        return self.expired + self.removed + self.converged

    def to_dict(self) -> Dict:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "expired": self.expired,
            "removed": self.removed,
            "removal_failures": self.removal_failures,
            "converged": self.converged,
            "convergence_failures": self.convergence_failures,
            "rename_cleanups": self.rename_cleanups,
            "rename_cleanup_failures": self.rename_cleanup_failures,
            "store_errors": self.store_errors,
            "skipped": self.skipped,
            "cancelled": self.cancelled,
            "aborted": self.aborted,
            "error": self.error,
        }
