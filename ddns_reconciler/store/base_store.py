"""
Base record store interface.

The store is shared by the record service and the reconciliation loop.
Every method is a single unit of work; implementations raise StoreError
when the backend cannot complete it.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..models import Account, Record, RecordState


class RecordStore(ABC):
    """Abstract base class for desired-state record stores."""

    @abstractmethod
    def list_records_by_state(self, state: RecordState) -> List[Record]:
        """Return every record currently in ``state``."""
        pass

    @abstractmethod
    def list_expired_records(
        self, ttl_seconds: int, now: Optional[datetime] = None
    ) -> List[Record]:
        """Return active/refreshed records not refreshed for ``ttl_seconds``."""
        pass

    @abstractmethod
    def save_record(self, record: Record) -> bool:
        """Write the mutable fields of an existing record.

        Returns False when the record no longer exists.
        """
        pass

    @abstractmethod
    def delete_record(self, record_id: int) -> bool:
        """Erase a record. Returns False when it was already gone."""
        pass

    @abstractmethod
    def add_record(self, record: Record) -> Record:
        """Insert a new record and return it with its id assigned."""
        pass

    @abstractmethod
    def get_record(self, record_id: int) -> Optional[Record]:
        pass

    @abstractmethod
    def find_by_hostname(self, hostname: str) -> Optional[Record]:
        pass

    @abstractmethod
    def find_by_previous_hostname(self, hostname: str) -> Optional[Record]:
        """Return the record whose rename away from ``hostname`` is in flight."""
        pass

    @abstractmethod
    def list_records_by_owner(self, owner_token: str) -> List[Record]:
        pass

    @abstractmethod
    def create_account(self, email: str, token: str) -> Account:
        pass

    @abstractmethod
    def get_account_by_email(self, email: str) -> Optional[Account]:
        pass

    @abstractmethod
    def get_account_by_token(self, token: str) -> Optional[Account]:
        pass
