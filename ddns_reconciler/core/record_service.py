"""
Record Service - Account and record management on behalf of users

This module is the write side used by clients: it validates input, checks
hostname uniqueness and moves records into the pending states that the
reconciliation loop acts on. It never talks to the DNS provider.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from ..exceptions import (
    AuthenticationError,
    DuplicateAccountError,
    DuplicateHostnameError,
    RecordNotFoundError,
    RecordStateError,
    ValidationError,
)
from ..models import (
    LIVE_STATES,
    Account,
    Record,
    RecordState,
    RefreshOutcome,
    utcnow,
)
from ..store.base_store import RecordStore
from ..utils.validators import sanitize_hostname, validate_hostname, validate_ipv4

logger = logging.getLogger(__name__)


class AccountService:
    """Signup and login with opaque bearer tokens."""

    def __init__(self, store: RecordStore):
        self.store = store

    def signup(self, email: str) -> str:
        """Create an account and return its token."""
        email = (email or "").strip().lower()
        if "@" not in email:
            raise ValidationError(f"Invalid email address: {email!r}")

        if self.store.get_account_by_email(email) is not None:
            raise DuplicateAccountError(f"Account {email} already exists")

        account = self.store.create_account(email, uuid.uuid4().hex)
        logger.info(f"Created account for {email}")
        return account.token

    def login(self, email: str, token: str) -> bool:
        account = self.store.get_account_by_email((email or "").strip().lower())
        if account is None or account.token != token:
            raise AuthenticationError("Invalid email or token")
        return True


class RecordService:
    """Record CRUD and keep-alive refresh for token-authenticated owners."""

    def __init__(self, store: RecordStore):
        self.store = store

    def _authenticate(self, token: str) -> Account:
        account = self.store.get_account_by_token(token) if token else None
        if account is None:
            raise AuthenticationError("Unknown token")
        return account

    def _get_owned_record(self, token: str, record_id: int) -> Record:
        record = self.store.get_record(record_id)
        if record is None or record.owner_token != token:
            raise RecordNotFoundError(f"Record {record_id} not found")
        return record

    @staticmethod
    def _clean_hostname(hostname: str) -> str:
        hostname = sanitize_hostname(hostname)
        if not validate_hostname(hostname):
            raise ValidationError(f"Invalid hostname: {hostname!r}")
        return hostname

    @staticmethod
    def _clean_ip(ip_address: str) -> str:
        if not validate_ipv4(ip_address):
            raise ValidationError(f"Invalid IPv4 address: {ip_address!r}")
        return ip_address.strip()

    def _ensure_hostname_free(self, hostname: str, record_id: Optional[int] = None):
        existing = self.store.find_by_hostname(hostname)
        if existing is not None and existing.id != record_id:
            raise DuplicateHostnameError(f"Hostname '{hostname}' is already in use")

        # The old name of an unconverged rename is still live at the provider
        renamed = self.store.find_by_previous_hostname(hostname)
        if renamed is not None and renamed.id != record_id:
            raise DuplicateHostnameError(
                f"Hostname '{hostname}' is still being released by record ID={renamed.id}"
            )

    def create_record(self, token: str, hostname: str, ip_address: str) -> Record:
        """Register a new hostname; the next cycle pushes it to the provider."""
        self._authenticate(token)
        hostname = self._clean_hostname(hostname)
        ip_address = self._clean_ip(ip_address)
        self._ensure_hostname_free(hostname)

        record = self.store.add_record(
            Record(
                owner_token=token,
                hostname=hostname,
                ip_address=ip_address,
                state=RecordState.PENDING_CREATE,
            )
        )
        logger.info(f"Added record ID={record.id}: {hostname} -> {ip_address}")
        return record

    def list_records(self, token: str) -> List[Record]:
        self._authenticate(token)
        return self.store.list_records_by_owner(token)

    def update_record(
        self,
        token: str,
        record_id: int,
        ip_address: Optional[str] = None,
        hostname: Optional[str] = None,
    ) -> Record:
        """Change the IP and/or hostname of a record.

        A rename remembers the old hostname in previous_hostname so the loop
        can delete it at the provider once the new name is live.
        """
        self._authenticate(token)
        if not (ip_address or hostname):
            raise ValidationError("Nothing to update: give a new IP address and/or hostname")

        record = self._get_owned_record(token, record_id)
        if record.state == RecordState.PENDING_REMOVAL:
            raise RecordStateError(f"Record {record_id} is scheduled for removal")

        if ip_address:
            record.ip_address = self._clean_ip(ip_address)

        if hostname:
            new_hostname = self._clean_hostname(hostname)
            if new_hostname != record.hostname:
                self._ensure_hostname_free(new_hostname, record.id)
                self._rename(record, new_hostname)

        record.state = RecordState.PENDING_UPDATE
        record.touch()
        self._save(record)
        logger.info(
            f"Updated record ID={record.id}: {record.hostname} -> {record.ip_address}"
        )
        return record

    @staticmethod
    def _rename(record: Record, new_hostname: str) -> None:
        if new_hostname == record.previous_hostname:
            # Renamed back before the first rename converged
            record.previous_hostname = None
        elif record.previous_hostname is None and record.state != RecordState.PENDING_CREATE:
            # Only names that may exist at the provider need cleanup
            record.previous_hostname = record.hostname
        record.hostname = new_hostname

    def delete_record(self, token: str, record_id: int) -> Record:
        """Schedule a record for removal from the provider and the store."""
        self._authenticate(token)
        record = self._get_owned_record(token, record_id)
        if record.state == RecordState.PENDING_REMOVAL:
            return record

        record.state = RecordState.PENDING_REMOVAL
        self._save(record)
        logger.info(f"Scheduled record ID={record.id} ({record.hostname}) for removal")
        return record

    def refresh_record(
        self,
        token: str,
        hostname: str,
        ip_address: str,
        now: Optional[datetime] = None,
    ) -> RefreshOutcome:
        """Keep-alive from a client: extend the TTL and follow IP changes."""
        self._authenticate(token)
        hostname = self._clean_hostname(hostname)
        ip_address = self._clean_ip(ip_address)
        now = now or utcnow()

        record = self.store.find_by_hostname(hostname)
        if (
            record is None
            or record.owner_token != token
            or record.state == RecordState.PENDING_REMOVAL
        ):
            raise RecordNotFoundError(
                f"No record for hostname '{hostname}'; create it first"
            )

        if record.ip_address == ip_address:
            if record.state in LIVE_STATES:
                record.state = RecordState.REFRESHED
                outcome = RefreshOutcome.REFRESHED
            else:
                # Still waiting for its first push; keep the pending state
                outcome = RefreshOutcome.TOUCHED
        else:
            record.ip_address = ip_address
            record.state = RecordState.PENDING_UPDATE
            outcome = RefreshOutcome.IP_CHANGED

        record.touch(now)
        self._save(record)
        logger.info(
            f"Refreshed record ID={record.id} ({hostname}): {outcome.value}, "
            f"IpAddress={record.ip_address}"
        )
        return outcome

    def _save(self, record: Record) -> None:
        if not self.store.save_record(record):
            raise RecordNotFoundError(f"Record {record.id} no longer exists")
