"""
Reconciler - Converges desired-state records with the DNS provider

One reconciliation cycle runs three steps in a fixed order:

1. ExpiryScanner moves active/refreshed records whose last refresh is older
   than the TTL to pending_removal (no provider call).
2. RemovalApplier deletes pending_removal records at the provider and, once
   the provider confirms, erases them from the store.
3. ConvergenceApplier pushes pending_create/pending_update records to the
   provider, cleans up the old name of a renamed record and marks the
   record active.

Removal always finishes before convergence starts, so a hostname being
deleted and an identically-named hostname being created never interleave
at the provider. Records that fail stay in their state and are retried on
the next cycle.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from ..exceptions import StoreError
from ..models import (
    CONVERGENCE_STATES,
    CycleReport,
    Record,
    RecordState,
    utcnow,
)
from ..providers.dns_client import DNSClient
from ..store.base_store import RecordStore

logger = logging.getLogger(__name__)


class RecordOutcome(str, Enum):
    """What happened to one record during a cycle step."""

    EXPIRED = "expired"
    REMOVED = "removed"
    REMOVAL_FAILED = "removal_failures"
    CONVERGED = "converged"
    CONVERGENCE_FAILED = "convergence_failures"
    RENAME_CLEANED = "rename_cleanups"
    RENAME_CLEANUP_FAILED = "rename_cleanup_failures"
    STORE_ERROR = "store_errors"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


Outcomes = Tuple[RecordOutcome, ...]


def _tally(report: CycleReport, outcomes: Iterable[RecordOutcome]) -> None:
    for outcome in outcomes:
        if outcome is RecordOutcome.CANCELLED:
            report.cancelled = True
        else:
            setattr(report, outcome.value, getattr(report, outcome.value) + 1)


class ExpiryScanner:
    """Demotes records that were not refreshed within the TTL."""

    def __init__(self, store: RecordStore, ttl_seconds: int):
        self.store = store
        self.ttl_seconds = ttl_seconds

    def find_candidates(self, now: datetime) -> List[Record]:
        records = self.store.list_expired_records(self.ttl_seconds, now)
        logger.info(f"Found {len(records)} expired records to schedule for removal")
        return records

    def expire(self, record: Record, now: datetime) -> Outcomes:
        # The record may have been refreshed since it was listed
        current = self.store.get_record(record.id)
        if current is None or not current.is_expired(self.ttl_seconds, now):
            logger.debug(f"Record ID={record.id} no longer expired, skipping")
            return (RecordOutcome.SKIPPED,)

        current.state = RecordState.PENDING_REMOVAL
        if not self.store.save_record(current):
            return (RecordOutcome.SKIPPED,)

        logger.info(
            f"Scheduled record for removal due to TTL expiration: ID={current.id}, "
            f"Hostname={current.hostname}, LastRefreshed={current.last_refreshed_at.isoformat()}"
        )
        return (RecordOutcome.EXPIRED,)


class RemovalApplier:
    """Deletes pending_removal records at the provider, then from the store."""

    def __init__(self, store: RecordStore, dns_client: DNSClient):
        self.store = store
        self.dns_client = dns_client

    def find_candidates(self) -> List[Record]:
        records = self.store.list_records_by_state(RecordState.PENDING_REMOVAL)
        logger.info(f"Found {len(records)} records to delete from the DNS provider")
        return records

    def remove(self, record: Record) -> Outcomes:
        result = self.dns_client.delete_record(record.hostname)
        if not result:
            logger.warning(
                f"Failed to delete DNS record, will retry: ID={record.id}, "
                f"Hostname={record.hostname}"
            )
            return (RecordOutcome.REMOVAL_FAILED,)

        outcomes = [RecordOutcome.REMOVED]
        if record.previous_hostname and record.previous_hostname != record.hostname:
            # Deleted before its rename converged; the old name may still be live
            outcomes.append(
                _cleanup_old_hostname(
                    self.store, self.dns_client, record, record.previous_hostname
                )
            )

        if not self.store.delete_record(record.id):
            logger.info(f"Record ID={record.id} was already erased from the store")
        else:
            logger.info(
                f"Deleted DNS record from provider and store: ID={record.id}, "
                f"Hostname={record.hostname}"
            )
        return tuple(outcomes)


class ConvergenceApplier:
    """Pushes pending_create/pending_update records to the provider."""

    def __init__(self, store: RecordStore, dns_client: DNSClient):
        self.store = store
        self.dns_client = dns_client

    def find_candidates(self) -> List[Record]:
        records = []
        for state in CONVERGENCE_STATES:
            records.extend(self.store.list_records_by_state(state))
        logger.info(f"Found {len(records)} records to activate")
        return records

    def converge(self, record: Record, now: datetime) -> Outcomes:
        result = self.dns_client.upsert_record(record.hostname, record.ip_address)
        if not result:
            logger.warning(
                f"Failed to push DNS record, keeping status '{record.state.value}': "
                f"ID={record.id}, Hostname={record.hostname}"
            )
            return (RecordOutcome.CONVERGENCE_FAILED,)

        # Re-read: the record service may have changed or deleted it meanwhile
        current = self.store.get_record(record.id)
        if current is None:
            logger.info(f"Record ID={record.id} disappeared during convergence")
            return (RecordOutcome.SKIPPED,)
        if (
            current.hostname != record.hostname
            and current.previous_hostname != record.hostname
        ):
            # Renamed while the upsert was in flight; nothing tracks the pushed name
            logger.info(
                f"Record ID={record.id} was renamed to {current.hostname} during "
                f"convergence, dropping the name just pushed"
            )
            return (
                RecordOutcome.SKIPPED,
                _cleanup_old_hostname(self.store, self.dns_client, current, record.hostname),
            )
        if (
            current.state not in CONVERGENCE_STATES
            or current.hostname != record.hostname
            or current.ip_address != record.ip_address
        ):
            logger.info(
                f"Record ID={record.id} changed during convergence, "
                f"leaving it for the next cycle"
            )
            return (RecordOutcome.SKIPPED,)

        outcomes = [RecordOutcome.CONVERGED]
        if current.previous_hostname:
            if current.previous_hostname != current.hostname:
                outcomes.append(
                    _cleanup_old_hostname(
                        self.store, self.dns_client, current, current.previous_hostname
                    )
                )
            current.previous_hostname = None

        current.state = RecordState.ACTIVE
        current.touch(now)
        if not self.store.save_record(current):
            logger.info(f"Record ID={record.id} disappeared before it could be activated")
            return (RecordOutcome.SKIPPED,)

        logger.info(
            f"Activated DNS record: ID={current.id}, Hostname={current.hostname}, "
            f"IpAddress={current.ip_address}"
        )
        return tuple(outcomes)


def _cleanup_old_hostname(
    store: RecordStore, dns_client: DNSClient, record: Record, old_hostname: str
) -> RecordOutcome:
    """Best-effort delete of a name the record no longer uses; never retried."""
    owner = store.find_by_hostname(old_hostname)
    if owner is not None and owner.id != record.id:
        logger.info(
            f"Old hostname {old_hostname} of record ID={record.id} now belongs to "
            f"record ID={owner.id}, leaving it at the provider"
        )
        return RecordOutcome.SKIPPED

    if dns_client.delete_record(old_hostname):
        logger.info(f"Deleted old hostname {old_hostname} of record ID={record.id}")
        return RecordOutcome.RENAME_CLEANED

    logger.warning(
        f"Failed to delete old hostname {old_hostname} of record ID={record.id}; "
        f"it will not be retried"
    )
    return RecordOutcome.RENAME_CLEANUP_FAILED


class Reconciler:
    """Runs one reconciliation cycle: expiry, removal, then convergence."""

    def __init__(
        self,
        store: RecordStore,
        dns_client: DNSClient,
        ttl_seconds: int = 3600,
        max_workers: int = 1,
    ):
        self.store = store
        self.dns_client = dns_client
        self.max_workers = max_workers
        self.expiry_scanner = ExpiryScanner(store, ttl_seconds)
        self.removal_applier = RemovalApplier(store, dns_client)
        self.convergence_applier = ConvergenceApplier(store, dns_client)

    def run_cycle(
        self,
        now: Optional[datetime] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> CycleReport:
        """Run one full cycle and return its counters.

        ``should_stop`` is polled before each record; once it returns True
        the remaining records are left for a later cycle.
        """
        should_stop = should_stop or (lambda: False)
        report = CycleReport()
        now = now or report.started_at
        logger.info(f"Starting DNS reconciliation cycle at {now.isoformat()}")

        try:
            expired = self.expiry_scanner.find_candidates(now)
            # Expiry is a store-only step, so it always runs sequentially
            self._apply(
                report, expired, lambda r: self.expiry_scanner.expire(r, now), should_stop, 1
            )

            if not report.cancelled:
                removals = self.removal_applier.find_candidates()
                self._apply(
                    report, removals, self.removal_applier.remove, should_stop, self.max_workers
                )

            if not report.cancelled:
                pending = self.convergence_applier.find_candidates()
                self._apply(
                    report,
                    pending,
                    lambda r: self.convergence_applier.converge(r, now),
                    should_stop,
                    self.max_workers,
                )
        except StoreError as e:
            report.aborted = True
            report.error = str(e)
            logger.error(f"DNS reconciliation cycle aborted: {e}")

        report.finished_at = utcnow()
        logger.info(
            f"Completed DNS reconciliation cycle: {report.expired} expired, "
            f"{report.removed} removed, {report.converged} activated, "
            f"{report.removal_failures + report.convergence_failures} provider failures, "
            f"{report.store_errors} store errors"
        )
        return report

    def _apply(
        self,
        report: CycleReport,
        records: List[Record],
        step: Callable[[Record], Outcomes],
        should_stop: Callable[[], bool],
        max_workers: int,
    ) -> None:
        def run(record: Record) -> Outcomes:
            if should_stop():
                return (RecordOutcome.CANCELLED,)
            try:
                return step(record)
            except StoreError as e:
                logger.error(f"Store error while processing record ID={record.id}: {e}")
                return (RecordOutcome.STORE_ERROR,)

        if max_workers <= 1 or len(records) <= 1:
            for record in records:
                outcomes = run(record)
                _tally(report, outcomes)
                if report.cancelled:
                    logger.info("Shutdown requested, stopping cycle early")
                    return
            return

        with ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="ddns-reconcile"
        ) as executor:
            for outcomes in executor.map(run, records):
                _tally(report, outcomes)
        if report.cancelled:
            logger.info("Shutdown requested, stopping cycle early")
