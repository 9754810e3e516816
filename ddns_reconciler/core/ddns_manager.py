#!/usr/bin/env python3
"""
DDNS Manager - Wires configuration, store, provider and reconciliation loop

The manager builds every collaborator from one configuration dictionary and
hands them to the reconciler, the scheduler and the record services, so
nothing in the core relies on module-level singletons.
"""

import logging
from typing import Dict, List, Optional

from rich.console import Console
from rich.table import Table

from .reconciler import Reconciler
from .record_service import AccountService, RecordService
from .scheduler import ReconciliationScheduler
from ..models import CycleReport, Record, RecordState
from ..providers.base_provider import DNSProvider
from ..providers.dns_client import DNSClient
from ..store.base_store import RecordStore
from ..store.sql_store import SQLRecordStore
from ..utils.config import ReconcilerSettings

console = Console()
logger = logging.getLogger(__name__)

STATE_STYLES = {
    RecordState.PENDING_CREATE: "yellow",
    RecordState.PENDING_UPDATE: "yellow",
    RecordState.ACTIVE: "green",
    RecordState.REFRESHED: "green",
    RecordState.PENDING_REMOVAL: "red",
}


class DDNSManager:
    """Main DDNS class that orchestrates the reconciliation service."""

    def __init__(
        self,
        config: Dict,
        provider: Optional[DNSProvider] = None,
        store: Optional[RecordStore] = None,
    ):
        """Initialize the manager from a configuration dictionary."""
        self.config = config
        self.settings = ReconcilerSettings.from_config(config)
        self.store = store or SQLRecordStore(self._database_url())
        self.dns_client = DNSClient(config, provider=provider)
        self.reconciler = Reconciler(
            self.store,
            self.dns_client,
            ttl_seconds=self.settings.record_ttl_seconds,
            max_workers=self.settings.max_workers,
        )
        self.scheduler = ReconciliationScheduler(
            self.reconciler,
            interval_seconds=self.settings.interval_seconds,
            run_on_start=self.settings.run_on_start,
        )
        self.accounts = AccountService(self.store)
        self.records = RecordService(self.store)

    def _database_url(self) -> str:
        database = self.config.get("database") or {}
        return database.get("url", "sqlite:///ddns_records.db")

    def reconcile_once(self) -> CycleReport:
        """Run one reconciliation cycle in the calling thread."""
        return self.reconciler.run_cycle()

    def run(self) -> None:
        """Run the reconciliation loop until interrupted."""
        console.print(
            f"[green]DNS reconciliation service running every "
            f"{self.settings.interval_seconds}s (TTL {self.settings.record_ttl_seconds}s)[/green]"
        )
        self.scheduler.run_forever()
        console.print("[blue]DNS reconciliation service stopped[/blue]")

    def display_cycle_report(self, report: CycleReport):
        """Display a summary of one reconciliation cycle."""
        table = Table(title="DNS Reconciliation Summary")
        table.add_column("Step", style="cyan")
        table.add_column("Succeeded", style="green")
        table.add_column("Failed", style="red")

        table.add_row("Expire", str(report.expired), "-")
        table.add_row("Remove", str(report.removed), str(report.removal_failures))
        table.add_row("Activate", str(report.converged), str(report.convergence_failures))
        table.add_row(
            "Rename cleanup",
            str(report.rename_cleanups),
            str(report.rename_cleanup_failures),
        )
        console.print(table)

        if report.store_errors:
            console.print(f"[red]Store errors: {report.store_errors}[/red]")
        if report.aborted:
            console.print(f"[red]Cycle aborted: {report.error}[/red]")
        elif report.cancelled:
            console.print("[yellow]Cycle cancelled before all records were processed[/yellow]")
        console.print(f"\n[bold]Total changes: {report.total_changes}[/bold]")

    def display_records(self, records: List[Record]):
        """Display an owner's records with their reconciliation state."""
        if not records:
            console.print("[yellow]No DNS records found[/yellow]")
            return

        table = Table(title="DNS Records")
        table.add_column("ID", style="cyan")
        table.add_column("Hostname", style="white")
        table.add_column("IPv4", style="magenta")
        table.add_column("State")
        table.add_column("Last refreshed", style="white")

        for record in records:
            hostname = record.hostname
            if record.previous_hostname:
                hostname += f" (was {record.previous_hostname})"
            style = STATE_STYLES.get(record.state, "white")
            table.add_row(
                str(record.id),
                hostname,
                record.ip_address,
                f"[{style}]{record.state.value}[/{style}]",
                record.last_refreshed_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
            )

        console.print(table)
