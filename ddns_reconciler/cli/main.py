#!/usr/bin/env python3
"""
DDNS Reconciler - Command Line Interface

Main entry point for the DDNS Reconciler CLI.
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console

from ..core.ddns_manager import DDNSManager
from ..exceptions import DDNSError
from ..utils.config import DEFAULT_CONFIG_PATH, config_logger, load_config

console = Console()
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="DDNS Reconciler - Dynamic DNS records converged into your DNS provider"
    )

    parser.add_argument(
        "--config",
        "-c",
        default=DEFAULT_CONFIG_PATH,
        help=f"Configuration file path (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Run the reconciliation loop until interrupted")
    subparsers.add_parser("reconcile", help="Run a single reconciliation cycle")

    signup = subparsers.add_parser("signup", help="Create an account and print its token")
    signup.add_argument("--email", "-e", required=True)

    login = subparsers.add_parser("login", help="Check an email/token pair")
    login.add_argument("--email", "-e", required=True)
    login.add_argument("--token", "-t", required=True)

    add = subparsers.add_parser("add", help="Register a hostname")
    add.add_argument("--token", "-t", required=True)
    add.add_argument("--hostname", "-n", required=True)
    add.add_argument("--ip", "-i", required=True, help="IPv4 address")

    list_cmd = subparsers.add_parser("list", help="List your records")
    list_cmd.add_argument("--token", "-t", required=True)

    update = subparsers.add_parser("update", help="Change the IP and/or hostname of a record")
    update.add_argument("--token", "-t", required=True)
    update.add_argument("--id", type=int, required=True, dest="record_id")
    update.add_argument("--hostname", "-n", help="New hostname")
    update.add_argument("--ip", "-i", help="New IPv4 address")

    delete = subparsers.add_parser("delete", help="Schedule a record for removal")
    delete.add_argument("--token", "-t", required=True)
    delete.add_argument("--id", type=int, required=True, dest="record_id")

    refresh = subparsers.add_parser("refresh", help="Keep a record alive")
    refresh.add_argument("--token", "-t", required=True)
    refresh.add_argument("--hostname", "-n", required=True)
    refresh.add_argument("--ip", "-i", required=True, help="Current IPv4 address")

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "update" and not (args.hostname or args.ip):
        print("Error: update needs --hostname and/or --ip")
        sys.exit(1)

    config = load_config(args.config)
    config_logger(config, verbose=args.verbose)

    try:
        manager = DDNSManager(config)
        run_command(manager, args)
    except DDNSError as e:
        console.print(f"[red]Error: {e}[/red]")
        if args.verbose:
            logger.exception("Command failed")
        sys.exit(1)

    sys.exit(0)


def run_command(manager: DDNSManager, args: argparse.Namespace) -> None:
    if args.command == "run":
        manager.run()

    elif args.command == "reconcile":
        report = manager.reconcile_once()
        manager.display_cycle_report(report)
        if report.aborted:
            sys.exit(1)

    elif args.command == "signup":
        token = manager.accounts.signup(args.email)
        console.print(f"[green]Account created. Token:[/green] {token}")

    elif args.command == "login":
        manager.accounts.login(args.email, args.token)
        console.print("[green]Login successful[/green]")

    elif args.command == "add":
        record = manager.records.create_record(args.token, args.hostname, args.ip)
        console.print(
            f"[green]Added record {record.id}: {record.hostname} -> {record.ip_address} "
            f"({record.state.value})[/green]"
        )

    elif args.command == "list":
        manager.display_records(manager.records.list_records(args.token))

    elif args.command == "update":
        record = manager.records.update_record(
            args.token, args.record_id, ip_address=args.ip, hostname=args.hostname
        )
        console.print(
            f"[yellow]Updated record {record.id}: {record.hostname} -> {record.ip_address} "
            f"({record.state.value})[/yellow]"
        )

    elif args.command == "delete":
        record = manager.records.delete_record(args.token, args.record_id)
        console.print(f"[red]Record {record.id} ({record.hostname}) scheduled for removal[/red]")

    elif args.command == "refresh":
        outcome = manager.records.refresh_record(args.token, args.hostname, args.ip)
        console.print(f"[green]Record {args.hostname} {outcome.value}[/green]")


if __name__ == "__main__":
    main()
