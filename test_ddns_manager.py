#!/usr/bin/env python3
"""
Test suite for DDNS Reconciler

This module tests validators, providers, the DNS client, the SQL store,
configuration handling, the manager and the CLI.
"""

import os
import shutil
import tempfile
import unittest
from datetime import timedelta, timezone
from unittest.mock import Mock, patch

import dns.exception
import dns.rcode
import yaml

from ddns_reconciler.cli.main import main
from ddns_reconciler.core.ddns_manager import DDNSManager
from ddns_reconciler.exceptions import (
    DuplicateHostnameError,
    ProviderError,
    ValidationError,
)
from ddns_reconciler.models import Record, RecordState, utcnow
from ddns_reconciler.providers.bind_provider import BINDProvider
from ddns_reconciler.providers.dns_client import DNSClient
from ddns_reconciler.providers.mock_provider import MockDNSProvider
from ddns_reconciler.store.sql_store import SQLRecordStore
from ddns_reconciler.utils.config import ReconcilerSettings, load_config
from ddns_reconciler.utils.validators import (
    sanitize_hostname,
    validate_fqdn,
    validate_hostname,
    validate_ipv4,
)

KEY_FILE_CONTENT = """
key "update-key" {
    algorithm hmac-sha256;
    secret "c2VjcmV0c2VjcmV0c2VjcmV0";
};
"""


def dns_response(rcode):
    response = Mock()
    response.rcode.return_value = rcode
    response.answer = []
    return response


class TestValidators(unittest.TestCase):
    """Test the validation functions."""

    def test_validate_hostname_valid(self):
        for hostname in ["home", "nas-1", "1home", "a" * 63]:
            with self.subTest(hostname=hostname):
                self.assertTrue(validate_hostname(hostname))

    def test_validate_hostname_invalid(self):
        invalid_hostnames = [
            "",  # Empty
            "home.example",  # More than one label
            "-home",  # Starts with hyphen
            "home-",  # Ends with hyphen
            "ho--me",  # Consecutive hyphens
            "ho_me",  # Underscore
            "a" * 64,  # Label too long
            "Home",  # Not sanitized
        ]
        for hostname in invalid_hostnames:
            with self.subTest(hostname=hostname):
                self.assertFalse(validate_hostname(hostname))

    def test_validate_fqdn(self):
        self.assertTrue(validate_fqdn("dyn.example.com"))
        self.assertFalse(validate_fqdn("example.com."))
        self.assertFalse(validate_fqdn("single"))
        self.assertFalse(validate_fqdn("example..com"))

    def test_validate_ipv4(self):
        for ip in ["192.168.1.1", "0.0.0.0", "255.255.255.255"]:
            with self.subTest(ip=ip):
                self.assertTrue(validate_ipv4(ip))
        for ip in ["", "256.1.2.3", "1.2.3", "1.2.3.4.5", "1.2.3.abc", "::1"]:
            with self.subTest(ip=ip):
                self.assertFalse(validate_ipv4(ip))

    def test_sanitize_hostname(self):
        self.assertEqual(sanitize_hostname("  Home. "), "home")


class TestMockDNSProvider(unittest.TestCase):
    """Test the mock DNS provider."""

    def setUp(self):
        """Set up test fixtures."""
        self.provider = MockDNSProvider()

    def test_upsert_creates_and_overwrites(self):
        self.provider.upsert_record("home", "1.2.3.4")
        self.provider.upsert_record("home", "5.6.7.8")

        self.assertEqual(self.provider.records, {"home": "5.6.7.8"})
        self.assertEqual(len(self.provider.upsert_calls), 2)

    def test_delete_missing_record_succeeds(self):
        self.assertTrue(self.provider.delete_record("ghost"))
        self.assertEqual(self.provider.delete_calls, ["ghost"])

    def test_injected_failures_raise(self):
        self.provider.fail_upserts.add("home")
        self.provider.fail_deletes.add("home")

        with self.assertRaises(ProviderError):
            self.provider.upsert_record("home", "1.2.3.4")
        with self.assertRaises(ProviderError):
            self.provider.delete_record("home")


class TestBINDProvider(unittest.TestCase):
    """Test the BIND DNS provider without a live server."""

    def setUp(self):
        """Set up test fixtures."""
        self.config = {"nameserver": "192.0.2.53", "port": 5353, "zone": "dyn.example.com"}

    def test_bind_config_parsing(self):
        provider = BINDProvider(self.config)

        self.assertEqual(provider.nameserver, "192.0.2.53")
        self.assertEqual(provider.port, 5353)
        self.assertEqual(provider.record_ttl, 3600)
        self.assertIsNone(provider.keyring)
        self.assertEqual(provider.fqdn("Home"), "home.dyn.example.com")

    def test_zone_is_required(self):
        with self.assertRaises(ValidationError):
            BINDProvider({"nameserver": "127.0.0.1"})

    def test_tsig_key_is_loaded(self):
        temp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, temp_dir)
        key_file = os.path.join(temp_dir, "update-key.conf")
        with open(key_file, "w") as f:
            f.write(KEY_FILE_CONTENT)

        provider = BINDProvider(dict(self.config, key_file=key_file, key_name="update-key"))

        self.assertIsNotNone(provider.keyring)

    def test_missing_key_file_disables_tsig(self):
        provider = BINDProvider(
            dict(self.config, key_file="/nonexistent/key.conf", key_name="update-key")
        )
        self.assertIsNone(provider.keyring)

    @patch("dns.query.tcp")
    def test_upsert_sends_update(self, mock_tcp):
        mock_tcp.return_value = dns_response(dns.rcode.NOERROR)
        provider = BINDProvider(self.config)

        self.assertTrue(provider.upsert_record("home", "1.2.3.4"))

        mock_tcp.assert_called_once()
        update = mock_tcp.call_args[0][0]
        self.assertIn("home.dyn.example.com", update.to_text())
        self.assertEqual(mock_tcp.call_args[1]["port"], 5353)

    @patch("dns.query.tcp")
    def test_refused_update_raises(self, mock_tcp):
        mock_tcp.return_value = dns_response(dns.rcode.REFUSED)
        provider = BINDProvider(self.config)

        with self.assertRaises(ProviderError):
            provider.upsert_record("home", "1.2.3.4")

    @patch("dns.query.tcp")
    def test_delete_of_missing_name_succeeds(self, mock_tcp):
        mock_tcp.return_value = dns_response(dns.rcode.NXDOMAIN)
        provider = BINDProvider(self.config)

        self.assertTrue(provider.delete_record("ghost"))

    @patch("dns.query.tcp")
    def test_timeout_raises_provider_error(self, mock_tcp):
        mock_tcp.side_effect = dns.exception.Timeout()
        provider = BINDProvider(self.config)

        with self.assertRaises(ProviderError):
            provider.delete_record("home")


class TestDNSClient(unittest.TestCase):
    """Test provider selection and result wrapping."""

    def test_provider_selection(self):
        client = DNSClient({"default_provider": "mock", "dns_providers": {"mock": {}}})
        self.assertIsInstance(client.provider, MockDNSProvider)

        client = DNSClient({"default_provider": "route53"})
        self.assertIsInstance(client.provider, MockDNSProvider)

        client = DNSClient(
            {"default_provider": "bind", "dns_providers": {"bind": {"zone": "dyn.example.com"}}}
        )
        self.assertIsInstance(client.provider, BINDProvider)

    def test_success_result(self):
        client = DNSClient({}, provider=MockDNSProvider())

        result = client.upsert_record("home", "1.2.3.4")

        self.assertTrue(result)
        self.assertTrue(result.success)

    def test_provider_exception_becomes_failed_result(self):
        provider = MockDNSProvider()
        provider.fail_upserts.add("home")
        provider.fail_deletes.add("home")
        client = DNSClient({}, provider=provider)

        upsert = client.upsert_record("home", "1.2.3.4")
        delete = client.delete_record("home")

        self.assertFalse(upsert)
        self.assertIn("rejected", upsert.message)
        self.assertFalse(delete.success)

    def test_network_error_becomes_failed_result(self):
        provider = Mock()
        provider.delete_record.side_effect = ConnectionRefusedError("connection refused")
        client = DNSClient({}, provider=provider)

        self.assertFalse(client.delete_record("home"))


class TestSQLRecordStore(unittest.TestCase):
    """Test the SQLAlchemy record store."""

    def setUp(self):
        """Set up test fixtures."""
        self.store = SQLRecordStore("sqlite://")
        self.now = utcnow()

    def tearDown(self):
        """Clean up test fixtures."""
        self.store.close()

    def add(self, hostname, state=RecordState.ACTIVE, age=0):
        return self.store.add_record(
            Record(
                owner_token="t" * 32,
                hostname=hostname,
                ip_address="1.2.3.4",
                state=state,
                last_refreshed_at=self.now - timedelta(seconds=age),
            )
        )

    def test_timestamps_round_trip_as_utc(self):
        record = self.add("home")

        saved = self.store.get_record(record.id)

        self.assertEqual(saved.last_refreshed_at, record.last_refreshed_at)
        self.assertEqual(saved.last_refreshed_at.tzinfo, timezone.utc)

    def test_list_expired_records(self):
        """Only live records older than the TTL are listed."""
        self.add("old-active", age=7200)
        self.add("old-refreshed", state=RecordState.REFRESHED, age=7200)
        self.add("old-pending", state=RecordState.PENDING_UPDATE, age=7200)
        self.add("fresh", age=600)

        expired = self.store.list_expired_records(3600, self.now)

        self.assertEqual([r.hostname for r in expired], ["old-active", "old-refreshed"])

    def test_list_records_by_state(self):
        self.add("a", state=RecordState.PENDING_CREATE)
        self.add("b", state=RecordState.ACTIVE)

        pending = self.store.list_records_by_state(RecordState.PENDING_CREATE)

        self.assertEqual([r.hostname for r in pending], ["a"])

    def test_save_and_delete_of_missing_record(self):
        record = self.add("home")
        self.assertTrue(self.store.delete_record(record.id))

        self.assertFalse(self.store.save_record(record))
        self.assertFalse(self.store.delete_record(record.id))

    def test_hostname_unique_constraint(self):
        self.add("home")
        with self.assertRaises(DuplicateHostnameError):
            self.add("home")

    def test_find_by_previous_hostname(self):
        renamed = self.add("house")
        renamed.previous_hostname = "home"
        self.store.save_record(renamed)

        self.assertEqual(self.store.find_by_previous_hostname("home").id, renamed.id)
        self.assertIsNone(self.store.find_by_previous_hostname("house"))

    def test_accounts(self):
        self.store.create_account("owner@example.com", "f" * 32)

        self.assertEqual(self.store.get_account_by_token("f" * 32).email, "owner@example.com")
        self.assertIsNone(self.store.get_account_by_email("nobody@example.com"))


class TestConfiguration(unittest.TestCase):
    """Test configuration loading."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir)

    def test_settings_defaults(self):
        settings = ReconcilerSettings.from_config({})

        self.assertEqual(settings.record_ttl_seconds, 3600)
        self.assertEqual(settings.interval_seconds, 300)
        self.assertEqual(settings.max_workers, 1)
        self.assertFalse(settings.run_on_start)

    def test_invalid_settings_are_rejected(self):
        for value in (0, -5, "60", True):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    ReconcilerSettings.from_config(
                        {"reconciliation": {"interval_seconds": value}}
                    )

    def test_load_config_from_yaml(self):
        config_file = os.path.join(self.temp_dir, "config.yaml")
        with open(config_file, "w") as f:
            yaml.dump({"reconciliation": {"record_ttl_seconds": 120}}, f)

        config = load_config(config_file)

        self.assertEqual(ReconcilerSettings.from_config(config).record_ttl_seconds, 120)

    def test_missing_config_uses_defaults(self):
        config = load_config(os.path.join(self.temp_dir, "missing.yaml"))

        self.assertEqual(config["default_provider"], "mock")


class TestDDNSManager(unittest.TestCase):
    """Integration tests for the complete system."""

    def setUp(self):
        """Set up test fixtures."""
        self.config = {
            "dns_providers": {"mock": {}},
            "default_provider": "mock",
            "database": {"url": "sqlite://"},
            "reconciliation": {"record_ttl_seconds": 3600, "interval_seconds": 60},
        }
        self.manager = DDNSManager(self.config)
        self.provider = self.manager.dns_client.provider

    def tearDown(self):
        """Clean up test fixtures."""
        self.manager.store.close()

    def test_manager_initialization(self):
        self.assertIsInstance(self.provider, MockDNSProvider)
        self.assertEqual(self.manager.scheduler.interval_seconds, 60)

    def test_record_lifecycle(self):
        """Create, activate, rename, delete and remove a record."""
        token = self.manager.accounts.signup("owner@example.com")
        record = self.manager.records.create_record(token, "home", "1.2.3.4")

        self.manager.reconcile_once()
        self.assertEqual(self.provider.records, {"home": "1.2.3.4"})

        self.manager.records.update_record(token, record.id, hostname="house")
        report = self.manager.reconcile_once()
        self.assertEqual(report.rename_cleanups, 1)
        self.assertEqual(self.provider.records, {"house": "1.2.3.4"})

        self.manager.records.delete_record(token, record.id)
        report = self.manager.reconcile_once()
        self.assertEqual(report.removed, 1)
        self.assertEqual(self.provider.records, {})
        self.assertEqual(self.manager.records.list_records(token), [])

    def test_display_helpers(self):
        token = self.manager.accounts.signup("owner@example.com")
        self.manager.records.create_record(token, "home", "1.2.3.4")

        self.manager.display_cycle_report(self.manager.reconcile_once())
        self.manager.display_records(self.manager.records.list_records(token))
        self.manager.display_records([])


class TestCLI(unittest.TestCase):
    """Test the command-line entry point."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.config_file = os.path.join(self.temp_dir, "config.yaml")
        config = {
            "dns_providers": {"mock": {}},
            "default_provider": "mock",
            "database": {"url": f"sqlite:///{os.path.join(self.temp_dir, 'records.db')}"},
            "logging": {"level": "INFO"},
        }
        with open(self.config_file, "w") as f:
            yaml.dump(config, f)

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir)

    def run_cli(self, *args):
        with self.assertRaises(SystemExit) as cm:
            main(["--config", self.config_file, *args])
        return cm.exception.code

    def test_reconcile_succeeds(self):
        self.assertEqual(self.run_cli("reconcile"), 0)

    def test_unknown_token_fails(self):
        self.assertEqual(
            self.run_cli("add", "--token", "0" * 32, "--hostname", "home", "--ip", "1.2.3.4"),
            1,
        )

    def test_update_requires_a_change(self):
        self.assertEqual(self.run_cli("update", "--token", "0" * 32, "--id", "1"), 1)


if __name__ == "__main__":
    # Run the tests
    unittest.main(verbosity=2)
