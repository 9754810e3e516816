"""
Behave environment configuration for DDNS Reconciler integration tests.
"""

import logging
from pathlib import Path

import dns.exception
import dns.resolver

from ddns_reconciler.core.ddns_manager import DDNSManager
from ddns_reconciler.providers.mock_provider import MockDNSProvider

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def before_all(context):
    """Set up test environment before all tests."""
    context.base_dir = Path(__file__).parent.parent

    context.test_zone = "dyn.example.com"
    context.test_nameserver = "127.0.0.1"
    context.test_port = 53

    context.bind_config = {
        "nameserver": context.test_nameserver,
        "port": context.test_port,
        "zone": context.test_zone,
        "key_file": str(context.base_dir / "bind" / "update-key.conf"),
        "key_name": "update-key",
        "record_ttl": 60,
        "timeout": 5,
    }

    context.bind_running = _check_bind_running(
        context.test_nameserver, context.test_port, context.test_zone
    )
    if not context.bind_running:
        logger.warning("BIND DNS server is not running. BIND scenarios will be skipped.")

    logger.info("Test environment setup complete")


def before_scenario(context, scenario):
    """Set up each test scenario."""
    context.provider = MockDNSProvider()
    context.manager = DDNSManager(
        {
            "default_provider": "mock",
            "database": {"url": "sqlite://"},
            "reconciliation": {"record_ttl_seconds": 3600, "interval_seconds": 300},
        },
        provider=context.provider,
    )
    context.token = context.manager.accounts.signup("owner@example.com")
    context.report = None

    if "bind" in scenario.effective_tags and not context.bind_running:
        scenario.skip("BIND DNS server is not running")

    logger.info(f"Starting scenario: {scenario.name}")


def after_scenario(context, scenario):
    """Clean up after each test scenario."""
    context.manager.store.close()
    logger.info(f"Completed scenario: {scenario.name}")


def _check_bind_running(nameserver: str, port: int, zone: str) -> bool:
    """Check if BIND DNS server is running and serving the test zone."""
    resolver = dns.resolver.Resolver(configure=False)
    resolver.nameservers = [nameserver]
    resolver.port = port
    resolver.timeout = 2
    resolver.lifetime = 2

    try:
        resolver.resolve(zone, "SOA")
        return True
    except dns.exception.DNSException:
        return False
