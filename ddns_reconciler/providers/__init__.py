"""
DNS provider implementations.

This package contains implementations for the BIND dynamic-update
provider and an in-memory mock provider.
"""

from .base_provider import DNSProvider
from .bind_provider import BINDProvider
from .dns_client import DNSClient
from .mock_provider import MockDNSProvider

__all__ = ["DNSClient", "DNSProvider", "BINDProvider", "MockDNSProvider"]
