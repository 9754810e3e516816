"""
DNS Client - Unified interface for DNS provider APIs

This module selects the configured provider and turns provider failures
into ProviderResult values, so callers decide between retry and advance
without handling exceptions.
"""

import logging
from typing import Dict, Optional

import dns.exception

from .base_provider import DNSProvider
from .bind_provider import BINDProvider
from .mock_provider import MockDNSProvider
from ..exceptions import ProviderError
from ..models import ProviderResult

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (ProviderError, dns.exception.DNSException, OSError)


class DNSClient:
    """Unified DNS client that supports multiple providers."""

    def __init__(self, config: Dict, provider: Optional[DNSProvider] = None):
        """Initialize DNS client with configuration."""
        self.config = config
        self.provider = provider or self._get_provider()

    def _get_provider(self) -> DNSProvider:
        """Get DNS provider based on configuration."""
        provider_name = self.config.get("default_provider", "bind")
        provider_config = self.config.get("dns_providers", {}).get(provider_name) or {}

        if provider_name == "bind":
            return BINDProvider(provider_config)
        elif provider_name == "mock":
            return MockDNSProvider(provider_config)
        else:
            logger.warning(f"Unknown provider '{provider_name}', using mock provider")
            return MockDNSProvider()

    def upsert_record(self, hostname: str, ip_address: str) -> ProviderResult:
        """Create or update the A record for hostname."""
        try:
            self.provider.upsert_record(hostname, ip_address)
        except _TRANSIENT_ERRORS as e:
            logger.error(f"Failed to upsert record {hostname} -> {ip_address}: {e}")
            return ProviderResult.failed(str(e))
        return ProviderResult.ok(f"{hostname} -> {ip_address}")

    def delete_record(self, hostname: str) -> ProviderResult:
        """Delete the A record for hostname."""
        try:
            self.provider.delete_record(hostname)
        except _TRANSIENT_ERRORS as e:
            logger.error(f"Failed to delete record {hostname}: {e}")
            return ProviderResult.failed(str(e))
        return ProviderResult.ok(hostname)
