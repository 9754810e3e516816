"""
Base DNS provider interface.

This module defines the abstract base class that all DNS providers must implement.
Both operations are idempotent and raise ProviderError on failure.
"""

from abc import ABC, abstractmethod


class DNSProvider(ABC):
    """Abstract base class for DNS providers."""

    @abstractmethod
    def upsert_record(self, hostname: str, ip_address: str) -> bool:
        """Create the A record for hostname, or overwrite it if present."""
        pass

    @abstractmethod
    def delete_record(self, hostname: str) -> bool:
        """Delete the A record for hostname; a missing record is not an error."""
        pass
