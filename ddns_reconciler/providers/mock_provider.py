"""
Mock DNS provider for testing and demonstration.

This module provides a mock DNS provider that stores records in memory
for safe testing and demonstration purposes.
"""

import logging
import threading
from typing import Dict, List, Optional, Set

from .base_provider import DNSProvider
from ..exceptions import ProviderError
from ..utils.validators import sanitize_hostname

logger = logging.getLogger(__name__)


class MockDNSProvider(DNSProvider):
    """Mock DNS provider for testing and demonstration purposes."""

    def __init__(self, config: Optional[Dict] = None):
        """Initialize mock provider."""
        self.records: Dict[str, str] = {}
        self.upsert_calls: List[tuple] = []
        self.delete_calls: List[str] = []
        self.fail_upserts: Set[str] = set()
        self.fail_deletes: Set[str] = set()
        self._lock = threading.Lock()
        logger.info("Mock DNS provider initialized")

    def upsert_record(self, hostname: str, ip_address: str) -> bool:
        """Create or overwrite a record in memory."""
        name = sanitize_hostname(hostname)
        with self._lock:
            self.upsert_calls.append((name, ip_address))
            if name in self.fail_upserts:
                raise ProviderError(f"Mock: upsert of {name} rejected")
            self.records[name] = ip_address
        logger.info(f"Mock: Upserted record {name} -> {ip_address}")
        return True

    def delete_record(self, hostname: str) -> bool:
        """Delete a record from memory."""
        name = sanitize_hostname(hostname)
        with self._lock:
            self.delete_calls.append(name)
            if name in self.fail_deletes:
                raise ProviderError(f"Mock: delete of {name} rejected")
            removed = self.records.pop(name, None)

        if removed is None:
            logger.info(f"Mock: Record {name} already absent")
        else:
            logger.info(f"Mock: Deleted record {name}")
        return True
