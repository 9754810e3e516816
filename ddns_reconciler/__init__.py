"""
DDNS Reconciler - Dynamic DNS records converged into an authoritative provider

Users register hostname -> IPv4 mappings; a background reconciliation loop
expires stale records, removes deleted ones and pushes new or changed ones
to the DNS provider.
"""

__version__ = "1.0.0"
__author__ = "DDNS Reconciler Team"
__description__ = "Dynamic DNS record reconciliation service"

from .core.ddns_manager import DDNSManager
from .core.reconciler import Reconciler
from .core.scheduler import ReconciliationScheduler
from .providers.dns_client import DNSClient

__all__ = [
    "DDNSManager",
    "Reconciler",
    "ReconciliationScheduler",
    "DNSClient",
]
