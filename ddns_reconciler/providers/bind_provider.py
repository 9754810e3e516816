"""
BIND DNS provider implementation.

This module provides BIND DNS server integration using RFC 2136 dynamic
updates sent with the dnspython library.
"""

import logging
import re
from typing import Dict, Optional

import dns.exception
import dns.message
import dns.name
import dns.query
import dns.rcode
import dns.rdatatype
import dns.tsigkeyring
import dns.update

from .base_provider import DNSProvider
from ..exceptions import ProviderError, ValidationError
from ..utils.validators import sanitize_hostname, validate_zone_name

logger = logging.getLogger(__name__)

DEFAULT_RECORD_TTL = 3600
DEFAULT_TIMEOUT = 30


class BINDProvider(DNSProvider):
    """BIND DNS provider implementation using dnspython library."""

    def __init__(self, config: Dict):
        """Initialize BIND provider."""
        self.config = config
        self.nameserver = config.get("nameserver", "127.0.0.1")
        self.port = config.get("port", 53)
        self.zone = config.get("zone", "")
        self.key_file = config.get("key_file", "")
        self.key_name = config.get("key_name", "")
        self.record_ttl = config.get("record_ttl", DEFAULT_RECORD_TTL)
        self.timeout = config.get("timeout", DEFAULT_TIMEOUT)

        if not validate_zone_name(self.zone):
            raise ValidationError(f"BIND provider needs a valid zone, got {self.zone!r}")

        self.keyring = None
        if self.key_file and self.key_name:
            self.keyring = self._load_keyring()

        logger.info(
            f"BIND provider initialized for zone {self.zone} "
            f"on nameserver {self.nameserver}:{self.port}"
        )

    def _load_keyring(self):
        try:
            with open(self.key_file, "r") as f:
                key_content = f.read().strip()
        except OSError as e:
            logger.warning(f"Failed to load TSIG key: {e}")
            logger.debug("TSIG authentication will not be available")
            return None

        secret = self._parse_bind_key_file(key_content, self.key_name)
        if not secret:
            logger.warning(
                f"Could not extract secret for key '{self.key_name}' from {self.key_file}"
            )
            return None

        logger.info(f"TSIG key loaded from {self.key_file}")
        return dns.tsigkeyring.from_text({self.key_name: secret})

    def _parse_bind_key_file(self, key_content: str, key_name: str) -> Optional[str]:
        """Parse BIND key file format to extract the secret for a specific key."""
        key_pattern = rf'key\s+"{re.escape(key_name)}"\s*{{(.*?)}}'
        match = re.search(key_pattern, key_content, re.DOTALL)
        if not match:
            return None

        secret_match = re.search(r'secret\s+"([^"]+)"', match.group(1))
        if secret_match:
            return secret_match.group(1)
        return None

    def fqdn(self, hostname: str) -> str:
        return f"{sanitize_hostname(hostname)}.{self.zone}"

    def upsert_record(self, hostname: str, ip_address: str) -> bool:
        """Replace every A record at hostname with ip_address."""
        update = self._create_update_message(hostname, ip_address, "replace")
        self._send(update, "upsert", hostname)
        logger.debug(f"Upserted record {self.fqdn(hostname)} -> {ip_address}")
        return True

    def delete_record(self, hostname: str) -> bool:
        """Delete every A record at hostname."""
        update = self._create_update_message(hostname, None, "delete")
        self._send(update, "delete", hostname, missing_ok=True)
        logger.debug(f"Deleted record {self.fqdn(hostname)}")
        return True

    def _create_update_message(
        self, hostname: str, ip_address: Optional[str], action: str
    ) -> dns.update.Update:
        """Create a DNS update message."""
        update = dns.update.Update(self.zone, keyring=self.keyring)
        name = dns.name.from_text(self.fqdn(hostname))

        if action == "replace":
            update.replace(name, self.record_ttl, dns.rdatatype.A, ip_address)
        elif action == "delete":
            update.delete(name, dns.rdatatype.A)
        else:
            raise ValueError(f"Unknown update action: {action}")

        return update

    def _send(
        self,
        update: dns.update.Update,
        operation: str,
        hostname: str,
        missing_ok: bool = False,
    ) -> None:
        try:
            response = dns.query.tcp(
                update, self.nameserver, port=self.port, timeout=self.timeout
            )
        except (dns.exception.DNSException, OSError) as e:
            raise ProviderError(
                f"Failed to {operation} {self.fqdn(hostname)}: {e}"
            ) from e

        rcode = response.rcode()
        if rcode == dns.rcode.NOERROR:
            return
        if missing_ok and rcode == dns.rcode.NXDOMAIN:
            logger.debug(f"Record {self.fqdn(hostname)} already absent")
            return
        self._handle_dns_error(response, operation)

    def _handle_dns_error(self, response: dns.message.Message, operation: str) -> None:
        """Handle DNS error responses by logging and raising appropriate exceptions."""
        error_message = (
            f"DNS update failed with response code: {dns.rcode.to_text(response.rcode())}"
        )
        if response.answer:
            error_message += f", server response: {response.answer}"
        logger.error(error_message)
        raise ProviderError(f"Failed to {operation} the record: {error_message}")
