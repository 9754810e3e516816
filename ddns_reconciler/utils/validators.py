"""
Validators - Input validation for DNS records

This module provides validation functions for hostname labels, zone names
and IPv4 addresses to ensure data integrity and safety.
"""

import ipaddress
import logging
import re

logger = logging.getLogger(__name__)

_LABEL_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")


def validate_hostname(hostname: str) -> bool:
    """
    Validate a hostname label (the part in front of the managed zone).

    Args:
        hostname: The label to validate, e.g. "home"

    Returns:
        True if valid, False otherwise
    """
    if not hostname or not isinstance(hostname, str):
        return False

    if "." in hostname:
        logger.warning(f"Hostname must be a single label, got: {hostname}")
        return False

    if not _validate_label(hostname):
        logger.warning(f"Invalid hostname label: {hostname}")
        return False

    return True


def validate_fqdn(fqdn: str) -> bool:
    """
    Validate Fully Qualified Domain Name (FQDN).

    Args:
        fqdn: The FQDN to validate

    Returns:
        True if valid, False otherwise
    """
    if not fqdn or not isinstance(fqdn, str):
        return False

    if fqdn.endswith("."):
        logger.warning(f"FQDN ends with dot: {fqdn}")
        return False

    if len(fqdn) > 253:
        logger.warning(f"FQDN too long: {fqdn}")
        return False

    labels = fqdn.split(".")
    if len(labels) < 2:
        logger.warning(f"FQDN must have at least 2 labels: {fqdn}")
        return False

    for label in labels:
        if not _validate_label(label.lower()):
            logger.warning(f"Invalid label '{label}' in FQDN: {fqdn}")
            return False

    return True


def _validate_label(label: str) -> bool:
    """
    Validate a single domain label.

    Labels hold letters, digits and hyphens, are at most 63 characters,
    and cannot start or end with a hyphen (RFC 1123).
    """
    if len(label) == 0 or len(label) > 63:
        return False

    if not _LABEL_RE.match(label):
        return False

    # Check for consecutive hyphens
    if "--" in label:
        return False

    return True


def validate_ipv4(ipv4: str) -> bool:
    """
    Validate IPv4 address.

    Args:
        ipv4: The IPv4 address to validate

    Returns:
        True if valid, False otherwise
    """
    if not ipv4 or not isinstance(ipv4, str):
        return False

    try:
        ipaddress.IPv4Address(ipv4.strip())
        return True
    except ipaddress.AddressValueError:
        logger.warning(f"Invalid IPv4 address: {ipv4}")
        return False


def validate_zone_name(zone: str) -> bool:
    """Zone names must be valid domain names and never bare IP addresses."""
    if not zone or not isinstance(zone, str):
        return False

    if validate_ipv4(zone):
        return False

    return validate_fqdn(zone)


def sanitize_hostname(hostname: str) -> str:
    """
    Normalize a hostname label for storage and comparison.

    Args:
        hostname: The label to sanitize

    Returns:
        Lowercased label without surrounding whitespace or dots
    """
    if not hostname:
        return hostname

    return hostname.strip().strip(".").lower()
