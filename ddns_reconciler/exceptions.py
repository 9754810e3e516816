"""
Exceptions raised by the DDNS Reconciler.

Provider and store failures are raised by the collaborators themselves and
converted into explicit outcomes at the reconciliation boundary.
"""


class DDNSError(Exception):
    """Base class for all DDNS Reconciler errors."""


class ProviderError(DDNSError):
    """A DNS provider rejected or failed an operation."""


class StoreError(DDNSError):
    """The record store could not complete an operation."""


class ValidationError(DDNSError, ValueError):
    """Invalid hostname, IP address or configuration value."""


class AuthenticationError(DDNSError):
    """Unknown token, or email/token pair that does not match."""


class RecordNotFoundError(DDNSError):
    """No record matches the requested owner/hostname/id."""


class DuplicateHostnameError(DDNSError):
    """The hostname is already taken by another record."""


class DuplicateAccountError(DDNSError):
    """An account with this email already exists."""


class RecordStateError(DDNSError):
    """The record's current state does not allow the operation."""
