"""
Custom exception classes for the devpool synchronization tool.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for synchronization errors."""


class ConfigurationError(SyncError):
    """Raised when a project URL or registry file cannot be interpreted."""


class RemoteCallError(SyncError):
    """Raised when a call to the remote issue tracker or social API fails."""


class PriceParseError(SyncError):
    """Raised when a price label carries a non-numeric amount."""


class CrossReferenceError(SyncError):
    """Raised when the cross-reference map cannot be persisted."""
