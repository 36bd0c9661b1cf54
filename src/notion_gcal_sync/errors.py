"""Errors/exceptions of Notion GCal Sync."""

from __future__ import annotations

from typing import Any

NOT_FOUND = 404
GONE = 410


class SyncError(Exception):
    """Base class for all exceptions in this package."""


class SchemaError(SyncError):
    """Raised when a page lacks a required property or carries it with the wrong type."""

    def __init__(self, page_id: str, prop_name: str, reason: str = 'is missing'):
        self.page_id = page_id
        self.prop_name = prop_name
        msg = f'Property `{prop_name}` of page {page_id} {reason}'
        super().__init__(msg)


class ConfigurationError(SyncError):
    """Raised when the configuration or a configured object cannot be resolved."""


class ServiceError(SyncError):
    """Raised when a remote service reports a failure."""

    def __init__(self, message: str, *, status: int | None = None, details: Any = None):
        self.status = status
        self.details = details
        super().__init__(message)


class NotFoundError(ServiceError):
    """Raised when the remote object does not exist (HTTP 404)."""


class GoneError(ServiceError):
    """Raised when the remote object was already deleted (HTTP 410)."""


class TransientServiceError(ServiceError):
    """Raised for any other failure of a remote service."""


class SourceStoreError(TransientServiceError):
    """Raised when the Notion API rejects a request."""


class CriticalError(SyncError):
    """Raised when a run of the reconciler fails unexpectedly."""

    def __init__(self, message: str, *, details: Any = None):
        self.details = details
        super().__init__(message)


def service_error_for(status: int | None, message: str, details: Any = None) -> ServiceError:
    """Map an HTTP status code to the matching service error."""
    if status == NOT_FOUND:
        return NotFoundError(message, status=status, details=details)
    elif status == GONE:
        return GoneError(message, status=status, details=details)
    else:
        return TransientServiceError(message, status=status, details=details)
