"""
LeadDesk - Domain errors

Raised by services, translated to HTTP responses by the handlers
registered in server.py. Routes never catch them one by one.
"""

from typing import Dict, Optional


class LeadDeskError(Exception):
    """Base class for every domain error"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputValidationError(LeadDeskError):
    """Caller-supplied fields failed a required-field or shape check"""
    status_code = 400

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}


class NotFoundError(LeadDeskError):
    """Lookup by id / identifier found nothing"""
    status_code = 404

    def __init__(self, kind: str, key):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class DuplicateError(LeadDeskError):
    """Unique field (username, cnpj) already taken"""
    status_code = 409

    def __init__(self, kind: str, field: str, value):
        super().__init__(f"{kind} with {field}={value!r} already exists")
        self.kind = kind
        self.field = field
        self.value = value


class InvalidTransitionError(LeadDeskError):
    """Lead status change outside the transition table"""
    status_code = 409


class PermissionDeniedError(LeadDeskError):
    """Authenticated user is not allowed to act on this record"""
    status_code = 403


class RegistryNotFoundError(LeadDeskError):
    """Registry answered, but has no usable record for the CNPJ"""
    status_code = 404


class UpstreamUnavailableError(LeadDeskError):
    """Registry call failed or timed out. Surfaced like RegistryNotFoundError."""
    status_code = 404


class StorageError(LeadDeskError):
    """A log append / rewrite failed at runtime"""
    status_code = 500


class StorageFatalError(StorageError):
    """A log could not be read while loading; the process must not start"""
