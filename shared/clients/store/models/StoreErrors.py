"""Exceptions raised by record store clients.

Every non-2xx answer of the store is translated into one of these classes by
StoreClientInterface, so callers never have to look at raw HTTP status codes.
"""


class StoreError(Exception):
    """Base class for all record store failures."""


class StoreConfigurationError(StoreError):
    """No usable credential or endpoint is configured for the store."""


class StoreAuthorizationError(StoreError):
    """The store rejected the credential (401/403)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RecordNotFoundError(StoreError):
    """The record does not exist (anymore) in the store."""

    def __init__(self, record_id: str):
        super().__init__(f"Record '{record_id}' not found.")
        self.record_id = record_id


class PropertyMissingError(StoreError):
    """A write referenced one or more fields that do not exist in the store schema."""

    def __init__(self, property_names: set[str], message: str = ""):
        super().__init__(message or f"Properties do not exist: {', '.join(sorted(property_names))}")
        self.property_names = set(property_names)


class StoreApiError(StoreError):
    """Any other store failure (validation, rate limit, server or transport error)."""

    def __init__(self, message: str, status_code: int | None = None, body: object = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
