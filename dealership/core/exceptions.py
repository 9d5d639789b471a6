"""
Inventory Domain Exceptions

Raised by repositories and services, mapped to HTTP status codes by
core.utils.api_helpers.error_response().
"""


class InventoryError(Exception):
    """Base exception for inventory operations."""
    pass


class NotFoundError(InventoryError):
    """Raised when no active car matches the requested SKU."""
    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f'Car with SKU "{sku}" not found')


class DuplicateError(InventoryError):
    """Raised when an active car already uses the SKU."""
    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f'Car with SKU "{sku}" already exists')


class ValidationError(InventoryError):
    """Raised when a payload, query string or upload is rejected.

    `details` holds one message per violated rule, when there is more
    than one thing to report.
    """
    def __init__(self, message: str, details: list = None):
        self.details = details or []
        super().__init__(message)
