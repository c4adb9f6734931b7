"""Errors raised while reconciling Shopify notifications into the local cache.

Routers map them to HTTP responses:
AuthenticationError -> 401, ValidationError -> 400, StorageError -> 500.
LinkingError never leaves the identity linker.
"""


class ReconciliationError(Exception):
    """Base class for reconciliation failures."""


class AuthenticationError(ReconciliationError):
    """The webhook signature did not match the shared secret."""


class ValidationError(ReconciliationError):
    """The notification body is unusable (bad JSON or missing entity ID)."""

    def __init__(self, message, received_keys=None):
        super().__init__(message)
        self.received_keys = list(received_keys or [])


class StorageError(ReconciliationError):
    """A read or write against the local cache failed."""


class LinkingError(ReconciliationError):
    """Attaching a Shopify customer ID to a local account failed."""


class ShopifyAPIError(Exception):
    """The Shopify Admin API could not be reached or returned an unusable response."""
