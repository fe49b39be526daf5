class OrderingError(Exception):
    """Base class for errors raised by the ordering domain."""


class CartValidationError(OrderingError):
    """A cart mutation was rejected; the cart state is unchanged."""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details or {}


class CartPersistenceError(OrderingError):
    """Saving or loading the cart from its storage backend failed."""


class RemoteSyncError(OrderingError):
    """The remote cart endpoint could not be reached or rejected the payload."""


class NotificationError(OrderingError):
    """A customer notification could not be delivered."""


class InvalidStatusError(OrderingError):
    """An order status outside the known lifecycle was requested."""
