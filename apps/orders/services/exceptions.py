"""
Domain-specific exceptions for the orders services.

Balance problems are raised as wallet errors
(``InsufficientCreditsError``, ``InvalidAmountError``); these cover the
order itself.
"""


class OrdersServiceError(Exception):
    """Base exception for all orders service errors."""
    code = 'orders_error'


class InvalidOrderError(OrdersServiceError):
    """Raised when an order has no items or a malformed item."""
    code = 'invalid_order'


class OrderNotFoundError(OrdersServiceError):
    """Raised when an order doesn't exist or belongs to someone else."""
    code = 'order_not_found'
