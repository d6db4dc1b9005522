"""
Orders app services layer.

Orders are paid from the wallet at placement; see ``place_order``.
"""

from .exceptions import (
    OrdersServiceError,
    InvalidOrderError,
    OrderNotFoundError,
)

from .order_placement import (
    place_order,
    get_order_for_user,
    list_orders_for_user,
)


__all__ = [
    # Exceptions
    'OrdersServiceError',
    'InvalidOrderError',
    'OrderNotFoundError',

    # Order placement
    'place_order',
    'get_order_for_user',
    'list_orders_for_user',
]
