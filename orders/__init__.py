"""
Orders domain package.

Public API:
- Domain models: Order, ShopOrder, OrderItem, DeliveryAddress, ShopOrderStatus
- OrderRepository

Services (placement, status, owner_view, rating) are imported from their
modules; they depend on dispatch, which itself depends on these models.
"""
from .models import (
    DeliveryAddress,
    Order,
    OrderItem,
    PaymentMethod,
    PaymentStatus,
    ShopOrder,
    ShopOrderStatus,
)
from .repository import OrderRepository

__all__ = ["Order",
           "ShopOrder",
             "OrderItem",
               "DeliveryAddress",
               "ShopOrderStatus",
               "PaymentMethod",
               "PaymentStatus",
               "OrderRepository",
               ]
