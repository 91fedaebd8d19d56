"""
Purpose: Domain models for the Orders capability.
What it does:
- Defines core data structures:
- Order (id, user, payment, delivery address, total, shop orders)
- ShopOrder (one shop's slice of an Order, with its own status and assignment link)
- OrderItem (catalog item snapshot, quantity, price, optional rating)

Defines enums/constants:
- ShopOrderStatus = pending | preparing | out-for-delivery | delivered | cancelled
- PaymentMethod = cod | online
- PaymentStatus = pending | paid

Rule: No collaborator calls, no broadcast logic. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple
import uuid

Latlon = Tuple[float, float]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class ShopOrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    COD = "cod"
    ONLINE = "online"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


STATUS_MESSAGES: Dict[ShopOrderStatus, str] = {
    ShopOrderStatus.PENDING: "Order placed",
    ShopOrderStatus.PREPARING: "Order is being prepared",
    ShopOrderStatus.OUT_FOR_DELIVERY: "Order is out for delivery",
    ShopOrderStatus.DELIVERED: "Order delivered",
    ShopOrderStatus.CANCELLED: "Order cancelled",
}


@dataclass(frozen=True)
class DeliveryAddress:
    text: str
    latitude: float
    longitude: float

    @property
    def coordinates(self) -> Latlon:
        return (self.latitude, self.longitude)

    def to_dict(self) -> dict:
        return {"text": self.text, "latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class PaymentDetails:
    """
    What the payment provider handed back for an online checkout.
    """
    provider: str
    order_id: str
    payment_id: str
    signature: str
    currency: str = "INR"
    amount: Optional[Decimal] = None
    receipt: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "orderId": self.order_id,
            "paymentId": self.payment_id,
            "currency": self.currency,
            "amount": str(self.amount) if self.amount is not None else None,
            "receipt": self.receipt,
        }


@dataclass
class OrderItem:
    item_id: str
    name: str
    quantity: int
    price: Decimal
    image: Optional[str] = None
    food_type: Optional[str] = None

    user_rating: Optional[int] = None
    rated_at: Optional[datetime] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @property
    def is_rated(self) -> bool:
        return self.user_rating is not None

    def to_dict(self) -> dict:
        return {
            "item": self.item_id,
            "name": self.name,
            "quantity": self.quantity,
            "price": str(self.price),
            "image": self.image,
            "foodType": self.food_type,
            "userRating": self.user_rating,
            "ratedAt": self.rated_at.isoformat() if self.rated_at else None,
        }


@dataclass
class ShopOrder:
    """
    The part of a multi-shop Order that belongs to one shop.
    Only ever mutated through its parent Order.
    """
    shop_id: str
    owner_id: str
    subtotal: Decimal
    items: List[OrderItem]

    id: str = field(default_factory=new_id)
    status: ShopOrderStatus = ShopOrderStatus.PENDING

    assignment_id: Optional[str] = None
    assigned_courier_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop": self.shop_id,
            "owner": self.owner_id,
            "subtotal": str(self.subtotal),
            "status": self.status.value,
            "assignment": self.assignment_id,
            "assignedDeliveryBoy": self.assigned_courier_id,
            "shopOrderItems": [item.to_dict() for item in self.items],
        }


@dataclass
class Order:
    """
    A checkout split by shop. Owns its ShopOrder and OrderItem entries.
    """

    id: str
    user_id: str
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    delivery_address: DeliveryAddress
    total_amount: Decimal
    shop_orders: List[ShopOrder]

    payment: Optional[PaymentDetails] = None
    created_at: datetime = field(default_factory=utcnow)

    @staticmethod # Factory method: total is always the sum of the shop-order subtotals
    def new(
        user_id: str,
        payment_method: PaymentMethod,
        payment_status: PaymentStatus,
        delivery_address: DeliveryAddress,
        shop_orders: List[ShopOrder],
        payment: Optional[PaymentDetails] = None,
    ) -> Order:
        return Order(
            id=new_id(),
            user_id=user_id,
            payment_method=payment_method,
            payment_status=payment_status,
            delivery_address=delivery_address,
            total_amount=sum((shop_order.subtotal for shop_order in shop_orders), Decimal("0")),
            shop_orders=shop_orders,
            payment=payment,
        )

    def find_shop_order(self, shop_order_id: str) -> Optional[ShopOrder]:
        for shop_order in self.shop_orders:
            if shop_order.id == shop_order_id:
                return shop_order
        return None

    def owner_ids(self) -> List[str]:
        owners = []
        for shop_order in self.shop_orders:
            if shop_order.owner_id and shop_order.owner_id not in owners:
                owners.append(shop_order.owner_id)
        return owners

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "paymentMethod": self.payment_method.value,
            "paymentStatus": self.payment_status.value,
            "payment": self.payment.to_dict() if self.payment else None,
            "deliveryAddress": self.delivery_address.to_dict(),
            "totalAmount": str(self.total_amount),
            "shopOrder": [shop_order.to_dict() for shop_order in self.shop_orders],
            "createdAt": self.created_at.isoformat(),
        }
