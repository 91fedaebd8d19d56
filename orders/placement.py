"""
Purpose: Checkout -> Order.
What it does:
- validates the cart and the delivery address
- groups cart lines by shop (first-seen order) and resolves each shop's owner
- computes each shop subtotal independently; the order total is their sum
- settles payment state: cash on delivery stays pending, online needs a
  verified provider signature and is marked paid
- stores the order and nudges the customer and every shop owner
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from collaborators.ports import PaymentVerifier, ShopLookup
from common.errors import DispatchError, InternalError, UpstreamCollaboratorError, ValidationError
from notifications.fanout import Fanout
from .models import (
    DeliveryAddress,
    Order,
    OrderItem,
    PaymentDetails,
    PaymentMethod,
    PaymentStatus,
    ShopOrder,
)
from .repository import OrderRepository

logger = logging.getLogger(__name__)


def _to_decimal(value, field_name: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}: {value!r}") from None
    if not amount.is_finite():
        raise ValidationError(f"Invalid {field_name}: {value!r}")
    return amount


def parse_delivery_address(address) -> DeliveryAddress:
    if isinstance(address, DeliveryAddress):
        return address
    if (
        not isinstance(address, dict)
        or not address.get("text")
        or address.get("latitude") is None
        or address.get("longitude") is None
    ):
        raise ValidationError("Delivery address is required")
    try:
        latitude = float(address["latitude"])
        longitude = float(address["longitude"])
    except (TypeError, ValueError):
        raise ValidationError("Delivery address coordinates must be numbers") from None
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        raise ValidationError("Delivery address coordinates are out of range")
    return DeliveryAddress(text=str(address["text"]), latitude=latitude, longitude=longitude)


def cart_line_shop_id(line: dict) -> Optional[str]:
    shop = line.get("shop")
    if isinstance(shop, dict):
        shop = shop.get("_id") or shop.get("id")
    return str(shop) if shop else None


def parse_cart_line(line: dict) -> OrderItem:
    item_id = line.get("id") or line.get("_id") or line.get("item_id")
    if not item_id:
        raise ValidationError("Invalid cart item: missing item id")

    try:
        amount = Decimal(str(line.get("quantity")))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid quantity for item {item_id}") from None
    if not amount.is_finite() or amount != amount.to_integral_value():
        raise ValidationError(f"Quantity for item {item_id} must be a whole number")
    quantity = int(amount)
    if quantity <= 0:
        raise ValidationError(f"Quantity for item {item_id} must be positive")

    price = _to_decimal(line.get("price"), "price")
    if price < 0:
        raise ValidationError(f"Price for item {item_id} must not be negative")

    return OrderItem(
        item_id=str(item_id),
        name=line.get("name") or "",
        quantity=quantity,
        price=price,
        image=line.get("image"),
        food_type=line.get("foodType") or line.get("food_type"),
    )


def group_cart_by_shop(cart_items: List[dict]) -> Dict[str, List[OrderItem]]:
    if not isinstance(cart_items, (list, tuple)):
        raise ValidationError("Cart items must be a list")
    grouped: Dict[str, List[OrderItem]] = {}
    for line in cart_items:
        if not isinstance(line, dict):
            raise ValidationError(f"Invalid cart item: {line!r}")
        shop_id = cart_line_shop_id(line)
        if not shop_id:
            raise ValidationError("Invalid cart item: missing shop id")
        grouped.setdefault(shop_id, []).append(parse_cart_line(line))
    return grouped


class OrderPlacement:

    def __init__(
        self,
        orders: OrderRepository,
        shop_lookup: ShopLookup,
        payment_verifier: Optional[PaymentVerifier] = None,
        fanout: Optional[Fanout] = None,
    ):
        self.orders = orders
        self.shop_lookup = shop_lookup
        self.payment_verifier = payment_verifier
        self.fanout = fanout if fanout is not None else Fanout()

    def place(
        self,
        user_id: str,
        cart_items: List[dict],
        payment_method,
        delivery_address,
        payment: Optional[dict] = None,
    ) -> Order:
        if not cart_items:
            raise ValidationError("Cart is empty")

        address = parse_delivery_address(delivery_address)

        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            raise ValidationError(f"Unsupported payment method {payment_method!r}") from None

        grouped = group_cart_by_shop(cart_items)
        payment_status, payment_details = self._settle_payment(method, payment)

        shop_orders = [self._build_shop_order(shop_id, items) for shop_id, items in grouped.items()]

        order = Order.new(
            user_id=user_id,
            payment_method=method,
            payment_status=payment_status,
            delivery_address=address,
            shop_orders=shop_orders,
            payment=payment_details,
        )
        self.orders.add(order)
        logger.info("Order %s placed by %s across %d shops", order.id, user_id, len(shop_orders))

        self.fanout.order_placed(order)
        return order

    def _build_shop_order(self, shop_id: str, items: List[OrderItem]) -> ShopOrder:
        try:
            shop = self.shop_lookup.get(shop_id)
        except DispatchError:
            raise
        except Exception as exc:
            logger.error("Error fetching shop %s: %s", shop_id, exc)
            raise UpstreamCollaboratorError(f"Failed to fetch shop {shop_id}") from exc

        subtotal = sum((item.line_total for item in items), Decimal("0"))
        return ShopOrder(shop_id=shop.id, owner_id=shop.owner_id, subtotal=subtotal, items=items)

    def _settle_payment(self, method: PaymentMethod, payment: Optional[dict]):
        if method == PaymentMethod.COD:
            return PaymentStatus.PENDING, None

        payment = payment or {}
        provider_order_id = payment.get("orderId") or payment.get("razorpay_order_id")
        provider_payment_id = payment.get("paymentId") or payment.get("razorpay_payment_id")
        signature = payment.get("signature") or payment.get("razorpay_signature")
        if not provider_order_id or not provider_payment_id or not signature:
            raise ValidationError("Payment details are required for online payments")

        if self.payment_verifier is None:
            raise InternalError("Payment configuration missing")
        if not self.payment_verifier.verify(provider_order_id, provider_payment_id, signature):
            raise ValidationError("Invalid payment signature")

        amount = payment.get("amount")
        details = PaymentDetails(
            provider=payment.get("provider") or "razorpay",
            order_id=str(provider_order_id),
            payment_id=str(provider_payment_id),
            signature=str(signature),
            currency=payment.get("currency") or "INR",
            amount=_to_decimal(amount, "payment amount") if amount is not None else None,
            receipt=payment.get("receipt"),
        )
        return PaymentStatus.PAID, details
