from decimal import Decimal
from typing import List, Optional

from couriers.policy import BroadcastPolicy, default_broadcast_policy
from .models import Order
from .repository import OrderRepository


def displayed_total(subtotal: Decimal, policy: Optional[BroadcastPolicy] = None) -> Decimal:
    """
    Owner-facing total: small orders show the flat delivery fee on top.
    480 -> 530, 500 -> 500.
    """
    policy = policy or default_broadcast_policy()
    if subtotal < policy.delivery_fee_threshold:
        return subtotal + policy.delivery_fee
    return subtotal


def owner_view(order: Order, owner_id: str, policy: Optional[BroadcastPolicy] = None) -> dict:
    """
    The order as one shop owner sees it: only their shop orders, and a total
    recomputed from those. Never written back to the stored order.
    """
    own = [so for so in order.shop_orders if so.owner_id == owner_id]
    subtotal = sum((so.subtotal for so in own), Decimal("0"))

    view = order.to_dict()
    view["shopOrder"] = [so.to_dict() for so in own]
    view["totalAmount"] = str(displayed_total(subtotal, policy))
    return view


def list_owner_orders(orders: OrderRepository, owner_id: str, policy: Optional[BroadcastPolicy] = None) -> List[dict]:
    return [owner_view(order, owner_id, policy) for order in orders.list_for_owner(owner_id)]
