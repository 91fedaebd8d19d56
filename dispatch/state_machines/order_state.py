from typing import Dict, FrozenSet

from common.errors import InvalidStateError, ValidationError
from orders.models import ShopOrder, ShopOrderStatus

S = ShopOrderStatus

#opt-in forward-only table; the default path lets shop owners set any status directly
STRICT_TRANSITIONS: Dict[ShopOrderStatus, FrozenSet[ShopOrderStatus]] = {
    S.PENDING: frozenset({S.PREPARING, S.OUT_FOR_DELIVERY, S.CANCELLED}),
    S.PREPARING: frozenset({S.OUT_FOR_DELIVERY, S.CANCELLED}),
    S.OUT_FOR_DELIVERY: frozenset({S.DELIVERED, S.CANCELLED}),
    S.DELIVERED: frozenset(),
    S.CANCELLED: frozenset(),
}


def parse_status(value) -> ShopOrderStatus:
    if isinstance(value, ShopOrderStatus):
        return value
    try:
        return ShopOrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ShopOrderStatus)
        raise ValidationError(f"Invalid status {value!r}, expected one of: {allowed}") from None


def set_shop_order_status(shop_order: ShopOrder, new_status: ShopOrderStatus, strict: bool = False) -> ShopOrder:
    """
    Owner-driven status change. Re-setting the current status is always allowed.
    """
    if strict and new_status != shop_order.status and new_status not in STRICT_TRANSITIONS[shop_order.status]:
        raise InvalidStateError(
            f"Cannot transition shop order {shop_order.id} from {shop_order.status.value} to {new_status.value}"
        )
    shop_order.status = new_status
    return shop_order


def link_assignment(shop_order: ShopOrder, assignment_id: str) -> ShopOrder:
    """
    Called once by the broadcaster. A shop order never points at two offers.
    """
    if shop_order.assignment_id is not None:
        raise InvalidStateError(f"Shop order {shop_order.id} already has assignment {shop_order.assignment_id}")
    shop_order.assignment_id = assignment_id
    shop_order.assigned_courier_id = None
    return shop_order


def assign_courier(shop_order: ShopOrder, courier_id: str) -> ShopOrder:
    shop_order.assigned_courier_id = courier_id
    return shop_order


def mark_delivered(shop_order: ShopOrder) -> ShopOrder:
    shop_order.status = ShopOrderStatus.DELIVERED
    shop_order.assigned_courier_id = None
    return shop_order
