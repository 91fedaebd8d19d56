"""
Purpose: Customer ratings for delivered items.
What it does:
Rates every delivered, not-yet-rated item of an order with the same score.
Each item is pushed to the item catalog on its own; one failing item does
not stop the others, and only the items the catalog accepted are marked rated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from numbers import Real
from typing import Callable, List, Optional

from collaborators.ports import ItemCatalog
from common.errors import ForbiddenError, NothingToRateError, ValidationError
from common.locks import KeyedLockManager, order_lock_key
from notifications.fanout import Fanout
from .models import OrderItem, ShopOrderStatus, utcnow
from .repository import OrderRepository

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


@dataclass(frozen=True)
class RatedItem:
    item_id: str
    rating: int


def parse_rating(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (Real, str)):
        raise ValidationError("Rating must be a number between 1 and 5")
    try:
        number = float(value)
    except ValueError:
        raise ValidationError("Rating must be a number between 1 and 5") from None
    if not number.is_integer() or not MIN_RATING <= number <= MAX_RATING:
        raise ValidationError("Rating must be a number between 1 and 5")
    return int(number)


class OrderRating:

    def __init__(
        self,
        orders: OrderRepository,
        item_catalog: ItemCatalog,
        fanout: Optional[Fanout] = None,
        locks: Optional[KeyedLockManager] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.orders = orders
        self.item_catalog = item_catalog
        self.fanout = fanout if fanout is not None else Fanout()
        self.locks = locks if locks is not None else KeyedLockManager()
        self.clock = clock

    def rate(self, order_id: str, user_id: str, rating) -> List[RatedItem]:
        score = parse_rating(rating)

        with self.locks.lock(order_lock_key(order_id)):
            order = self.orders.require(order_id)
            if order.user_id != user_id:
                raise ForbiddenError("You cannot rate this order")
            if not order.shop_orders:
                raise ValidationError("Order has no items to rate")

            rateable: List[OrderItem] = [
                item
                for shop_order in order.shop_orders
                if shop_order.status == ShopOrderStatus.DELIVERED
                for item in shop_order.items
                if item.item_id and not item.is_rated
            ]
            if not rateable:
                raise NothingToRateError("Order is either not delivered yet or already rated")

            now = self.clock()
            rated: List[RatedItem] = []
            for item in rateable:
                try:
                    self.item_catalog.record_rating(item.item_id, score)
                except Exception as exc:
                    logger.error("Error updating rating for item %s: %s", item.item_id, exc)
                    continue
                item.user_rating = score
                item.rated_at = now
                rated.append(RatedItem(item_id=item.item_id, rating=score))

            self.orders.save(order)

        logger.info("Order %s: rated %d of %d items", order_id, len(rated), len(rateable))
        self.fanout.order_rated(order)
        return rated
