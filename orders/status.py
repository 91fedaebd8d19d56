"""
Purpose: Shop-owner driven status changes on one ShopOrder.
What it does:
Sets the new status, and the first time a shop order goes out for delivery
asks the Dispatcher to broadcast it to nearby free couriers. Finding nobody
(or the courier lookup failing) never blocks the status change; the shop
order simply stays without an assignment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from collaborators.ports import Mailer, UserDirectory
from common.errors import NoCandidatesError, NotFoundError, ValidationError
from common.locks import order_lock_key
from couriers.models import Courier
from dispatch.dispatcher import Dispatcher
from dispatch.models import Assignment
from dispatch.state_machines.order_state import parse_status, set_shop_order_status
from notifications.fanout import Fanout
from .models import STATUS_MESSAGES, Order, ShopOrder, ShopOrderStatus

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    order: Order
    shop_order: ShopOrder
    assignment: Optional[Assignment] = None
    available_couriers: List[Courier] = field(default_factory=list)


class OrderStatusService:

    def __init__(
        self,
        dispatcher: Dispatcher,
        fanout: Optional[Fanout] = None,
        user_directory: Optional[UserDirectory] = None,
        mailer: Optional[Mailer] = None,
        strict: bool = False,
    ):
        self.dispatcher = dispatcher
        self.orders = dispatcher.orders
        self.locks = dispatcher.locks
        self.fanout = fanout if fanout is not None else dispatcher.fanout
        self.user_directory = user_directory
        self.mailer = mailer
        self.strict = strict

    def transition(self, order_id: str, shop_order_id: str, new_status) -> TransitionResult:
        if not order_id or not shop_order_id or not new_status:
            raise ValidationError("orderId, shopOrderId and status are required")
        status = parse_status(new_status)

        assignment = None
        candidates: List[Courier] = []

        with self.locks.lock(order_lock_key(order_id)):
            order = self.orders.require(order_id)
            shop_order = order.find_shop_order(shop_order_id)
            if shop_order is None:
                raise NotFoundError("Shop order not found")

            set_shop_order_status(shop_order, status, strict=self.strict)

            if status == ShopOrderStatus.OUT_FOR_DELIVERY and shop_order.assignment_id is None:
                assignment, candidates = self._broadcast(order, shop_order)

            try:
                self.orders.save(order)
            except Exception:
                if assignment is not None:
                    logger.error("Saving order %s failed, dropping assignment %s", order.id, assignment.id)
                    self.dispatcher.assignments.delete(assignment.id)
                raise

        logger.info("Shop order %s of order %s set to %s", shop_order.id, order.id, status.value)

        if status == ShopOrderStatus.PREPARING:
            self._email_customer(order, shop_order)

        self.fanout.status_changed(order, shop_order, STATUS_MESSAGES[status])
        if assignment is not None:
            self.fanout.assignment_offered(order, shop_order, assignment, assignment.broadcasted_to)

        return TransitionResult(
            order=order,
            shop_order=shop_order,
            assignment=assignment,
            available_couriers=candidates,
        )

    def _broadcast(self, order: Order, shop_order: ShopOrder):
        try:
            candidates = self.dispatcher.select_candidates(order)
            assignment = self.dispatcher.open_offer(order, shop_order, candidates)
        except NoCandidatesError as exc:
            logger.info("Shop order %s out for delivery without an assignment: %s", shop_order.id, exc)
            return None, []
        except Exception as exc:
            logger.error("Error finding couriers for shop order %s: %s", shop_order.id, exc)
            return None, []
        return assignment, candidates

    def _email_customer(self, order: Order, shop_order: ShopOrder) -> None:
        if self.user_directory is None or self.mailer is None:
            return
        try:
            email = self.user_directory.get_email(order.user_id)
            if email:
                self.mailer.send("order-status", {"email": email, "status": shop_order.status.value})
        except Exception as exc:
            logger.warning("Could not send status email for order %s: %s", order.id, exc)
