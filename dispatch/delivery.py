"""
Purpose: The courier side of an accepted delivery.
What it does:
- lists open offers for a courier and the courier's current delivery
- moves an assignment forward (picked-up, en-route)
- two-phase drop-off confirmation: the courier asks for a code, the system
  stores a short-lived numeric code against the customer and emails it; the
  courier then submits the code the customer reads out, and only a verified
  code completes the Assignment and delivers the ShopOrder.
"""

from __future__ import annotations

import copy
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from collaborators.ports import Mailer, OtpStore, UserDirectory
from common.errors import (
    DispatchError,
    InternalError,
    NotFoundError,
    UpstreamCollaboratorError,
    ValidationError,
)
from common.locks import KeyedLockManager, assignment_lock_key, order_lock_key
from couriers.policy import BroadcastPolicy, default_broadcast_policy
from notifications.fanout import Fanout
from orders.models import STATUS_MESSAGES, Order, ShopOrder, ShopOrderStatus, utcnow
from orders.repository import OrderRepository
from .models import Assignment, AssignmentStatus
from .repository import AssignmentRepository
from .state_machines.assignment_state import advance_assignment, complete_assignment
from .state_machines.order_state import mark_delivered

logger = logging.getLogger(__name__)


def generate_code(digits: int = 4) -> str:
    """Uniform numeric code without a leading zero, e.g. 1000-9999 for 4 digits."""
    low = 10 ** (digits - 1)
    return str(low + secrets.randbelow(9 * low))


@dataclass
class DeliveryResult:
    order: Order
    shop_order: ShopOrder
    assignment: Assignment


class CourierDesk:

    def __init__(
        self,
        orders: OrderRepository,
        assignments: AssignmentRepository,
        otp_store: OtpStore,
        user_directory: Optional[UserDirectory] = None,
        mailer: Optional[Mailer] = None,
        fanout: Optional[Fanout] = None,
        locks: Optional[KeyedLockManager] = None,
        policy: Optional[BroadcastPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.orders = orders
        self.assignments = assignments
        self.otp_store = otp_store
        self.user_directory = user_directory
        self.mailer = mailer
        self.fanout = fanout if fanout is not None else Fanout()
        self.locks = locks if locks is not None else KeyedLockManager()
        self.policy = policy or default_broadcast_policy()
        self.clock = clock

    # --- Queries ---

    def list_offers(self, courier_id: str) -> List[dict]:
        offers = []
        for assignment in self.assignments.list_broadcasted_for(courier_id):
            order = self.orders.get(assignment.order_id)
            if order is None:
                logger.warning("Offer %s points at missing order %s", assignment.id, assignment.order_id)
                continue
            shop_order = order.find_shop_order(assignment.shop_order_id)
            offers.append({
                "assignmentId": assignment.id,
                "orderId": order.id,
                "shopId": assignment.shop_id,
                "items": [item.to_dict() for item in shop_order.items] if shop_order else [],
                "subtotal": str(shop_order.subtotal) if shop_order else None,
                "deliveryAddress": order.delivery_address.to_dict(),
            })
        return offers

    def current_assignment(self, courier_id: str) -> dict:
        assignment, order, shop_order = self._load_active(courier_id)

        courier_location = None
        if self.user_directory is not None:
            try:
                courier_location = self.user_directory.get_location(courier_id)
            except Exception as exc:
                logger.warning("Could not fetch location for courier %s: %s", courier_id, exc)

        latitude, longitude = courier_location if courier_location else (None, None)
        return {
            "id": assignment.id,
            "status": assignment.status.value,
            "userId": order.user_id,
            "shop": assignment.shop_id,
            "shopOrder": shop_order.to_dict(),
            "deliveryAddress": order.delivery_address.to_dict(),
            "deliveryBoyLocation": {"lat": latitude, "long": longitude},
            "customerLocation": {
                "lat": order.delivery_address.latitude,
                "long": order.delivery_address.longitude,
            },
        }

    def _load_active(self, courier_id: str):
        assignment = self.assignments.find_active_for(courier_id)
        if assignment is None:
            raise NotFoundError("No current assignment found")

        order = self.orders.get(assignment.order_id)
        if order is None:
            raise NotFoundError("Order details not found")

        shop_order = order.find_shop_order(assignment.shop_order_id)
        if shop_order is None:
            raise NotFoundError("Shop order details not found")
        return assignment, order, shop_order

    # --- Progress ---

    def advance(self, courier_id: str, new_status) -> Assignment:
        try:
            new_status = AssignmentStatus(new_status)
        except ValueError:
            raise ValidationError(f"Invalid assignment status {new_status!r}") from None

        current = self.assignments.find_active_for(courier_id)
        if current is None:
            raise NotFoundError("No current assignment found")

        with self.locks.lock(assignment_lock_key(current.id)):
            assignment = self.assignments.require(current.id)
            if assignment.assigned_to != courier_id:
                raise NotFoundError("No current assignment found")
            expected = assignment.status
            advance_assignment(assignment, new_status)
            self.assignments.save(assignment, expected_status=expected)

        logger.info("Assignment %s moved to %s", assignment.id, new_status.value)
        return assignment

    # --- Drop-off confirmation ---

    def request_code(self, courier_id: str) -> dict:
        assignment, order, _ = self._load_active(courier_id)
        code = generate_code(self.policy.otp_digits)

        try:
            self.otp_store.set(order.user_id, code, self.policy.otp_ttl_seconds)
        except UpstreamCollaboratorError:
            logger.error("Failed to store delivery code for order %s", order.id)
            raise
        except Exception as exc:
            logger.error("Failed to store delivery code for order %s: %s", order.id, exc)
            raise UpstreamCollaboratorError("Failed to generate OTP") from exc

        self._email_customer(order.user_id, "order-delivered", {"otp": code})
        logger.info("Delivery code issued for assignment %s", assignment.id)
        return {"assignmentId": assignment.id, "expiresInSeconds": self.policy.otp_ttl_seconds}

    def confirm(self, courier_id: str, code: str) -> DeliveryResult:
        if not code:
            raise ValidationError("Delivery code is required")

        current = self.assignments.find_active_for(courier_id)
        if current is None:
            raise NotFoundError("No current assignment found")

        with self.locks.lock(assignment_lock_key(current.id)):
            assignment = self.assignments.require(current.id)
            if assignment.assigned_to != courier_id or not assignment.is_active:
                raise NotFoundError("No current assignment found")

            order = self.orders.require(assignment.order_id)
            if not self._verify(order.user_id, str(code)):
                raise ValidationError("Invalid or expired OTP")

            snapshot = copy.deepcopy(assignment)
            complete_assignment(assignment, self.clock())
            self.assignments.save(assignment, expected_status=snapshot.status)

            try:
                order, shop_order = self._deliver_shop_order(assignment)
            except Exception as exc:
                self.assignments.restore(snapshot, exc)
                if isinstance(exc, DispatchError):
                    raise
                raise InternalError(f"Could not mark order {assignment.order_id} delivered") from exc

        logger.info("Assignment %s completed by courier %s", assignment.id, courier_id)
        self.fanout.status_changed(
            order, shop_order, STATUS_MESSAGES[ShopOrderStatus.DELIVERED], courier_id=courier_id,
        )
        return DeliveryResult(order=order, shop_order=shop_order, assignment=assignment)

    def _verify(self, user_id: str, code: str) -> bool:
        try:
            return bool(self.otp_store.verify(user_id, code))
        except UpstreamCollaboratorError:
            raise
        except Exception as exc:
            raise UpstreamCollaboratorError("Could not verify delivery code") from exc

    def _deliver_shop_order(self, assignment: Assignment):
        with self.locks.lock(order_lock_key(assignment.order_id)):
            order = self.orders.require(assignment.order_id)
            shop_order = order.find_shop_order(assignment.shop_order_id)
            if shop_order is None:
                raise NotFoundError(f"Shop order {assignment.shop_order_id} not found")
            mark_delivered(shop_order)
            self.orders.save(order)
        return order, shop_order

    def _email_customer(self, user_id: str, template: str, data: dict) -> None:
        if self.user_directory is None or self.mailer is None:
            return
        try:
            email = self.user_directory.get_email(user_id)
            if email:
                self.mailer.send(template, dict(data, email=email))
        except Exception as exc:
            logger.warning("Could not email user %s (%s): %s", user_id, template, exc)
