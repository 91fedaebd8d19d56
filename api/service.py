"""
Purpose: The operations exposed to clients, independent of any HTTP framework.
What it does:
Wires the repositories, the lock manager, the fanout and the domain services
together, and exposes one method per client action. Every method returns an
Envelope; nothing raises out of this layer.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import List, Optional

from collaborators.ports import (
    ItemCatalog,
    Mailer,
    NearbyCouriers,
    Notifier,
    OtpStore,
    PaymentVerifier,
    ShopLookup,
    UserDirectory,
)
from common.errors import ValidationError
from common.locks import KeyedLockManager
from couriers.policy import BroadcastPolicy, default_broadcast_policy
from dispatch.delivery import CourierDesk
from dispatch.dispatcher import Dispatcher
from dispatch.repository import AssignmentRepository
from notifications.fanout import Fanout
from orders.owner_view import list_owner_orders
from orders.placement import OrderPlacement
from orders.rating import OrderRating
from orders.repository import OrderRepository
from orders.status import OrderStatusService
from .envelope import enveloped

logger = logging.getLogger(__name__)


def _require(value, name: str):
    if value is None or value == "":
        raise ValidationError(f"{name} is required")
    return value


class DeliveryService:

    def __init__(
        self,
        shop_lookup: ShopLookup,
        nearby_couriers: NearbyCouriers,
        otp_store: OtpStore,
        item_catalog: ItemCatalog,
        user_directory: Optional[UserDirectory] = None,
        mailer: Optional[Mailer] = None,
        notifier: Optional[Notifier] = None,
        payment_verifier: Optional[PaymentVerifier] = None,
        policy: Optional[BroadcastPolicy] = None,
        executor: Optional[Executor] = None,
        orders: Optional[OrderRepository] = None,
        assignments: Optional[AssignmentRepository] = None,
        strict_transitions: bool = False,
    ):
        self.policy = policy or default_broadcast_policy()
        self.policy.validate()

        self.orders = orders if orders is not None else OrderRepository()
        self.assignments = assignments if assignments is not None else AssignmentRepository()
        self.locks = KeyedLockManager()
        self.fanout = Fanout(notifier, executor=executor)

        self.dispatcher = Dispatcher(
            self.orders, self.assignments, nearby_couriers,
            fanout=self.fanout, locks=self.locks, policy=self.policy,
        )
        self.placement = OrderPlacement(
            self.orders, shop_lookup, payment_verifier=payment_verifier, fanout=self.fanout,
        )
        self.status = OrderStatusService(
            self.dispatcher, user_directory=user_directory, mailer=mailer, strict=strict_transitions,
        )
        self.desk = CourierDesk(
            self.orders, self.assignments, otp_store,
            user_directory=user_directory, mailer=mailer, fanout=self.fanout,
            locks=self.locks, policy=self.policy,
        )
        self.rating = OrderRating(self.orders, item_catalog, fanout=self.fanout, locks=self.locks)

    @classmethod
    def from_settings(cls, executor: Optional[Executor] = None) -> "DeliveryService":
        """Production wiring: HTTP adapters pointed at the URLs in settings."""
        from collaborators.http_clients import (
            AuthServiceClient,
            NotificationServiceClient,
            RealtimeGatewayNotifier,
            ShopServiceClient,
        )
        from collaborators.payments import HmacPaymentVerifier
        from couriers.policy import broadcast_policy_from_env

        auth = AuthServiceClient()
        shops = ShopServiceClient()
        return cls(
            shop_lookup=shops,
            nearby_couriers=auth,
            otp_store=auth,
            item_catalog=shops,
            user_directory=auth,
            mailer=NotificationServiceClient(),
            notifier=RealtimeGatewayNotifier(),
            payment_verifier=HmacPaymentVerifier(),
            policy=broadcast_policy_from_env(),
            executor=executor,
        )

    # --- Customer ---

    @enveloped("Order placed successfully", status=201)
    def place_order(self, user_id, cart_items, payment_method, delivery_address, payment=None) -> dict:
        _require(user_id, "userId")
        order = self.placement.place(user_id, cart_items, payment_method, delivery_address, payment)
        return order.to_dict()

    @enveloped("Orders fetched")
    def list_my_orders(self, user_id) -> List[dict]:
        _require(user_id, "userId")
        return [order.to_dict() for order in self.orders.list_for_user(user_id)]

    @enveloped("Order fetched")
    def get_order(self, order_id) -> dict:
        _require(order_id, "orderId")
        return self.orders.require(order_id).to_dict()

    @enveloped("Rating submitted successfully")
    def rate_order(self, order_id, user_id, rating) -> dict:
        _require(order_id, "orderId")
        _require(user_id, "userId")
        rated = self.rating.rate(order_id, user_id, rating)
        return {
            "orderId": order_id,
            "ratedItems": [{"itemId": r.item_id, "rating": r.rating} for r in rated],
        }

    # --- Shop owner ---

    @enveloped("Orders fetched")
    def list_owner_orders(self, owner_id) -> List[dict]:
        _require(owner_id, "ownerId")
        return list_owner_orders(self.orders, owner_id, self.policy)

    @enveloped("Order status updated")
    def transition_status(self, order_id, shop_order_id, status) -> dict:
        result = self.status.transition(order_id, shop_order_id, status)
        return {
            "orderId": result.order.id,
            "shopOrder": result.shop_order.to_dict(),
            "assignment": result.assignment.id if result.assignment else None,
            "availableBoys": [courier.to_offer_payload() for courier in result.available_couriers],
        }

    # --- Courier ---

    @enveloped("Assignments fetched")
    def list_assignments_for_courier(self, courier_id) -> List[dict]:
        _require(courier_id, "courierId")
        return self.desk.list_offers(courier_id)

    @enveloped("Order accepted")
    def accept_assignment(self, assignment_id, courier_id) -> dict:
        _require(assignment_id, "assignmentId")
        _require(courier_id, "courierId")
        result = self.dispatcher.resolve_courier_acceptance(assignment_id, courier_id)
        return {
            "assignment": result.assignment.to_dict(),
            "orderId": result.order.id,
            "shopOrder": result.shop_order.to_dict(),
        }

    @enveloped("Current assignment fetched")
    def get_current_assignment(self, courier_id) -> dict:
        _require(courier_id, "courierId")
        return self.desk.current_assignment(courier_id)

    @enveloped("Assignment updated")
    def advance_assignment(self, courier_id, status) -> dict:
        _require(courier_id, "courierId")
        _require(status, "status")
        return self.desk.advance(courier_id, status).to_dict()

    @enveloped("OTP sent to customer")
    def request_delivery_code(self, courier_id) -> dict:
        _require(courier_id, "courierId")
        return self.desk.request_code(courier_id)

    @enveloped("Order delivered successfully")
    def confirm_delivery(self, courier_id, code) -> dict:
        _require(courier_id, "courierId")
        result = self.desk.confirm(courier_id, code)
        return {
            "orderId": result.order.id,
            "shopOrderId": result.shop_order.id,
            "status": result.shop_order.status.value,
            "assignment": result.assignment.to_dict(),
        }
