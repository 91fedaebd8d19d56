"""
Purpose: Best-effort fanout of state changes to real-time subscribers.
What it does:
Wraps a Notifier (see collaborators.ports) and knows which rooms hear about
which transition. Every publish is fire-and-forget: failures are logged and
swallowed, so a notification can never fail or roll back the transition that
triggered it. Pass an Executor to move delivery off the request thread.

Constructed explicitly and injected into the services that need it;
use NullNotifier when nobody is listening.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Iterable, Optional

from collaborators.ports import Notifier
from . import events

logger = logging.getLogger(__name__)


class NullNotifier(Notifier):
    """Drops everything."""

    def publish(self, channel_key: str, event_name: str, payload: dict) -> None:
        return None


class Fanout:

    def __init__(self, notifier: Optional[Notifier] = None, executor: Optional[Executor] = None):
        self.notifier = notifier or NullNotifier()
        self.executor = executor

    # --- Low level ---

    def publish(self, channel_key: str, event_name: str, payload: dict) -> None:
        if self.executor is not None:
            try:
                self.executor.submit(self._deliver, channel_key, event_name, payload)
            except RuntimeError as exc:
                #executor already shut down
                logger.warning("Dropped %s for %s: %s", event_name, channel_key, exc)
            return
        self._deliver(channel_key, event_name, payload)

    def _deliver(self, channel_key: str, event_name: str, payload: dict) -> None:
        try:
            self.notifier.publish(channel_key, event_name, payload)
        except Exception:
            logger.exception("Failed to publish %s to %s", event_name, channel_key)

    def _refresh_user(self, order_id: str, user_id: Optional[str]) -> None:
        if not user_id:
            return
        payload = {"scope": "user", "orderId": order_id, "userId": user_id}
        self.publish(events.user_channel(user_id), events.ORDERS_REFRESH, payload)
        self.publish(events.GLOBAL_CHANNEL, events.ORDERS_REFRESH, payload)

    def _refresh_owner(self, order_id: str, owner_id: Optional[str], include_global: bool = True) -> None:
        if not owner_id:
            return
        payload = {"scope": "owner", "orderId": order_id, "ownerId": owner_id}
        self.publish(events.owner_channel(owner_id), events.ORDERS_REFRESH, payload)
        if include_global:
            self.publish(events.GLOBAL_CHANNEL, events.ORDERS_REFRESH, payload)

    # --- Transitions ---

    def order_placed(self, order) -> None:
        self._refresh_user(order.id, order.user_id)
        for owner_id in order.owner_ids():
            self._refresh_owner(order.id, owner_id)

    def status_changed(self, order, shop_order, message: str, courier_id: Optional[str] = None) -> None:
        """
        order:status to the order, user, owner and courier rooms, then a refresh nudge
        for each of them. courier_id defaults to the shop order's assigned courier.
        """
        courier_id = courier_id or shop_order.assigned_courier_id
        payload = {
            "orderId": order.id,
            "shopOrderId": shop_order.id,
            "status": shop_order.status.value,
            "assignmentId": shop_order.assignment_id,
            "assignedDeliveryBoy": shop_order.assigned_courier_id,
            "userId": order.user_id,
            "ownerId": shop_order.owner_id,
            "message": message,
        }

        self.publish(events.order_channel(order.id), events.ORDER_STATUS, payload)

        if order.user_id:
            self.publish(events.user_channel(order.user_id), events.ORDER_STATUS, payload)
            self._refresh_user(order.id, order.user_id)

        if shop_order.owner_id:
            self.publish(events.owner_channel(shop_order.owner_id), events.ORDER_STATUS, payload)
            self._refresh_owner(order.id, shop_order.owner_id)

        if courier_id:
            self.publish(events.courier_channel(courier_id), events.ORDER_STATUS, payload)
            self.publish(
                events.courier_channel(courier_id),
                events.ORDERS_REFRESH,
                {"scope": "delivery", "orderId": order.id},
            )

    def assignment_offered(self, order, shop_order, assignment, candidate_ids: Iterable[str]) -> None:
        payload = {
            "orderId": order.id,
            "shopOrderId": shop_order.id,
            "assignmentId": assignment.id,
            "shop": {"id": shop_order.shop_id},
            "deliveryAddress": order.delivery_address.to_dict(),
            "subtotal": str(shop_order.subtotal),
            "items": [
                {"name": item.name, "quantity": item.quantity, "price": str(item.price)}
                for item in shop_order.items
            ],
        }
        for courier_id in candidate_ids:
            self.publish(events.courier_channel(courier_id), events.DELIVERY_ASSIGNMENT, payload)

    def assignment_closed(self, assignment, courier_ids: Iterable[str]) -> None:
        """
        Revokes the offer card from couriers who lost the race.
        """
        payload = {
            "assignmentId": assignment.id,
            "orderId": assignment.order_id,
            "shopOrderId": assignment.shop_order_id,
        }
        for courier_id in courier_ids:
            self.publish(events.courier_channel(courier_id), events.DELIVERY_ASSIGNMENT_CLOSED, payload)

    def order_rated(self, order) -> None:
        self._refresh_user(order.id, order.user_id)
        for owner_id in order.owner_ids():
            self._refresh_owner(order.id, owner_id, include_global=False)
