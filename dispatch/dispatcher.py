"""
Purpose: Orchestrator for delivery offers (the "glue").
What it does:
Takes a ShopOrder that just went out for delivery, finds free couriers near the
drop-off, opens one broadcasted Assignment offered to all of them at once,
and resolves the race when several of them hit "Accept" at the same time.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from common.errors import DispatchError, InternalError, InvalidStateError, NoCandidatesError, NotFoundError
from common.locks import KeyedLockManager, assignment_lock_key, order_lock_key
from couriers.models import Courier
from couriers.policy import BroadcastPolicy, default_broadcast_policy
from couriers.selection import filter_busy_couriers, find_nearby_couriers
from notifications.fanout import Fanout
from orders.models import Order, ShopOrder, utcnow
from orders.repository import OrderRepository
from .models import ACTIVE_STATUSES, Assignment, AssignmentStatus
from .repository import AssignmentRepository
from .state_machines.assignment_state import claim_assignment
from .state_machines.order_state import assign_courier, link_assignment

logger = logging.getLogger(__name__)


@dataclass
class AcceptResult:
    order: Order
    shop_order: ShopOrder
    assignment: Assignment
    previous_candidates: List[str]

    @property
    def losing_candidates(self) -> List[str]:
        return [c for c in self.previous_candidates if c != self.assignment.assigned_to]


class Dispatcher:
    """
    Coordinates handing a ShopOrder to exactly one courier: broadcast, then first accept wins.
    """
    def __init__(
        self,
        orders: OrderRepository,
        assignments: AssignmentRepository,
        nearby_couriers,
        fanout: Optional[Fanout] = None,
        locks: Optional[KeyedLockManager] = None,
        policy: Optional[BroadcastPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.orders = orders
        self.assignments = assignments
        self.nearby_couriers = nearby_couriers
        self.fanout = fanout if fanout is not None else Fanout()
        self.locks = locks if locks is not None else KeyedLockManager()
        self.policy = policy or default_broadcast_policy()
        self.clock = clock

    # --- Broadcast ---

    def select_candidates(self, order: Order) -> List[Courier]:
        """
        Nearby couriers (primary ring, then fallback ring) minus the ones already busy.
        The busy check is a single lookup for the whole candidate set.
        """
        nearby = find_nearby_couriers(self.nearby_couriers, order.delivery_address.coordinates, self.policy)
        if not nearby:
            return []

        busy_ids = self.assignments.list_assigned_couriers([c.id for c in nearby], ACTIVE_STATUSES)
        eligible = filter_busy_couriers(nearby, busy_ids)
        if busy_ids:
            logger.info("Skipping %d busy couriers for order %s", len(busy_ids), order.id)
        return eligible

    def open_offer(self, order: Order, shop_order: ShopOrder, candidates: List[Courier]) -> Assignment:
        """
        Creates the broadcasted Assignment and links it onto the (in-memory) shop order.
        The caller persists the order.
        """
        if not candidates:
            raise NoCandidatesError(f"No available couriers near order {order.id}")

        assignment = Assignment(
            order_id=order.id,
            shop_id=shop_order.shop_id,
            shop_order_id=shop_order.id,
            broadcasted_to=[c.id for c in candidates],
            created_at=self.clock(),
        )
        link_assignment(shop_order, assignment.id)
        self.assignments.add(assignment)

        logger.info(
            "Broadcasting assignment %s for shop order %s to %d couriers",
            assignment.id, shop_order.id, len(candidates),
        )
        return assignment

    def broadcast(self, order: Order, shop_order: ShopOrder) -> Assignment:
        return self.open_offer(order, shop_order, self.select_candidates(order))

    # --- Accept race ---

    def resolve_courier_acceptance(self, assignment_id: str, courier_id: str) -> AcceptResult:
        """
        Race Condition Resolver: called when a courier's device hits "Accept".
        Guarantees that two couriers cannot accept the same Assignment.

        The assignment is claimed first (compare-and-set on BROADCASTED), then the
        parent shop order is updated. If the order write fails, the assignment is
        restored to its pre-claim snapshot before the lock is released.
        """
        with self.locks.lock(assignment_lock_key(assignment_id)):
            assignment = self.assignments.require(assignment_id)
            snapshot = copy.deepcopy(assignment)

            previous_candidates = claim_assignment(assignment, courier_id, self.clock())
            self.assignments.save(assignment, expected_status=AssignmentStatus.BROADCASTED)

            try:
                order, shop_order = self._record_winner(assignment, courier_id)
            except Exception as exc:
                self.assignments.restore(snapshot, exc)
                if isinstance(exc, DispatchError):
                    raise
                raise InternalError(f"Could not record courier on order {assignment.order_id}") from exc

        logger.info("Courier %s won assignment %s", courier_id, assignment_id)

        result = AcceptResult(
            order=order,
            shop_order=shop_order,
            assignment=assignment,
            previous_candidates=previous_candidates,
        )
        self.fanout.status_changed(order, shop_order, "Delivery partner assigned", courier_id=courier_id)
        self.fanout.assignment_closed(assignment, result.losing_candidates)
        return result

    def _record_winner(self, assignment: Assignment, courier_id: str):
        with self.locks.lock(order_lock_key(assignment.order_id)):
            order = self.orders.require(assignment.order_id)
            shop_order = order.find_shop_order(assignment.shop_order_id)
            if shop_order is None:
                raise NotFoundError(f"Shop order {assignment.shop_order_id} not found")
            if shop_order.assignment_id != assignment.id:
                raise InvalidStateError(f"Assignment {assignment.id} is no longer offered for this order")
            assign_courier(shop_order, courier_id)
            self.orders.save(order)
        return order, shop_order
