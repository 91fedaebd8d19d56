"""
Purpose: In-memory Order storage.
What it does:
- Owns the orders by id (the durability boundary of the core)
- Hands out copies on read and stores copies on write, so a caller's
  mutations only become visible through save()
- Answers the listing queries used by customer and owner views

Rule: Repository owns storage, callers own state transitions.
Locking for read-modify-write sequences is the caller's job (KeyedLockManager).
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, List, Optional

from common.errors import NotFoundError
from .models import Order


@dataclass
class OrderRepository:
    """
    Thread-safe dict of orders keyed by id.
    """
    _orders: Dict[str, Order] = field(default_factory=dict)
    _guard: Lock = field(default_factory=Lock, repr=False)

    # --- Public API ---

    def add(self, order: Order) -> None:
        with self._guard:
            if order.id in self._orders:
                #idempotency : dont double insert
                return
            self._orders[order.id] = copy.deepcopy(order)

    def get(self, order_id: str) -> Optional[Order]:
        with self._guard:
            order = self._orders.get(order_id)
            return copy.deepcopy(order) if order else None

    def require(self, order_id: str) -> Order:
        order = self.get(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def save(self, order: Order) -> None:
        with self._guard:
            if order.id not in self._orders:
                raise NotFoundError(f"Order {order.id} not found")
            self._orders[order.id] = copy.deepcopy(order)

    def list_for_user(self, user_id: str) -> List[Order]:
        """
        Newest first.
        """
        with self._guard:
            orders = [copy.deepcopy(o) for o in self._orders.values() if o.user_id == user_id]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def list_for_owner(self, owner_id: str) -> List[Order]:
        """
        Orders with at least one shop order owned by owner_id, newest first.
        """
        with self._guard:
            orders = [
                copy.deepcopy(o) for o in self._orders.values()
                if any(so.owner_id == owner_id for so in o.shop_orders)
            ]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def __len__(self) -> int:
        with self._guard:
            return len(self._orders)
