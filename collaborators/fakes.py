"""Fake collaborators: deterministic in-memory stand-ins for the external services.

Used by the test suite and by scripts/run_accept_race_simulation.py.
Each fake records what it was asked to do and can be told to fail.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, List, Optional, Set, Tuple

from common.errors import NotFoundError, UpstreamCollaboratorError
from couriers.models import Courier
from couriers.selection import haversine_m
from .ports import (
    ItemCatalog,
    Mailer,
    NearbyCouriers,
    Notifier,
    OtpStore,
    PaymentVerifier,
    ShopInfo,
    ShopLookup,
    UserDirectory,
)

LatLon = Tuple[float, float]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryShopLookup(ShopLookup):

    def __init__(self, shops: Dict[str, ShopInfo] = None):
        self.shops: Dict[str, ShopInfo] = dict(shops or {})
        self.should_succeed = True

    def add(self, shop_id: str, owner_id: str, items: List[dict] = None) -> ShopInfo:
        shop = ShopInfo(id=shop_id, owner_id=owner_id, items=list(items or []))
        self.shops[shop_id] = shop
        return shop

    def get(self, shop_id: str) -> ShopInfo:
        if not self.should_succeed:
            raise UpstreamCollaboratorError("Shop service unavailable")
        shop = self.shops.get(shop_id)
        if shop is None:
            raise NotFoundError(f"Shop {shop_id} not found")
        return shop


class InMemoryCourierLocator(NearbyCouriers):
    """
    Brute-force radius search over registered courier positions.
    Results come back nearest first. Every query is recorded in `queries`.
    """

    def __init__(self, couriers: List[Courier] = None):
        self.couriers: Dict[str, Courier] = {c.id: c for c in couriers or []}
        self.queries: List[Tuple[float, float, float]] = []
        self.should_succeed = True

    def add(self, courier: Courier) -> None:
        self.couriers[courier.id] = courier

    def find(self, lat: float, lon: float, radius_m: float) -> List[Courier]:
        self.queries.append((lat, lon, radius_m))
        if not self.should_succeed:
            raise UpstreamCollaboratorError("Courier lookup unavailable")

        in_range = []
        for courier in self.couriers.values():
            if courier.location is None:
                continue
            distance = haversine_m((lat, lon), courier.location)
            if distance <= radius_m:
                in_range.append((distance, courier))
        in_range.sort(key=lambda pair: pair[0])
        return [courier for _, courier in in_range]


class InMemoryUserDirectory(UserDirectory):

    def __init__(self):
        self.emails: Dict[str, str] = {}
        self.locations: Dict[str, LatLon] = {}
        self.should_succeed = True

    def get_email(self, user_id: str) -> Optional[str]:
        if not self.should_succeed:
            raise UpstreamCollaboratorError("User directory unavailable")
        return self.emails.get(user_id)

    def get_location(self, user_id: str) -> Optional[LatLon]:
        if not self.should_succeed:
            raise UpstreamCollaboratorError("User directory unavailable")
        return self.locations.get(user_id)


@dataclass
class _StoredCode:
    code: str
    expires_at: datetime


class InMemoryOtpStore(OtpStore):
    """
    Codes expire after their ttl according to `clock`; verify never consumes a code.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self.clock = clock
        self.codes: Dict[str, _StoredCode] = {}
        self.fail_on_set = False
        self.fail_on_verify = False

    def set(self, user_id: str, code: str, ttl_seconds: int) -> None:
        if self.fail_on_set:
            raise UpstreamCollaboratorError("OTP store unavailable")
        self.codes[user_id] = _StoredCode(code=code, expires_at=self.clock() + timedelta(seconds=ttl_seconds))

    def verify(self, user_id: str, code: str) -> bool:
        if self.fail_on_verify:
            raise UpstreamCollaboratorError("OTP store unavailable")
        stored = self.codes.get(user_id)
        if stored is None or self.clock() > stored.expires_at:
            return False
        return stored.code == code

    def current_code(self, user_id: str) -> Optional[str]:
        stored = self.codes.get(user_id)
        return stored.code if stored else None


class InMemoryItemCatalog(ItemCatalog):

    def __init__(self):
        self.ratings: Dict[str, List[int]] = {}
        self.failing_items: Set[str] = set()

    def record_rating(self, item_id: str, rating: int) -> None:
        if item_id in self.failing_items:
            raise UpstreamCollaboratorError(f"Could not rate item {item_id}")
        self.ratings.setdefault(item_id, []).append(rating)


class RecordingMailer(Mailer):

    def __init__(self):
        self.sent: List[Tuple[str, dict]] = []
        self.should_succeed = True

    def send(self, template: str, data: dict) -> None:
        if not self.should_succeed:
            raise UpstreamCollaboratorError("Notification service unavailable")
        self.sent.append((template, data))


class RecordingNotifier(Notifier):
    """
    Keeps every published event; thread-safe so concurrent tests can share it.
    """

    def __init__(self):
        self._lock = Lock()
        self.published: List[Tuple[str, str, dict]] = []
        self.should_succeed = True

    def publish(self, channel_key: str, event_name: str, payload: dict) -> None:
        if not self.should_succeed:
            raise UpstreamCollaboratorError("Realtime gateway unavailable")
        with self._lock:
            self.published.append((channel_key, event_name, payload))

    def events_for(self, channel_key: str, event_name: str = None) -> List[dict]:
        with self._lock:
            return [
                payload for channel, event, payload in self.published
                if channel == channel_key and (event_name is None or event == event_name)
            ]

    def clear(self) -> None:
        with self._lock:
            self.published.clear()


class StaticPaymentVerifier(PaymentVerifier):

    def __init__(self, accepts: bool = True):
        self.accepts = accepts

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        return self.accepts
