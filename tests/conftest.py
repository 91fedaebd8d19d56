from datetime import datetime, timedelta, timezone

import pytest

from api.service import DeliveryService
from collaborators.fakes import (
    InMemoryCourierLocator,
    InMemoryItemCatalog,
    InMemoryOtpStore,
    InMemoryShopLookup,
    InMemoryUserDirectory,
    RecordingMailer,
    RecordingNotifier,
)
from couriers.models import Courier

# Drop-off used by every test order. 0.01 degrees of latitude is roughly 1.1 km.
DROP_OFF = (12.9716, 77.5946)


class FakeClock:

    def __init__(self):
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


def cart_line(shop_id, item_id, price, quantity=1, name="Paneer Roll"):
    return {
        "id": item_id,
        "shop": shop_id,
        "name": name,
        "price": price,
        "quantity": quantity,
        "foodType": "veg",
    }


def delivery_address(point=DROP_OFF, text="12 MG Road"):
    return {"text": text, "latitude": point[0], "longitude": point[1]}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def shops():
    lookup = InMemoryShopLookup()
    lookup.add("shop-a", owner_id="owner-a")
    lookup.add("shop-b", owner_id="owner-b")
    return lookup


@pytest.fixture
def locator():
    # three couriers, all well inside the 5 km primary ring
    return InMemoryCourierLocator([
        Courier.new("c1", DROP_OFF[0] + 0.005, DROP_OFF[1], name="Asha"),
        Courier.new("c2", DROP_OFF[0] + 0.010, DROP_OFF[1], name="Ravi"),
        Courier.new("c3", DROP_OFF[0], DROP_OFF[1] + 0.015, name="Imran"),
    ])


@pytest.fixture
def otp_store(clock):
    return InMemoryOtpStore(clock=clock)


@pytest.fixture
def catalog():
    return InMemoryItemCatalog()


@pytest.fixture
def users():
    directory = InMemoryUserDirectory()
    directory.emails["customer-1"] = "customer1@example.com"
    directory.emails["customer-2"] = "customer2@example.com"
    return directory


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(shops, locator, otp_store, catalog, users, mailer, notifier):
    return DeliveryService(
        shop_lookup=shops,
        nearby_couriers=locator,
        otp_store=otp_store,
        item_catalog=catalog,
        user_directory=users,
        mailer=mailer,
        notifier=notifier,
    )


@pytest.fixture
def place_order(service):
    """
    Places a cash order through the service and returns the stored Order.
    """
    def _place(user_id="customer-1", lines=None, point=DROP_OFF):
        lines = lines or [cart_line("shop-a", "item-1", "240", quantity=2)]
        envelope = service.place_order(user_id, lines, "cod", delivery_address(point))
        assert envelope.success, envelope.message
        return service.orders.require(envelope.data["id"])
    return _place


@pytest.fixture
def ship(service, place_order):
    """
    Moves a shop order out for delivery and returns the TransitionResult.
    """
    def _ship(order=None, index=0):
        order = order or place_order()
        return service.status.transition(order.id, order.shop_orders[index].id, "out-for-delivery")
    return _ship


@pytest.fixture
def accepted(service, ship):
    """
    A shop order out for delivery whose offer has been accepted by c1.
    Returns (order_id, assignment_id, courier_id).
    """
    def _accepted(courier_id="c1", order=None):
        result = ship(order)
        service.dispatcher.resolve_courier_acceptance(result.assignment.id, courier_id)
        return result.order.id, result.assignment.id, courier_id
    return _accepted
