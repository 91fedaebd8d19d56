from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from collaborators.fakes import RecordingNotifier
from dispatch.models import Assignment
from notifications import Fanout, NullNotifier, events
from orders.models import DeliveryAddress, Order, PaymentMethod, PaymentStatus, ShopOrder


def make_order():
    shop_order = ShopOrder(shop_id="shop-a", owner_id="owner-a", subtotal=Decimal("100"), items=[])
    return Order.new(
        user_id="customer-1",
        payment_method=PaymentMethod.COD,
        payment_status=PaymentStatus.PENDING,
        delivery_address=DeliveryAddress("12 MG Road", 12.97, 77.59),
        shop_orders=[shop_order],
    )


def test_failing_notifier_never_raises():
    notifier = RecordingNotifier()
    notifier.should_succeed = False
    fanout = Fanout(notifier)
    order = make_order()
    assignment = Assignment(order.id, "shop-a", order.shop_orders[0].id, ["c1", "c2"])

    fanout.order_placed(order)
    fanout.status_changed(order, order.shop_orders[0], "Order is being prepared", courier_id="c1")
    fanout.assignment_offered(order, order.shop_orders[0], assignment, ["c1", "c2"])
    fanout.assignment_closed(assignment, ["c2"])
    fanout.order_rated(order)

    assert notifier.published == []


def test_null_notifier_is_the_default():
    fanout = Fanout()
    assert isinstance(fanout.notifier, NullNotifier)
    fanout.order_placed(make_order())


def test_executor_delivers_off_thread():
    notifier = RecordingNotifier()
    executor = ThreadPoolExecutor(max_workers=2)
    fanout = Fanout(notifier, executor=executor)
    order = make_order()

    fanout.order_placed(order)
    executor.shutdown(wait=True)

    assert notifier.events_for(events.user_channel("customer-1"), events.ORDERS_REFRESH)
    assert notifier.events_for(events.owner_channel("owner-a"), events.ORDERS_REFRESH)


def test_publish_after_executor_shutdown_is_dropped():
    notifier = RecordingNotifier()
    executor = ThreadPoolExecutor(max_workers=1)
    executor.shutdown(wait=True)

    Fanout(notifier, executor=executor).order_placed(make_order())

    assert notifier.published == []


def test_rating_refresh_skips_the_global_channel_for_owners():
    notifier = RecordingNotifier()
    Fanout(notifier).order_rated(make_order())

    owner_events = notifier.events_for(events.owner_channel("owner-a"), events.ORDERS_REFRESH)
    global_events = notifier.events_for(events.GLOBAL_CHANNEL, events.ORDERS_REFRESH)
    assert len(owner_events) == 1
    assert [e["scope"] for e in global_events] == ["user"]


def test_channel_names():
    assert events.user_channel("u") == "user:u"
    assert events.owner_channel("o") == "owner:o"
    assert events.courier_channel("c") == "delivery:c"
    assert events.order_channel("x") == "order:x"
