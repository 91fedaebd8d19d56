import pytest

from common.errors import ForbiddenError, InvalidStateError, NotFoundError, NothingToRateError, ValidationError
from orders.rating import parse_rating

from conftest import cart_line


@pytest.fixture
def delivered_order(service, place_order):
    def _delivered(lines=None):
        order = place_order(lines=lines)
        for shop_order in order.shop_orders:
            service.status.transition(order.id, shop_order.id, "delivered")
        return service.orders.require(order.id)
    return _delivered


@pytest.mark.parametrize("value", [0, 6, -1, 3.5, "abc", "", None, True, [3]])
def test_out_of_range_or_malformed_ratings(value):
    with pytest.raises(ValidationError, match="between 1 and 5"):
        parse_rating(value)


@pytest.mark.parametrize("value, expected", [(1, 1), (5, 5), ("4", 4), (3.0, 3)])
def test_accepted_ratings(value, expected):
    assert parse_rating(value) == expected


def test_delivered_items_are_rated_once(service, delivered_order, catalog):
    """Each delivered item takes one rating, a second attempt has nothing left."""
    order = delivered_order(lines=[cart_line("shop-a", "item-1", "100"), cart_line("shop-a", "item-2", "50")])

    rated = service.rating.rate(order.id, "customer-1", 3)

    assert sorted(r.item_id for r in rated) == ["item-1", "item-2"]
    assert catalog.ratings == {"item-1": [3], "item-2": [3]}
    stored_items = service.orders.require(order.id).shop_orders[0].items
    assert all(item.user_rating == 3 and item.rated_at is not None for item in stored_items)

    # nothing left to rate the second time round
    with pytest.raises(NothingToRateError):
        service.rating.rate(order.id, "customer-1", 5)
    assert catalog.ratings == {"item-1": [3], "item-2": [3]}


def test_undelivered_order_cannot_be_rated(service, place_order, catalog):
    order = place_order()
    service.status.transition(order.id, order.shop_orders[0].id, "preparing")

    with pytest.raises(InvalidStateError):
        service.rating.rate(order.id, "customer-1", 4)
    assert catalog.ratings == {}


def test_only_delivered_shop_orders_are_rated(service, place_order, catalog):
    order = place_order(lines=[cart_line("shop-a", "item-a", "100"), cart_line("shop-b", "item-b", "100")])
    service.status.transition(order.id, order.shop_orders[0].id, "delivered")
    service.status.transition(order.id, order.shop_orders[1].id, "out-for-delivery")

    rated = service.rating.rate(order.id, "customer-1", 4)

    assert [r.item_id for r in rated] == ["item-a"]
    assert "item-b" not in catalog.ratings


def test_partial_catalog_failure_rates_the_rest(service, delivered_order, catalog):
    """
    Test that one item failing to record in the catalog does not stop
    the other items from being rated.
    """
    order = delivered_order(lines=[cart_line("shop-a", "item-1", "100"), cart_line("shop-a", "item-2", "50")])
    catalog.failing_items.add("item-2")

    rated = service.rating.rate(order.id, "customer-1", 2)

    assert [r.item_id for r in rated] == ["item-1"]
    items = {i.item_id: i for i in service.orders.require(order.id).shop_orders[0].items}
    assert items["item-1"].user_rating == 2
    assert items["item-2"].user_rating is None

    # the failed item can be rated later
    catalog.failing_items.clear()
    assert [r.item_id for r in service.rating.rate(order.id, "customer-1", 5)] == ["item-2"]


def test_only_the_customer_can_rate(service, delivered_order):
    order = delivered_order()
    with pytest.raises(ForbiddenError):
        service.rating.rate(order.id, "customer-2", 4)


def test_rating_a_missing_order(service):
    with pytest.raises(NotFoundError):
        service.rating.rate("missing", "customer-1", 4)


def test_invalid_rating_is_checked_before_anything_else(service, delivered_order, catalog):
    order = delivered_order()
    with pytest.raises(ValidationError):
        service.rating.rate(order.id, "customer-1", 6)
    assert catalog.ratings == {}
