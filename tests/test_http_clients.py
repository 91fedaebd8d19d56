from unittest.mock import MagicMock, patch

import pytest
import requests

from collaborators.http_clients import (
    AuthServiceClient,
    NotificationServiceClient,
    RealtimeGatewayNotifier,
    ServiceClient,
    ShopServiceClient,
)
from common.errors import NotFoundError, UpstreamCollaboratorError


def fake_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.url = "http://test"
    response.json.return_value = payload if payload is not None else {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code}")
    return response


@pytest.fixture
def auth():
    return AuthServiceClient(base_url="http://auth.local/", timeout=2)


@pytest.fixture
def shop_client():
    return ShopServiceClient(base_url="http://shops.local", timeout=2)


def test_base_url_is_required():
    with pytest.raises(ValueError):
        ServiceClient("")


def test_nearby_couriers_parse_geojson(auth):
    payload = {"data": [
        {"_id": "c1", "fullName": "Asha", "email": "a@x.com", "mobile": "99",
         "location": {"type": "Point", "coordinates": [77.59, 12.97]}},
        {"_id": "c2", "location": None},
    ]}
    with patch("collaborators.http_clients.requests.post", return_value=fake_response(200, payload)) as post:
        couriers = auth.find(12.97, 77.59, 5000)

    post.assert_called_once_with(
        "http://auth.local/api/auth/nearby-delivery-boys",
        timeout=2,
        json={"latitude": 12.97, "longitude": 77.59, "maxDistance": 5000},
    )
    assert [c.id for c in couriers] == ["c1", "c2"]
    assert couriers[0].location == (12.97, 77.59)
    assert couriers[0].name == "Asha"
    assert couriers[1].location is None


def test_transport_error_is_upstream(auth):
    with patch("collaborators.http_clients.requests.post", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(UpstreamCollaboratorError):
            auth.find(1, 2, 5000)


def test_timeout_is_upstream(auth):
    with patch("collaborators.http_clients.requests.get", side_effect=requests.Timeout("slow")):
        with pytest.raises(UpstreamCollaboratorError):
            auth.get_email("u1")


def test_server_error_is_upstream(auth):
    with patch("collaborators.http_clients.requests.post", return_value=fake_response(500)):
        with pytest.raises(UpstreamCollaboratorError):
            auth.find(1, 2, 5000)


def test_user_lookup(auth):
    payload = {"data": {"email": "u1@x.com", "location": {"coordinates": [77.6, 12.98]}}}
    with patch("collaborators.http_clients.requests.get", return_value=fake_response(200, payload)):
        assert auth.get_email("u1") == "u1@x.com"
        assert auth.get_location("u1") == (12.98, 77.6)

    with patch("collaborators.http_clients.requests.get", return_value=fake_response(404)):
        assert auth.get_email("ghost") is None
        assert auth.get_location("ghost") is None


def test_otp_set_sends_milliseconds(auth):
    with patch("collaborators.http_clients.requests.post", return_value=fake_response(200, {"success": True})) as post:
        auth.set("u1", "4821", 600)

    assert post.call_args.kwargs["json"] == {"userId": "u1", "otp": "4821", "expiresIn": 600000}


def test_otp_verify(auth):
    with patch("collaborators.http_clients.requests.post", return_value=fake_response(200, {"success": True})):
        assert auth.verify("u1", "4821") is True
    with patch("collaborators.http_clients.requests.post", return_value=fake_response(400, {"success": False})):
        assert auth.verify("u1", "0000") is False
    with patch("collaborators.http_clients.requests.post", return_value=fake_response(503)):
        with pytest.raises(UpstreamCollaboratorError):
            auth.verify("u1", "4821")


def test_shop_lookup(shop_client):
    payload = {"data": {"_id": "shop-a", "owner": {"_id": "owner-a"}, "items": [{"_id": "i1"}]}}
    with patch("collaborators.http_clients.requests.get", return_value=fake_response(200, payload)) as get:
        shop = shop_client.get("shop-a")

    get.assert_called_once_with("http://shops.local/api/shops/shop-a", timeout=2)
    assert shop.id == "shop-a"
    assert shop.owner_id == "owner-a"
    assert shop.items == [{"_id": "i1"}]


def test_unknown_shop_is_not_found(shop_client):
    with patch("collaborators.http_clients.requests.get", return_value=fake_response(404)):
        with pytest.raises(NotFoundError):
            shop_client.get("shop-z")
    with patch("collaborators.http_clients.requests.get", return_value=fake_response(200, {"data": None})):
        with pytest.raises(NotFoundError):
            shop_client.get("shop-z")


def test_item_rating_failure_is_upstream(shop_client):
    with patch("collaborators.http_clients.requests.post", return_value=fake_response(502)):
        with pytest.raises(UpstreamCollaboratorError):
            shop_client.record_rating("i1", 4)


def test_mail_and_realtime_payloads():
    with patch("collaborators.http_clients.requests.post", return_value=fake_response(200)) as post:
        NotificationServiceClient(base_url="http://mail.local").send("order-delivered", {"otp": "1234"})
        RealtimeGatewayNotifier(base_url="http://rt.local").publish("user:u1", "orders:refresh", {"a": 1})

    first, second = post.call_args_list
    assert first.args == ("http://mail.local/api/notifications/order-delivered",)
    assert first.kwargs["json"] == {"otp": "1234"}
    assert second.args == ("http://rt.local/api/realtime/publish",)
    assert second.kwargs["json"] == {"room": "user:u1", "event": "orders:refresh", "payload": {"a": 1}}
