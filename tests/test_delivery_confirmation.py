import logging

import pytest

from common.errors import (
    InternalError,
    InvalidStateError,
    NotFoundError,
    UpstreamCollaboratorError,
    ValidationError,
)
from dispatch.delivery import generate_code
from dispatch.models import AssignmentStatus
from notifications import events
from orders.models import ShopOrderStatus


def test_generated_codes_have_the_requested_width():
    for _ in range(200):
        code = generate_code(4)
        assert len(code) == 4 and code.isdigit() and code[0] != "0"
    assert len(generate_code(6)) == 6


def test_request_code_stores_and_emails_it(service, accepted, otp_store, mailer):
    _, assignment_id, courier_id = accepted()

    issued = service.desk.request_code(courier_id)

    assert issued == {"assignmentId": assignment_id, "expiresInSeconds": 600}
    code = otp_store.current_code("customer-1")
    assert code is not None and len(code) == 4
    assert mailer.sent[-1] == ("order-delivered", {"otp": code, "email": "customer1@example.com"})


def test_request_code_without_active_assignment(service):
    with pytest.raises(NotFoundError):
        service.desk.request_code("c1")


def test_request_code_store_failure_is_upstream(service, accepted, otp_store):
    _, _, courier_id = accepted()
    otp_store.fail_on_set = True

    with pytest.raises(UpstreamCollaboratorError):
        service.desk.request_code(courier_id)


def test_email_failure_does_not_fail_code_request(service, accepted, otp_store, mailer):
    _, _, courier_id = accepted()
    mailer.should_succeed = False

    service.desk.request_code(courier_id)

    assert otp_store.current_code("customer-1") is not None


def test_correct_code_completes_the_delivery(service, accepted, otp_store, notifier):
    """
    Test that the right code completes the assignment, delivers the shop
    order and tells the order rooms.
    """
    order_id, assignment_id, courier_id = accepted()
    service.desk.request_code(courier_id)

    result = service.desk.confirm(courier_id, otp_store.current_code("customer-1"))

    assignment = service.assignments.require(assignment_id)
    assert assignment.status == AssignmentStatus.COMPLETED
    assert assignment.assigned_to is None
    assert assignment.completed_at is not None

    shop_order = service.orders.require(order_id).shop_orders[0]
    assert shop_order.status == ShopOrderStatus.DELIVERED
    assert shop_order.assigned_courier_id is None
    assert result.shop_order.status == ShopOrderStatus.DELIVERED

    # the courier is free again
    assert service.assignments.find_active_for(courier_id) is None

    [payload] = notifier.events_for(events.order_channel(order_id), events.ORDER_STATUS)[-1:]
    assert payload["status"] == "delivered"


def test_wrong_code_changes_nothing(service, accepted, otp_store):
    """A wrong code leaves the assignment and the order as they were."""
    order_id, assignment_id, courier_id = accepted()
    service.desk.request_code(courier_id)
    wrong = "1000" if otp_store.current_code("customer-1") != "1000" else "1001"

    with pytest.raises(ValidationError, match="Invalid or expired OTP"):
        service.desk.confirm(courier_id, wrong)

    assert service.assignments.require(assignment_id).status == AssignmentStatus.ASSIGNED
    assert service.orders.require(order_id).shop_orders[0].status == ShopOrderStatus.OUT_FOR_DELIVERY


def test_expired_code_changes_nothing(service, accepted, otp_store, clock):
    _, assignment_id, courier_id = accepted()
    service.desk.request_code(courier_id)
    code = otp_store.current_code("customer-1")

    clock.advance(601)

    with pytest.raises(ValidationError):
        service.desk.confirm(courier_id, code)
    assert service.assignments.require(assignment_id).status == AssignmentStatus.ASSIGNED


def test_double_submit_is_not_found(service, accepted, otp_store):
    _, _, courier_id = accepted()
    service.desk.request_code(courier_id)
    code = otp_store.current_code("customer-1")

    service.desk.confirm(courier_id, code)
    with pytest.raises(NotFoundError):
        service.desk.confirm(courier_id, code)


def test_empty_code_is_rejected(service, accepted):
    _, _, courier_id = accepted()
    with pytest.raises(ValidationError):
        service.desk.confirm(courier_id, "")


def test_verify_outage_is_upstream_and_changes_nothing(service, accepted, otp_store):
    _, assignment_id, courier_id = accepted()
    service.desk.request_code(courier_id)
    otp_store.fail_on_verify = True

    with pytest.raises(UpstreamCollaboratorError):
        service.desk.confirm(courier_id, otp_store.current_code("customer-1"))
    assert service.assignments.require(assignment_id).status == AssignmentStatus.ASSIGNED


def test_failed_order_update_restores_the_assignment(service, accepted, otp_store, monkeypatch):
    """The assignment goes back to ASSIGNED when the order write fails."""
    _, assignment_id, courier_id = accepted()
    service.desk.request_code(courier_id)

    def broken_save(_order):
        raise RuntimeError("database went away")

    monkeypatch.setattr(service.orders, "save", broken_save)

    with pytest.raises(Exception):
        service.desk.confirm(courier_id, otp_store.current_code("customer-1"))

    restored = service.assignments.require(assignment_id)
    assert restored.status == AssignmentStatus.ASSIGNED
    assert restored.assigned_to == courier_id


def test_failed_restore_still_reports_the_original_error(service, accepted, otp_store, monkeypatch, caplog):
    """If putting the assignment back also fails, the caller still sees why delivery failed."""
    _, assignment_id, courier_id = accepted()
    service.desk.request_code(courier_id)
    save_assignment = service.assignments.save

    def broken_save(_order):
        raise RuntimeError("database went away")

    def save_without_restore(assignment, expected_status=None):
        if expected_status is None:
            raise RuntimeError("disk full")
        return save_assignment(assignment, expected_status=expected_status)

    monkeypatch.setattr(service.orders, "save", broken_save)
    monkeypatch.setattr(service.assignments, "save", save_without_restore)

    with caplog.at_level(logging.ERROR, logger="dispatch.repository"):
        with pytest.raises(InternalError) as excinfo:
            service.desk.confirm(courier_id, otp_store.current_code("customer-1"))

    assert str(excinfo.value.__cause__) == "database went away"
    assert any(r.levelno == logging.CRITICAL and assignment_id in r.getMessage() for r in caplog.records)


def test_courier_progress_steps(service, accepted):
    _, assignment_id, courier_id = accepted()

    assert service.desk.advance(courier_id, "picked-up").status == AssignmentStatus.PICKED_UP
    with pytest.raises(InvalidStateError):
        service.desk.advance(courier_id, "assigned")
    assert service.desk.advance(courier_id, "en-route").status == AssignmentStatus.EN_ROUTE
    with pytest.raises(InvalidStateError):
        service.desk.advance(courier_id, "completed")

    assert service.assignments.require(assignment_id).status == AssignmentStatus.EN_ROUTE


def test_cannot_skip_a_step_or_send_garbage(service, accepted):
    _, _, courier_id = accepted()
    with pytest.raises(InvalidStateError):
        service.desk.advance(courier_id, "en-route")
    with pytest.raises(ValidationError):
        service.desk.advance(courier_id, "teleported")


def test_en_route_courier_can_still_confirm(service, accepted, otp_store):
    order_id, _, courier_id = accepted()
    service.desk.advance(courier_id, "picked-up")
    service.desk.advance(courier_id, "en-route")
    service.desk.request_code(courier_id)

    service.desk.confirm(courier_id, otp_store.current_code("customer-1"))

    assert service.orders.require(order_id).shop_orders[0].status == ShopOrderStatus.DELIVERED


def test_current_assignment_includes_both_locations(service, accepted, users):
    order_id, assignment_id, courier_id = accepted()
    users.locations[courier_id] = (12.98, 77.60)

    current = service.desk.current_assignment(courier_id)

    assert current["id"] == assignment_id
    assert current["status"] == "assigned"
    assert current["userId"] == "customer-1"
    assert current["deliveryBoyLocation"] == {"lat": 12.98, "long": 77.60}
    assert current["customerLocation"]["lat"] == pytest.approx(12.9716)


def test_current_assignment_survives_location_outage(service, accepted, users):
    _, _, courier_id = accepted()
    users.should_succeed = False

    current = service.desk.current_assignment(courier_id)

    assert current["deliveryBoyLocation"] == {"lat": None, "long": None}


def test_current_assignment_for_idle_courier(service):
    with pytest.raises(NotFoundError):
        service.desk.current_assignment("c1")
