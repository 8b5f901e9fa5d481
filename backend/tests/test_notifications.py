from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from app.adapters.email import MockEmailAdapter
from app.config import settings
from app.services.access_guard import Caller
from app.services.notifications import NotificationDispatcher, resolve_recipient

ADMIN = settings.ADMIN_NOTIFICATION_EMAIL


def _item(name="Kente Scarf", qty=2, price=1500):
    return SimpleNamespace(
        product_name=name,
        quantity=qty,
        unit_price_cents=price,
        total_price_cents=qty * price,
        product_image=None,
        selected_variants=None,
    )


def _order(email="guest@example.com", name="Guest Buyer"):
    return SimpleNamespace(
        order_number="ORD-100",
        total_cents=3000,
        created_at=datetime(2024, 4, 2, tzinfo=timezone.utc),
        shipping_address={"email": email, "name": name} if email else {},
    )


def _request(order=None, **kw):
    base = dict(
        id="rr-1",
        order_number="ORD-100",
        reason="wrong size",
        user_id=None,
        user=None,
        order=order or _order(),
        order_items=[_item()],
        return_authorization_number=None,
        return_address=None,
        rejection_reason=None,
        admin_notes=None,
    )
    base.update(kw)
    return SimpleNamespace(**base)


@pytest.fixture
def mailer():
    return MockEmailAdapter()


@pytest.fixture
def dispatcher(mailer):
    return NotificationDispatcher(mailer)


def test_recipient_prefers_requester_profile():
    requester = Caller(id="u1", email="ama@example.com", first_name="Ama", last_name="Mensah")
    assert resolve_recipient(_request(), _order(), requester) == ("ama@example.com", "Ama Mensah")


def test_recipient_from_linked_user():
    user = SimpleNamespace(email="kofi@example.com", display_name="Kofi")
    assert resolve_recipient(_request(user_id="u2", user=user), _order()) == ("kofi@example.com", "Kofi")


def test_recipient_from_shipping_address():
    order = SimpleNamespace(shipping_address={"email": "g@example.com", "full_name": "G Person"})
    assert resolve_recipient(_request(), order) == ("g@example.com", "G Person")
    assert resolve_recipient(_request(), SimpleNamespace(shipping_address=None)) == (None, None)


def test_creation_sends_confirmation_and_admin_alert(dispatcher, mailer):
    order = _order()
    dispatcher.request_created(_request(order=order), order, [_item()])

    recipients = [to for to, _, _ in mailer.outbox]
    assert recipients == ["guest@example.com", ADMIN]
    _, subject, body = mailer.outbox[0]
    assert subject == "Return Request Received - ORD-100"
    assert "Kente Scarf x2" in body
    assert "GHS 30.00" in body


def test_creation_without_customer_email_still_alerts_admin(dispatcher, mailer):
    order = _order(email=None)
    dispatcher.request_created(_request(order=order), order)
    assert [to for to, _, _ in mailer.outbox] == [ADMIN]


def test_failing_customer_email_does_not_block_admin_alert():
    mailer = MockEmailAdapter(raise_on=["guest@example.com"])
    order = _order()
    NotificationDispatcher(mailer).request_created(_request(order=order), order)
    assert [to for to, _, _ in mailer.outbox] == [ADMIN]


def test_runner_errors_are_contained(mailer):
    def broken_runner(fn, *args):
        raise RuntimeError("scheduler is shut down")

    order = _order()
    NotificationDispatcher(mailer, runner=broken_runner).request_created(_request(order=order), order)
    assert mailer.outbox == []


def test_approval_sends_authorization_with_default_address(dispatcher, mailer):
    rr = _request(status="approved", return_authorization_number="RA-20240501-00001")
    dispatcher.status_changed(rr, "approved")

    (to, subject, body), = mailer.outbox
    assert to == "guest@example.com"
    assert subject == "Return Approved - RA-20240501-00001"
    assert settings.DEFAULT_RETURN_ADDRESS in body


def test_rejection_uses_supplied_or_default_reason(dispatcher, mailer):
    dispatcher.status_changed(_request(rejection_reason="Item used"), "rejected", {"rejection_reason": "Item used"})
    # a reason stored by an earlier rejection is not reused
    dispatcher.status_changed(_request(rejection_reason="Item used"), "rejected", {})

    assert "Reason: Item used" in mailer.outbox[0][2]
    assert "Item used" not in mailer.outbox[1][2]
    assert settings.DEFAULT_REJECTION_REASON in mailer.outbox[1][2]


def test_approval_address_comes_from_this_transition(dispatcher, mailer):
    rr = _request(return_authorization_number="RA-20240501-00002", return_address="Old depot")
    dispatcher.status_changed(rr, "approved", {"return_address": "Tema warehouse"})
    dispatcher.status_changed(rr, "approved", {"admin_notes": "ok"})

    assert "Tema warehouse" in mailer.outbox[0][2]
    assert "Old depot" not in mailer.outbox[1][2]
    assert settings.DEFAULT_RETURN_ADDRESS in mailer.outbox[1][2]


@pytest.mark.parametrize("status", ["processing", "completed", "cancelled"])
def test_other_statuses_send_status_update(dispatcher, mailer, status):
    rr = _request(return_authorization_number="RA-20240501-00009", admin_notes="Parcel received")
    dispatcher.status_changed(rr, status, {"admin_notes": "Parcel received"})

    (_, subject, body), = mailer.outbox
    assert subject == f"Return {status.title()} - ORD-100"
    assert "RA-20240501-00009" in body
    assert "Notes: Parcel received" in body


def test_back_to_pending_sends_nothing(dispatcher, mailer):
    dispatcher.status_changed(_request(), "pending")
    assert mailer.outbox == []


def test_emails_disabled_are_skipped(monkeypatch, mailer, dispatcher):
    monkeypatch.setattr(settings, "RETURN_EMAILS_ENABLED", False)
    order = _order()
    dispatcher.request_created(_request(order=order), order)
    assert mailer.outbox == []


def test_adapter_reports_outcomes(monkeypatch):
    from app.schemas.notification_schema import AdminReturnRequestNotification

    payload = AdminReturnRequestNotification(
        return_request_id="rr-1", order_number="ORD-100", reason="wrong size"
    )
    assert MockEmailAdapter().send_admin_return_request_notification(payload) == {
        "success": True,
        "skipped": False,
        "reason": None,
    }
    assert MockEmailAdapter(fail=True).send_admin_return_request_notification(payload) == {
        "success": False,
        "skipped": False,
        "reason": "Delivery failed",
    }
    monkeypatch.setattr(settings, "ADMIN_NOTIFICATION_EMAIL", None)
    assert MockEmailAdapter().send_admin_return_request_notification(payload)["skipped"] is True


def test_status_update_omits_notes_from_earlier_transitions(dispatcher, mailer):
    rr = _request(return_authorization_number="RA-20240501-00003", admin_notes="internal: check seal")
    dispatcher.status_changed(rr, "processing", {})

    (_, _, body), = mailer.outbox
    assert "Notes:" not in body
    assert "internal: check seal" not in body
