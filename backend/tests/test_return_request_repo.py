import pytest
from conftest import unique_number
from sqlalchemy.exc import SQLAlchemyError

from app.repositories.order_repo import OrderRepository
from app.repositories.return_request_repo import ReturnRequestRepository
from app.services.exceptions import DuplicatePending, StoreError


def test_find_by_id_survives_item_store_failure(db, make_order, monkeypatch):
    order = make_order()
    repo = ReturnRequestRepository(db)
    rr = repo.insert(order_id=order.id, order_number=order.order_number, reason="torn")
    assert [it.product_name for it in rr.order_items] == ["Kente Scarf"]

    def broken_items(self, order_id):
        raise SQLAlchemyError("order_items unreadable")

    monkeypatch.setattr(OrderRepository, "_items", broken_items)
    found = repo.find_by_id(rr.id)

    assert found is not None
    assert found.id == rr.id
    assert found.order_items == []


def test_pending_lookup_matches_non_ascii_order_numbers(db, make_order):
    number = "ÖRD-" + unique_number("AX")
    order = make_order(order_number=number)
    repo = ReturnRequestRepository(db)
    rr = repo.insert(order_id=order.id, order_number=number, reason="wrong colour")

    found = repo.find_existing_pending(number)
    assert found is not None and found.id == rr.id

    # ASCII letters fold in the store as well
    mixed = number[:1] + number[1:].lower()
    assert repo.find_existing_pending(mixed).id == rr.id


def test_other_constraint_failures_are_store_errors(db, make_order):
    order = make_order()
    repo = ReturnRequestRepository(db)

    with pytest.raises(StoreError) as exc:
        repo.insert(order_id=order.id, order_number=order.order_number, reason=None)
    assert not isinstance(exc.value, DuplicatePending)

    # the session is usable again afterwards
    rr = repo.insert(order_id=order.id, order_number=order.order_number, reason="late")
    assert rr.status == "pending"


def test_ra_collision_is_a_store_error(db, make_order):
    first = make_order()
    second = make_order()
    repo = ReturnRequestRepository(db)
    a = repo.insert(order_id=first.id, order_number=first.order_number, reason="a")
    b = repo.insert(order_id=second.id, order_number=second.order_number, reason="b")
    code = unique_number("RA-COLLIDE")
    repo.update(a.id, {"status": "approved", "return_authorization_number": code})

    with pytest.raises(StoreError) as exc:
        repo.update(b.id, {"status": "approved", "return_authorization_number": code})
    assert not isinstance(exc.value, DuplicatePending)
    assert exc.value.message == "Return authorization number collision"
