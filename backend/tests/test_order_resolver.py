import pytest
from conftest import unique_number
from sqlalchemy.exc import SQLAlchemyError

from app.repositories.order_repo import OrderRepository
from app.services.exceptions import StoreError
from app.services.order_resolver import (
    Failed,
    Found,
    Missing,
    OrderResolver,
    escape_like,
    first_found,
)


@pytest.mark.parametrize(
    "typed",
    ["{n}", "{u}", "  {u}  ", "\t{n}\n", "{m}"],
)
def test_case_and_whitespace_variants_resolve_same_order(db, make_order, typed):
    number = unique_number("ord").lower()
    order = make_order(order_number=number)

    result = OrderResolver(OrderRepository(db)).resolve(
        typed.format(n=number, u=number.upper(), m=number.capitalize())
    )

    assert isinstance(result, Found)
    assert result.order.id == order.id
    assert result.order.order_number == number
    assert [it.product_name for it in result.items] == ["Kente Scarf"]


def test_unknown_order_is_missing_not_failure(db):
    result = OrderResolver(OrderRepository(db)).resolve("NO-SUCH-ORDER-000")
    assert isinstance(result, Missing)


def test_like_wildcards_in_input_are_literal(db, make_order):
    make_order(order_number=unique_number("WILD"))
    result = OrderResolver(OrderRepository(db)).resolve("WILD-%")
    assert isinstance(result, Missing)


def test_escape_like():
    assert escape_like("a%b_c\\d") == "a\\%b\\_c\\\\d"


def test_first_found_prefers_found_over_earlier_failure():
    err = StoreError("down")
    result = first_found([lambda: Failed(err), lambda: Missing(), lambda: Found(order="o")])
    assert isinstance(result, Found)
    assert result.order == "o"


def test_first_found_keeps_first_failure():
    first, second = StoreError("first"), StoreError("second")
    result = first_found([lambda: Missing(), lambda: Failed(first), lambda: Failed(second)])
    assert isinstance(result, Failed)
    assert result.error is first


def test_first_found_stops_at_first_match():
    calls = []

    def strategy(name, outcome):
        def run():
            calls.append(name)
            return outcome

        return run

    first_found([strategy("a", Missing()), strategy("b", Found(order=1)), strategy("c", Missing())])
    assert calls == ["a", "b"]


class _BrokenRepo:
    def find_one(self, *criteria):
        raise StoreError("Order lookup failed", detail={"error": "connection reset"})

    def line_items_or_empty(self, order_id):
        return []


def test_store_failure_on_every_strategy_is_failed():
    result = OrderResolver(_BrokenRepo()).resolve("ORD-1")
    assert isinstance(result, Failed)
    assert result.error.detail == {"error": "connection reset"}


def test_item_store_failure_still_finds_order(db, make_order, monkeypatch):
    order = make_order()

    def broken_items(self, order_id):
        raise SQLAlchemyError("order_items unreadable")

    monkeypatch.setattr(OrderRepository, "_items", broken_items)
    result = OrderResolver(OrderRepository(db)).resolve(order.order_number)

    assert isinstance(result, Found)
    assert result.order.id == order.id
    assert result.items == []
