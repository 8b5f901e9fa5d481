"""
Resolve a caller-supplied order number to exactly one order.

Customers type order numbers by hand, so the lookup tries a few forms of the
input in a fixed order. "No such order" is an expected answer and never stops
the sequence; a store failure is remembered (first one wins) but a later
strategy may still find the order.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Union

from app.models.order import Order, OrderItem
from app.repositories.order_repo import OrderNotFound, OrderRepository
from app.services.exceptions import StoreError

log = logging.getLogger(__name__)


@dataclass
class Found:
    order: Order
    items: List[OrderItem] = field(default_factory=list)
    strategy: Optional[str] = None


@dataclass
class Missing:
    pass


@dataclass
class Failed:
    error: StoreError


LookupResult = Union[Found, Missing, Failed]
Strategy = Callable[[], LookupResult]


def first_found(strategies: Iterable[Strategy]) -> LookupResult:
    """
    Run `strategies` in order and return the first Found.

    Without a match, the first Failed seen is returned, else Missing.
    """
    first_failure = None
    for strategy in strategies:
        result = strategy()
        if isinstance(result, Found):
            return result
        if isinstance(result, Failed) and first_failure is None:
            first_failure = result
    return first_failure or Missing()


def escape_like(value: str, escape: str = "\\") -> str:
    return (
        value.replace(escape, escape * 2)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


class OrderResolver:
    def __init__(self, order_repo: OrderRepository):
        self.order_repo = order_repo

    def _attempt(self, name: str, *criteria) -> Strategy:
        def run() -> LookupResult:
            try:
                order = self.order_repo.find_one(*criteria)
            except OrderNotFound:
                log.debug("order not found via %s", name)
                return Missing()
            except StoreError as e:
                log.error("order lookup via %s failed: %s", name, e.detail)
                return Failed(e)
            return Found(order=order, strategy=name)

        return run

    def strategies(self, raw_order_number: str) -> List[Strategy]:
        trimmed = raw_order_number.strip()
        normalized = trimmed.upper()
        return [
            self._attempt(
                "case_insensitive",
                Order.order_number.ilike(escape_like(normalized), escape="\\"),
            ),
            self._attempt("exact_normalized", Order.order_number == normalized),
            self._attempt("exact_as_typed", Order.order_number == trimmed),
        ]

    def resolve(self, raw_order_number: str) -> LookupResult:
        result = first_found(self.strategies(raw_order_number))
        if isinstance(result, Found):
            result.items = self.order_repo.line_items_or_empty(result.order.id)
            log.info(
                "order %s found via %s (status=%s, items=%d)",
                result.order.order_number,
                result.strategy,
                result.order.status,
                len(result.items),
            )
        elif isinstance(result, Missing):
            log.info("order lookup exhausted all strategies for %r", raw_order_number)
        return result
