import logging
from typing import List

from sqlalchemy.exc import MultipleResultsFound, NoResultFound, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.order import Order, OrderItem
from app.services.exceptions import StoreError
from app.utils.retry import retry_read

log = logging.getLogger(__name__)


class OrderNotFound(LookupError):
    """No single order matched; an expected outcome, not a failure."""


class OrderRepository:
    """Read-only access to the order store."""

    def __init__(self, db: Session):
        self.db = db

    @retry_read
    def _one(self, *criteria) -> Order:
        return self.db.query(Order).filter(*criteria).one()

    def find_one(self, *criteria) -> Order:
        """
        Return the single order matching `criteria`.

        Raises OrderNotFound when nothing (or more than one row) matches and
        StoreError for any other store-level failure.
        """
        try:
            return self._one(*criteria)
        except (NoResultFound, MultipleResultsFound) as e:
            raise OrderNotFound(str(e))
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError("Order lookup failed", detail={"error": str(e)})

    @retry_read
    def _items(self, order_id: int) -> List[OrderItem]:
        return (
            self.db.query(OrderItem)
            .filter(OrderItem.order_id == order_id)
            .order_by(OrderItem.id)
            .all()
        )

    def list_line_items(self, order_id: int) -> List[OrderItem]:
        try:
            return self._items(order_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError("Order item lookup failed", detail={"error": str(e)})

    def line_items_or_empty(self, order_id: int) -> List[OrderItem]:
        """Items for the order, or [] when the item store cannot be read."""
        try:
            return self.list_line_items(order_id)
        except StoreError as e:
            log.warning("order items unavailable for order_id=%s: %s", order_id, e.detail)
            return []
