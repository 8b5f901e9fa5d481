import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.return_request import PENDING_ORDER_INDEX, ReturnRequest, ReturnStatus
from app.repositories.order_repo import OrderRepository
from app.services.exceptions import DuplicatePending, StoreError
from app.utils.retry import retry_read

log = logging.getLogger(__name__)

# columns the update path may never touch
IMMUTABLE_FIELDS = ("id", "order_id", "order_number", "user_id", "created_at")


class ReturnRequestRepository:
    def __init__(self, db: Session, order_repo: Optional[OrderRepository] = None):
        self.db = db
        self.order_repo = order_repo or OrderRepository(db)

    def _enrich(self, rr: Optional[ReturnRequest]) -> Optional[ReturnRequest]:
        # order_items come from a second keyed fetch, never from a join
        if rr is not None:
            rr.order_items = self.order_repo.line_items_or_empty(rr.order_id)
        return rr

    def _store_error(self, message: str, e: Exception) -> StoreError:
        self.db.rollback()
        return StoreError(message, detail={"error": str(e)})

    def _integrity_error(self, e: IntegrityError) -> Exception:
        self.db.rollback()
        if PENDING_ORDER_INDEX in str(e.orig):
            return DuplicatePending("A pending return request already exists for this order.")
        if "return_authorization_number" in str(e.orig):
            return StoreError("Return authorization number collision", detail={"error": str(e)})
        return StoreError("Return request violates a store constraint", detail={"error": str(e)})

    def insert(
        self,
        order_id: int,
        order_number: str,
        reason: str,
        user_id: Optional[str] = None,
        photos: Optional[List[str]] = None,
    ) -> ReturnRequest:
        rr = ReturnRequest(
            user_id=user_id,
            order_id=order_id,
            order_number=order_number,
            reason=reason,
            photos=list(photos or []),
            status=ReturnStatus.PENDING.value,
        )
        try:
            self.db.add(rr)
            self.db.commit()
        except IntegrityError as e:
            raise self._integrity_error(e)
        except SQLAlchemyError as e:
            raise self._store_error("Failed to create return request", e)
        self.db.refresh(rr)
        return self._enrich(rr)

    @retry_read
    def _by_id(self, request_id: str) -> Optional[ReturnRequest]:
        return self.db.query(ReturnRequest).filter(ReturnRequest.id == request_id).first()

    def find_by_id(self, request_id: str) -> Optional[ReturnRequest]:
        try:
            rr = self._by_id(request_id)
        except SQLAlchemyError as e:
            raise self._store_error("Failed to fetch return request", e)
        return self._enrich(rr)

    @retry_read
    def _existing_pending(self, order_number: str) -> Optional[ReturnRequest]:
        return (
            self.db.query(ReturnRequest)
            .filter(
                func.lower(ReturnRequest.order_number) == func.lower(order_number.strip()),
                ReturnRequest.status == ReturnStatus.PENDING.value,
            )
            .first()
        )

    def find_existing_pending(self, order_number: str) -> Optional[ReturnRequest]:
        """Pending request for `order_number`, compared case-insensitively."""
        try:
            return self._existing_pending(order_number)
        except SQLAlchemyError as e:
            raise self._store_error("Failed to check for pending return requests", e)

    @retry_read
    def _list(
        self,
        status: Optional[str],
        order_number: Optional[str],
        user_id: Optional[str],
    ) -> List[ReturnRequest]:
        qry = self.db.query(ReturnRequest)
        if user_id is not None:
            qry = qry.filter(ReturnRequest.user_id == user_id)
        if status and status != "all":
            qry = qry.filter(ReturnRequest.status == status)
        if order_number:
            qry = qry.filter(ReturnRequest.order_number == order_number)
        return qry.order_by(ReturnRequest.created_at.desc()).all()

    def list_filtered(
        self,
        status: Optional[str] = None,
        order_number: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[ReturnRequest]:
        """Newest first; `user_id` scopes the listing to one requester."""
        try:
            rows = self._list(status, order_number, user_id)
        except SQLAlchemyError as e:
            raise self._store_error("Failed to fetch return requests", e)
        return [self._enrich(rr) for rr in rows]

    def update(self, request_id: str, fields: Dict) -> Optional[ReturnRequest]:
        """Apply `fields` to the request; None when it does not exist."""
        blocked = [k for k in fields if k in IMMUTABLE_FIELDS]
        if blocked:
            raise ValueError(f"Immutable return request fields: {blocked}")
        try:
            rr = self.db.query(ReturnRequest).filter(ReturnRequest.id == request_id).first()
            if rr is None:
                return None
            for key, value in fields.items():
                setattr(rr, key, value)
            self.db.add(rr)
            self.db.commit()
        except IntegrityError as e:
            raise self._integrity_error(e)
        except SQLAlchemyError as e:
            raise self._store_error("Failed to update return request", e)
        self.db.refresh(rr)
        return self._enrich(rr)

    def delete(self, request_id: str) -> bool:
        """Hard delete; returns False when the request did not exist."""
        try:
            deleted = (
                self.db.query(ReturnRequest)
                .filter(ReturnRequest.id == request_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._store_error("Failed to delete return request", e)
        return bool(deleted)
