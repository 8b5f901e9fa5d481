import hashlib
import logging
import os
import tempfile
from typing import Dict, List, Optional

from filelock import FileLock, Timeout
from sqlalchemy.orm import Session

from app.config import settings
from app.models.return_request import ReturnRequest
from app.repositories.order_repo import OrderRepository
from app.repositories.return_request_repo import ReturnRequestRepository
from app.services.access_guard import AccessGuard, Caller
from app.services.exceptions import (
    DuplicatePending,
    NotFound,
    StoreError,
    ValidationError,
)
from app.services.notifications import NotificationDispatcher
from app.services.order_resolver import Failed, Found, OrderResolver
from app.services.return_lifecycle import ReturnLifecycle

log = logging.getLogger(__name__)

RETURNABLE_ORDER_STATUSES = ("delivered", "shipped", "processing", "pending")


def _order_lock(order_number: str) -> FileLock:
    locks_dir = settings.LOCKS_DIR or os.path.join(tempfile.gettempdir(), "returns_desk_locks")
    os.makedirs(locks_dir, exist_ok=True)
    key = hashlib.sha1(order_number.strip().lower().encode("utf-8")).hexdigest()
    return FileLock(os.path.join(locks_dir, f"return_{key}.lock"))


class ReturnService:
    def __init__(
        self,
        db: Session,
        notifier: NotificationDispatcher,
        lifecycle: Optional[ReturnLifecycle] = None,
    ):
        self.db = db
        self.orders = OrderRepository(db)
        self.requests = ReturnRequestRepository(db, order_repo=self.orders)
        self.resolver = OrderResolver(self.orders)
        self.lifecycle = lifecycle or ReturnLifecycle()
        self.notifier = notifier

    def create_return_request(
        self,
        caller: Optional[Caller],
        order_number: Optional[str],
        reason: Optional[str],
        photos: Optional[List[str]] = None,
    ) -> ReturnRequest:
        """Open a pending return request for an order (account holders and guests)."""
        if not order_number or not order_number.strip() or not reason or not reason.strip():
            raise ValidationError("Order number and reason are required")

        result = self.resolver.resolve(order_number)
        if isinstance(result, Failed):
            raise StoreError(
                "Error looking up order. Please try again.", detail=result.error.detail
            )
        if not isinstance(result, Found):
            raise NotFound(
                f"Order not found: {order_number}. Please check your order number and try again."
            )
        order = result.order

        AccessGuard.can_create(caller, order)

        if order.status not in RETURNABLE_ORDER_STATUSES:
            log.warning(
                "return requested for order %s with status %s", order.order_number, order.status
            )

        # store casing, not the caller's input
        actual_number = order.order_number
        try:
            with _order_lock(actual_number).acquire(timeout=settings.STORE_CALL_TIMEOUT_SECONDS):
                if self.requests.find_existing_pending(actual_number):
                    raise DuplicatePending(
                        "A pending return request already exists for this order."
                    )
                rr = self.requests.insert(
                    order_id=order.id,
                    order_number=actual_number,
                    reason=reason.strip(),
                    user_id=caller.id if caller else None,
                    photos=photos if isinstance(photos, list) else [],
                )
        except Timeout:
            raise StoreError("Timed out waiting for another request on this order")

        log.info(
            "return request %s created for order %s by %s",
            rr.id,
            actual_number,
            caller.id if caller else "guest",
        )
        self.notifier.request_created(rr, order, result.items, requester=caller)
        return rr

    def list_return_requests(
        self,
        caller: Optional[Caller],
        status: Optional[str] = None,
        order_number: Optional[str] = None,
    ) -> List[ReturnRequest]:
        scope = AccessGuard.can_view_list(caller)
        return self.requests.list_filtered(status=status, order_number=order_number, user_id=scope)

    def _get_or_404(self, request_id: str) -> ReturnRequest:
        rr = self.requests.find_by_id(request_id)
        if rr is None:
            raise NotFound("Return request not found")
        return rr

    def get_return_request(self, caller: Optional[Caller], request_id: str) -> ReturnRequest:
        rr = self._get_or_404(request_id)
        AccessGuard.can_view_one(caller, rr)
        return rr

    def transition_return_request(
        self,
        caller: Optional[Caller],
        request_id: str,
        target_status: str,
        fields: Optional[Dict] = None,
    ) -> ReturnRequest:
        """Move a request to `target_status` (staff only), then notify the customer."""
        AccessGuard.can_transition(caller)
        current = self._get_or_404(request_id)
        previous_status = current.status
        update_set = self.lifecycle.apply(current, target_status, fields)
        updated = self.requests.update(request_id, update_set)
        if updated is None:
            raise NotFound("Return request not found")
        log.info(
            "return request %s: %s -> %s by %s (ra=%s)",
            request_id,
            previous_status,
            updated.status,
            caller.id,
            updated.return_authorization_number,
        )
        self.notifier.status_changed(updated, updated.status, fields)
        return updated

    def delete_return_request(self, caller: Optional[Caller], request_id: str) -> None:
        AccessGuard.can_delete(caller)
        if not self.requests.delete(request_id):
            raise NotFound("Return request not found")
        log.info("return request %s deleted by %s", request_id, caller.id)
