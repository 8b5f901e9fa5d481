"""
Best-effort customer/admin emails for return requests.

Payloads are built on the caller's thread (they read ORM state); delivery is
handed to a runner as one job per email, so a slow or failing customer email
never holds up or suppresses the admin one. Nothing here raises into the
request that triggered it.
"""
import logging
from typing import Callable, Dict, List, Optional, Tuple

from app.adapters.email import EmailAdapter
from app.config import settings
from app.models.order import Order, OrderItem
from app.models.return_request import ReturnRequest, ReturnStatus
from app.schemas.notification_schema import (
    AdminReturnRequestNotification,
    LineItemPayload,
    ReturnAuthorization,
    ReturnRejection,
    ReturnRequestConfirmation,
    ReturnStatusUpdate,
)
from app.services.access_guard import Caller

log = logging.getLogger(__name__)

STATUS_UPDATE_STATUSES = (
    ReturnStatus.PROCESSING.value,
    ReturnStatus.COMPLETED.value,
    ReturnStatus.CANCELLED.value,
)


def run_inline(fn: Callable, *args) -> None:
    fn(*args)


class SchedulerRunner:
    """Runs each job once, immediately, on an APScheduler executor thread."""

    def __init__(self, scheduler):
        self.scheduler = scheduler

    def __call__(self, fn: Callable, *args) -> None:
        self.scheduler.add_job(fn, args=list(args), misfire_grace_time=None)


def resolve_recipient(
    rr: ReturnRequest,
    order: Optional[Order],
    requester: Optional[Caller] = None,
) -> Tuple[Optional[str], Optional[str]]:
    """
    (email, name) for the customer: the requester's profile for account
    holders, otherwise the contact stored on the order's shipping address.
    """
    if requester is not None:
        return requester.email, requester.display_name
    if rr.user_id and rr.user is not None:
        return rr.user.email, rr.user.display_name
    address = (order.shipping_address if order is not None else None) or {}
    if not isinstance(address, dict) or not address.get("email"):
        return None, None
    return address["email"], address.get("name") or address.get("full_name")


def _items(items: Optional[List[OrderItem]]) -> List[LineItemPayload]:
    return [LineItemPayload.model_validate(it) for it in (items or [])]


class NotificationDispatcher:
    def __init__(self, email: EmailAdapter, runner: Callable = run_inline):
        self.email = email
        self.runner = runner

    def _deliver(self, kind: str, send: Callable, payload) -> None:
        try:
            result = send(payload)
        except Exception:
            log.exception("%s email raised; ignoring", kind)
            return
        if not result.get("success"):
            log.error("%s email failed for request %s: %s", kind, payload.return_request_id, result.get("reason"))
        elif result.get("skipped"):
            log.info("%s email skipped: %s", kind, result.get("reason"))
        else:
            log.info("%s email sent for request %s", kind, payload.return_request_id)

    def _submit(self, kind: str, send: Callable, payload) -> None:
        try:
            self.runner(self._deliver, kind, send, payload)
        except Exception:
            log.exception("could not schedule %s email", kind)

    def request_created(
        self,
        rr: ReturnRequest,
        order: Order,
        items: Optional[List[OrderItem]] = None,
        requester: Optional[Caller] = None,
    ) -> None:
        try:
            email, name = resolve_recipient(rr, order, requester)
            admin_payload = AdminReturnRequestNotification(
                return_request_id=rr.id,
                order_number=rr.order_number,
                reason=rr.reason,
                customer_email=email,
            )
            customer_payload = None
            if email:
                customer_payload = ReturnRequestConfirmation(
                    return_request_id=rr.id,
                    order_number=rr.order_number,
                    reason=rr.reason,
                    customer_email=email,
                    customer_name=name,
                    order_items=_items(items),
                    order_total_cents=order.total_cents,
                    order_date=order.created_at,
                )
        except Exception:
            log.exception("could not build creation emails for request %s", rr.id)
            return

        if customer_payload is not None:
            self._submit(
                "return_request_confirmation",
                self.email.send_return_request_confirmation,
                customer_payload,
            )
        else:
            log.info("no customer email for request %s; confirmation not sent", rr.id)
        self._submit(
            "admin_return_request_notification",
            self.email.send_admin_return_request_notification,
            admin_payload,
        )

    def status_changed(self, rr: ReturnRequest, status: str, fields: Optional[Dict] = None) -> None:
        """
        Customer email for a transition. Address, reason and notes come from
        `fields` (what this transition supplied), never from earlier ones.
        """
        fields = fields or {}
        try:
            order = rr.order
            email, name = resolve_recipient(rr, order)
            if not email:
                log.info("no customer email for request %s; %s notice not sent", rr.id, status)
                return
            common = dict(
                return_request_id=rr.id,
                order_number=rr.order_number,
                customer_email=email,
                customer_name=name,
                order_items=_items(rr.order_items),
                order_total_cents=order.total_cents if order is not None else None,
                order_date=order.created_at if order is not None else None,
            )
            if status == ReturnStatus.APPROVED.value:
                kind, send = "return_authorization", self.email.send_return_authorization
                payload = ReturnAuthorization(
                    ra_number=rr.return_authorization_number,
                    return_address=fields.get("return_address") or settings.DEFAULT_RETURN_ADDRESS,
                    **common,
                )
            elif status == ReturnStatus.REJECTED.value:
                kind, send = "return_rejection", self.email.send_return_rejection
                payload = ReturnRejection(
                    rejection_reason=fields.get("rejection_reason") or settings.DEFAULT_REJECTION_REASON,
                    **common,
                )
            elif status in STATUS_UPDATE_STATUSES:
                kind, send = "return_status_update", self.email.send_return_status_update
                payload = ReturnStatusUpdate(
                    status=status,
                    ra_number=rr.return_authorization_number,
                    admin_notes=fields.get("admin_notes") or None,
                    **common,
                )
            else:
                return
        except Exception:
            log.exception("could not build %s email for request %s", status, rr.id)
            return

        self._submit(kind, send, payload)
