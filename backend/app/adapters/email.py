import logging
import smtplib
from email.mime.text import MIMEText
from typing import Dict, List, Optional, Tuple

from app.config import settings
from app.schemas.notification_schema import (
    AdminReturnRequestNotification,
    CustomerEmailPayload,
    ReturnAuthorization,
    ReturnRejection,
    ReturnRequestConfirmation,
    ReturnStatusUpdate,
)

log = logging.getLogger(__name__)


def _money(cents: Optional[int]) -> str:
    if cents is None:
        return "-"
    return f"GHS {cents / 100:.2f}"


def _items_block(payload: CustomerEmailPayload) -> str:
    if not payload.order_items:
        return "No items"
    return "\n".join(
        f"- {it.product_name} x{it.quantity} @ {_money(it.unit_price_cents)} = {_money(it.total_price_cents)}"
        for it in payload.order_items
    )


def _greeting(payload: CustomerEmailPayload) -> str:
    return f"Hello {payload.customer_name or 'there'},"


class EmailAdapter:
    """
    Return-request emails. Every send_* method reports its outcome as
    {"success", "skipped", "reason"} and never raises.
    """

    def _deliver(self, to_email: str, subject: str, body: str) -> bool:
        raise NotImplementedError

    def health_check(self) -> bool:
        return True

    def _send(self, kind: str, to_email: Optional[str], subject: str, body: str) -> Dict:
        if not settings.RETURN_EMAILS_ENABLED:
            return {"success": True, "skipped": True, "reason": "Return emails disabled in settings"}
        if not to_email:
            return {"success": True, "skipped": True, "reason": "No recipient"}
        try:
            ok = self._deliver(to_email, subject, body)
        except Exception as e:
            log.exception("error sending %s email to %s", kind, to_email)
            return {"success": False, "skipped": False, "reason": str(e)}
        return {"success": bool(ok), "skipped": False, "reason": None if ok else "Delivery failed"}

    def send_return_request_confirmation(self, payload: ReturnRequestConfirmation) -> Dict:
        body = "\n\n".join(
            [
                _greeting(payload),
                f"We received your return request for order {payload.order_number}.",
                f"Reason: {payload.reason}",
                _items_block(payload),
                f"Order total: {_money(payload.order_total_cents)}",
                "Our team will review it shortly.",
            ]
        )
        return self._send(
            "return_request_confirmation",
            payload.customer_email,
            f"Return Request Received - {payload.order_number}",
            body,
        )

    def send_admin_return_request_notification(self, payload: AdminReturnRequestNotification) -> Dict:
        body = "\n".join(
            [
                f"New return request {payload.return_request_id}",
                f"Order: {payload.order_number}",
                f"Customer: {payload.customer_email or 'unknown (guest)'}",
                f"Reason: {payload.reason}",
            ]
        )
        return self._send(
            "admin_return_request_notification",
            settings.ADMIN_NOTIFICATION_EMAIL,
            f"New Return Request - {payload.order_number}",
            body,
        )

    def send_return_authorization(self, payload: ReturnAuthorization) -> Dict:
        body = "\n\n".join(
            [
                _greeting(payload),
                f"Your return for order {payload.order_number} has been approved.",
                f"Return Authorization number: {payload.ra_number}",
                f"Please send the items to:\n{payload.return_address}",
                _items_block(payload),
                f"Order total: {_money(payload.order_total_cents)}",
            ]
        )
        return self._send(
            "return_authorization",
            payload.customer_email,
            f"Return Approved - {payload.ra_number}",
            body,
        )

    def send_return_rejection(self, payload: ReturnRejection) -> Dict:
        body = "\n\n".join(
            [
                _greeting(payload),
                f"Your return request for order {payload.order_number} was not approved.",
                f"Reason: {payload.rejection_reason}",
                _items_block(payload),
                f"Order total: {_money(payload.order_total_cents)}",
            ]
        )
        return self._send(
            "return_rejection",
            payload.customer_email,
            f"Return Request Update - {payload.order_number}",
            body,
        )

    def send_return_status_update(self, payload: ReturnStatusUpdate) -> Dict:
        lines = [
            _greeting(payload),
            f"Your return for order {payload.order_number} is now {payload.status}.",
        ]
        if payload.ra_number:
            lines.append(f"Return Authorization number: {payload.ra_number}")
        if payload.admin_notes:
            lines.append(f"Notes: {payload.admin_notes}")
        return self._send(
            "return_status_update",
            payload.customer_email,
            f"Return {payload.status.title()} - {payload.order_number}",
            "\n\n".join(lines),
        )


class MockEmailAdapter(EmailAdapter):
    """
    Keeps messages in memory instead of delivering them.
    `fail` makes every delivery report failure, `raise_on` raises for the listed recipients.
    """

    def __init__(self, fail: bool = False, raise_on: Optional[List[str]] = None):
        self.fail = fail
        self.raise_on = set(raise_on or [])
        self.outbox: List[Tuple[str, str, str]] = []

    def _deliver(self, to_email: str, subject: str, body: str) -> bool:
        if to_email in self.raise_on:
            raise ConnectionError(f"mock mail server refused {to_email}")
        if self.fail:
            return False
        self.outbox.append((to_email, subject, body))
        log.info("mock email to %s: %s", to_email, subject)
        return True


class SmtpEmailAdapter(EmailAdapter):
    def __init__(
        self,
        smtp_host: str = "smtp.gmail.com",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        from_email: str = "",
        from_name: str = "Returns Desk",
        timeout: int = 10,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_email = from_email or smtp_user
        self.from_name = from_name
        self.timeout = timeout

    def health_check(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)

    def _deliver(self, to_email: str, subject: str, body: str) -> bool:
        if not self.smtp_user or not self.smtp_password:
            log.warning("Email not configured. SMTP credentials missing.")
            return False

        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())
        except smtplib.SMTPAuthenticationError:
            log.error("SMTP Authentication failed. Check email credentials.")
            return False
        except (smtplib.SMTPException, OSError) as e:
            log.error("SMTP error sending to %s: %s", to_email, e)
            return False

        log.info("Email sent successfully to %s", to_email)
        return True


def build_email_adapter() -> EmailAdapter:
    if settings.EMAIL_BACKEND == "smtp":
        return SmtpEmailAdapter(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            from_email=settings.SMTP_FROM_EMAIL,
            from_name=settings.SMTP_FROM_NAME,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )
    return MockEmailAdapter()
