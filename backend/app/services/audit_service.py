import logging
import time
from contextlib import contextmanager
from typing import Callable, Dict, Optional

from fastapi import HTTPException

from app.db import SessionLocal
from app.models.admin_log import AdminLog
from app.services.access_guard import Caller

log = logging.getLogger(__name__)


class AuditService:
    """Persists one admin_logs row per audited admin action."""

    def __init__(self, session_factory: Callable = SessionLocal):
        self.session_factory = session_factory

    def record(
        self,
        action: str,
        caller: Optional[Caller],
        status_code: int,
        duration_ms: int,
        ip_address: Optional[str] = None,
        metadata: Optional[Dict] = None,
    ) -> None:
        """
        Write the audit row in a short-lived session of its own so it is kept
        even when the request's session rolled back. Failures are logged only.
        """
        try:
            with self.session_factory() as s:
                s.add(
                    AdminLog(
                        action=action,
                        user_id=caller.id if caller else None,
                        role=caller.role if caller else None,
                        status_code=status_code,
                        duration_ms=duration_ms,
                        ip_address=ip_address,
                        data=metadata,
                    )
                )
                s.commit()
        except Exception:
            log.exception("Failed to persist admin audit log for %s", action)

    @contextmanager
    def trail(
        self,
        action: str,
        caller: Optional[Caller],
        ip_address: Optional[str] = None,
        metadata: Optional[Dict] = None,
    ):
        """
        Wrap an admin route body. HTTPExceptions raised inside set the recorded
        status code; anything else counts as 500.
        """
        start = time.monotonic()
        user_id = caller.id if caller else "unknown"
        role = caller.role if caller else "unknown"
        log.info("[ADMIN-ACTION] start action=%s user=%s role=%s ip=%s", action, user_id, role, ip_address)
        status_code = 200
        try:
            yield
        except HTTPException as e:
            status_code = e.status_code
            raise
        except Exception:
            status_code = 500
            raise
        finally:
            duration_ms = int((time.monotonic() - start) * 1000)
            outcome = "failed" if status_code >= 400 else "complete"
            level = logging.WARNING if status_code >= 400 else logging.INFO
            log.log(
                level,
                "[ADMIN-ACTION] %s action=%s user=%s role=%s status=%s duration_ms=%s",
                outcome,
                action,
                user_id,
                role,
                status_code,
                duration_ms,
            )
            self.record(action, caller, status_code, duration_ms, ip_address, metadata)
