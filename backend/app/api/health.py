import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.deps import get_notifier
from app.db import engine
from app.services.notifications import NotificationDispatcher

log = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", tags=["health"])
def health(notifier: NotificationDispatcher = Depends(get_notifier)):
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except SQLAlchemyError as e:
        log.error("health: database unreachable: %s", e)

    email_ok = notifier.email.health_check()

    return {
        "status": "ok" if db_ok and email_ok else "degraded",
        "db": db_ok,
        "email_adapter": email_ok,
    }
