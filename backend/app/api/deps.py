import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.adapters.email import build_email_adapter
from app.db import get_db
from app.models.user import User
from app.services.access_guard import Caller
from app.services.audit_service import AuditService
from app.services.notifications import NotificationDispatcher
from app.utils.security import verify_access_token

log = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def _caller_from_token(db: Session, token: str) -> Optional[Caller]:
    user_id = verify_access_token(token)
    if user_id is None:
        log.debug("token verification failed")
        return None
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        return None
    return Caller.from_user(user)


def get_optional_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> Optional[Caller]:
    """Authenticated caller, or None for guests (a bad token also means guest)."""
    if credentials is None:
        return None
    return _caller_from_token(db, credentials.credentials)


def require_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> Caller:
    caller = _caller_from_token(db, credentials.credentials) if credentials else None
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return caller


def get_notifier(request: Request) -> NotificationDispatcher:
    # the app installs a scheduler-backed dispatcher at startup
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        notifier = NotificationDispatcher(build_email_adapter())
    return notifier


def get_audit() -> AuditService:
    return AuditService()
