import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_audit, get_notifier, get_optional_caller, require_caller
from app.config import settings
from app.db import get_db
from app.schemas.return_request_schema import (
    ReturnRequestCreate,
    ReturnRequestOut,
    ReturnStatusUpdate,
)
from app.services.access_guard import Caller, is_staff
from app.services.audit_service import AuditService
from app.services.exceptions import ReturnServiceException, StoreError
from app.services.notifications import NotificationDispatcher
from app.services.return_service import ReturnService

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/return-requests", tags=["returns"])


def _http_error(e: ReturnServiceException, caller: Optional[Caller]) -> HTTPException:
    if isinstance(e, StoreError):
        log.error("store error: %s %s", e.message, e.detail)
        if settings.DEBUG and is_staff(caller):
            return HTTPException(status_code=500, detail={"message": e.message, "error": e.detail})
        return HTTPException(status_code=500, detail=e.message)
    return HTTPException(status_code=e.status_code, detail=e.message)


def _audit_context(request: Request) -> dict:
    return {
        "ip_address": request.client.host if request.client else None,
        "metadata": {"method": request.method, "path": request.url.path},
    }


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create return request")
def create_return_request(
    payload: ReturnRequestCreate,
    db: Session = Depends(get_db),
    caller: Optional[Caller] = Depends(get_optional_caller),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    svc = ReturnService(db, notifier)
    try:
        rr = svc.create_return_request(caller, payload.order_number, payload.reason, payload.photos)
    except ReturnServiceException as e:
        raise _http_error(e, caller)
    return {
        "success": True,
        "message": "Return request submitted successfully. Our team will review it shortly.",
        "data": ReturnRequestOut.model_validate(rr),
    }


@router.get("", summary="List return requests (own, or all for staff)")
def list_return_requests(
    status: Optional[str] = None,
    order_number: Optional[str] = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_caller),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    svc = ReturnService(db, notifier)
    try:
        rows = svc.list_return_requests(caller, status=status, order_number=order_number)
    except ReturnServiceException as e:
        raise _http_error(e, caller)
    return {"success": True, "data": [ReturnRequestOut.model_validate(rr) for rr in rows]}


@router.get("/{request_id}", summary="Get one return request")
def get_return_request(
    request_id: str,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_caller),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    svc = ReturnService(db, notifier)
    try:
        rr = svc.get_return_request(caller, request_id)
    except ReturnServiceException as e:
        raise _http_error(e, caller)
    return {"success": True, "data": ReturnRequestOut.model_validate(rr)}


@router.patch("/{request_id}/status", summary="Change return request status (staff)")
def update_return_request_status(
    request_id: str,
    payload: ReturnStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_caller),
    notifier: NotificationDispatcher = Depends(get_notifier),
    audit: AuditService = Depends(get_audit),
):
    svc = ReturnService(db, notifier)
    fields = payload.model_dump(exclude_unset=True)
    target = fields.pop("status", None)
    with audit.trail("return_requests:update", caller, **_audit_context(request)):
        try:
            rr = svc.transition_return_request(caller, request_id, target, fields)
        except ReturnServiceException as e:
            raise _http_error(e, caller)
        data = ReturnRequestOut.model_validate(rr)
    return {"success": True, "message": "Return request updated successfully", "data": data}


@router.delete("/{request_id}", summary="Delete return request (staff)")
def delete_return_request(
    request_id: str,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_caller),
    notifier: NotificationDispatcher = Depends(get_notifier),
    audit: AuditService = Depends(get_audit),
):
    svc = ReturnService(db, notifier)
    with audit.trail("return_requests:delete", caller, **_audit_context(request)):
        try:
            svc.delete_return_request(caller, request_id)
        except ReturnServiceException as e:
            raise _http_error(e, caller)
    return {"success": True, "message": "Return request deleted successfully"}
