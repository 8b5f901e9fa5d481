from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from app.schemas.notification_schema import LineItemPayload


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ReturnRequestCreate(BaseModel):
    order_number: Optional[str] = None
    reason: Optional[str] = None
    photos: List[str] = []


class ReturnStatusUpdate(BaseModel):
    status: Optional[str] = None
    admin_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    return_address: Optional[str] = None


class OrderSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    order_number: str
    status: str
    total_cents: int
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, value):
        return _as_utc(value)


class UserSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None


class ReturnRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    user_id: Optional[str] = None
    order_id: int
    order_number: str
    reason: str
    photos: List[str] = []
    status: str
    admin_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    return_address: Optional[str] = None
    return_authorization_number: Optional[str] = None
    approved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    order: Optional[OrderSummaryOut] = None
    order_items: List[LineItemPayload] = []
    user: Optional[UserSummaryOut] = None

    @field_validator("approved_at", "completed_at", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, value):
        return _as_utc(value)

    @field_validator("photos", mode="before")
    @classmethod
    def default_photos(cls, value):
        return value or []

    @field_validator("order_items", mode="before")
    @classmethod
    def materialize_items(cls, value):
        return list(value or [])
