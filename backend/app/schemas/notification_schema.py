from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class LineItemPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    product_name: str
    quantity: int
    unit_price_cents: int
    total_price_cents: int
    product_image: Optional[str] = None
    selected_variants: Optional[dict] = None


class CustomerEmailPayload(BaseModel):
    return_request_id: str
    order_number: str
    customer_email: str
    customer_name: Optional[str] = None
    order_items: List[LineItemPayload] = []
    order_total_cents: Optional[int] = None
    order_date: Optional[datetime] = None


class ReturnRequestConfirmation(CustomerEmailPayload):
    reason: str


class AdminReturnRequestNotification(BaseModel):
    return_request_id: str
    order_number: str
    reason: str
    customer_email: Optional[str] = None


class ReturnAuthorization(CustomerEmailPayload):
    ra_number: str
    return_address: str


class ReturnRejection(CustomerEmailPayload):
    rejection_reason: str


class ReturnStatusUpdate(CustomerEmailPayload):
    status: str
    ra_number: Optional[str] = None
    admin_notes: Optional[str] = None
