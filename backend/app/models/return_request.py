import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import relationship

from app.db import Base


class ReturnStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls):
        return [s.value for s in cls]


class ReturnRequest(Base):
    __tablename__ = "return_requests"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    order_number = Column(String(64), nullable=False, index=True)
    reason = Column(Text, nullable=False)
    photos = Column(JSON, nullable=False, default=list)
    status = Column(String(32), nullable=False, default=ReturnStatus.PENDING.value)
    admin_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    return_address = Column(Text, nullable=True)
    return_authorization_number = Column(String(32), unique=True, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = relationship("User")
    order = relationship("Order")

    # filled by the repository from a separate order_items query
    order_items = ()

    def __repr__(self):
        return f"<ReturnRequest id={self.id} order={self.order_number} status={self.status}>"


# at most one pending request per order number, case-insensitive
PENDING_ORDER_INDEX = "uq_return_requests_pending_order"

Index(
    PENDING_ORDER_INDEX,
    func.lower(ReturnRequest.order_number),
    unique=True,
    sqlite_where=ReturnRequest.status == ReturnStatus.PENDING.value,
    postgresql_where=ReturnRequest.status == ReturnStatus.PENDING.value,
)
