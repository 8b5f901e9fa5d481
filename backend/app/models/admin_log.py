import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String

from app.db import Base


class AdminLog(Base):
    __tablename__ = "admin_logs"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    action = Column(String(128), nullable=False)
    user_id = Column(String(36), nullable=True, index=True)
    role = Column(String(32), nullable=True)
    status_code = Column(Integer, nullable=True)
    duration_ms = Column(Integer, nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )
    data = Column("metadata", JSON, nullable=True)
