from sqlalchemy import Column, Integer, String

from app.db import Base


class RaSequence(Base):
    """One counter row per calendar day (yyyymmdd) backing RA numbers."""

    __tablename__ = "ra_sequences"
    day = Column(String(8), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)
