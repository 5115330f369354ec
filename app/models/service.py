import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, String, Text, Uuid

from app.core.database import Base


class RentalService(Base):
    """Add-on offered with a rental (insurance, child seat, ...)."""
    __tablename__ = "services"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    rate = Column(Float, nullable=False)
    # Billed per rental day when true, once otherwise
    daily = Column(Boolean, nullable=False)
    available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
