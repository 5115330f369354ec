import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Uuid

from app.core.database import Base
from app.models.enums import VehicleType


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    provider_id = Column(Uuid(as_uuid=True), ForeignKey("car_providers.id"), nullable=False, index=True)
    license_plate = Column(String(20), unique=True, index=True, nullable=False)
    brand = Column(String, nullable=False)
    model = Column(String, nullable=False)
    type = Column(String, default=VehicleType.other.value, nullable=False)
    color = Column(String, nullable=True)
    daily_rate = Column(Float, nullable=False)
    # Minimum customer tier required to rent
    tier = Column(Integer, default=0, nullable=False)
    available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.model}"
