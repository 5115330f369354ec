import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, Integer, String, Uuid

from app.core.database import Base


class CarProvider(Base):
    __tablename__ = "car_providers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    address = Column(String, nullable=True)
    telephone_number = Column(String, nullable=True)
    credits = Column(Float, default=0, nullable=False)
    complete_rent = Column(Integer, default=0, nullable=False)
    verified = Column(Boolean, default=False, nullable=False)
    average_rating = Column(Float, default=0, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)
    # Per-star histogram
    rating_1 = Column(Integer, default=0, nullable=False)
    rating_2 = Column(Integer, default=0, nullable=False)
    rating_3 = Column(Integer, default=0, nullable=False)
    rating_4 = Column(Integer, default=0, nullable=False)
    rating_5 = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (CheckConstraint("credits >= 0", name="ck_car_providers_credits_non_negative"),)

    @property
    def rating_distribution(self) -> dict[str, int]:
        return {str(star): getattr(self, f"rating_{star}") or 0 for star in range(1, 6)}
