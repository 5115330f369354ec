import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, DateTime, Float, ForeignKey, String, Text, Uuid

from app.core.database import Base
from app.models.enums import RentalStatus


class Rental(Base):
    __tablename__ = "rentals"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    vehicle_id = Column(Uuid(as_uuid=True), ForeignKey("vehicles.id"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    start_date = Column(DateTime, nullable=False)
    return_date = Column(DateTime, nullable=False)
    actual_return_date = Column(DateTime, nullable=True)
    status = Column(String(20), default=RentalStatus.pending.value, nullable=False, index=True)
    price = Column(Float, nullable=False)
    service_price = Column(Float, default=0, nullable=False)
    discount_amount = Column(Float, default=0, nullable=False)
    final_price = Column(Float, nullable=False)
    deposit_amount = Column(Float, default=0, nullable=False)
    additional_charges = Column(JSON, nullable=True)  # {"lateFee": float}
    service_ids = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    is_rated = Column(Boolean, default=False, nullable=False)
    created_by_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("return_date > start_date", name="ck_rentals_return_after_start"),
        CheckConstraint("final_price >= 0", name="ck_rentals_final_price_non_negative"),
    )
