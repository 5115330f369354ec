import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Float, Integer, String, Uuid

from app.core.database import Base
from app.models.enums import Role


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    telephone_number = Column(String, nullable=True)
    role = Column(String, default=Role.user.value, nullable=False)
    total_spend = Column(Float, default=0, nullable=False)
    tier = Column(Integer, default=0, nullable=False)
    # Credit balance; changed only through app.core.ledger
    credits = Column(Float, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),)
