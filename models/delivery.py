import uuid
from datetime import datetime
from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Numeric, Text, Enum
from sqlalchemy.orm import relationship
from database.base import Base
import enum

class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

class PackageType(str, enum.Enum):
    STANDARD = "standard"
    HANDLE_WITH_CARE = "handle_with_care"
    FRAGILE = "fragile"
    OVERSIZED = "oversized"

TERMINAL_STATUSES = frozenset({
    DeliveryStatus.DELIVERED,
    DeliveryStatus.REJECTED,
    DeliveryStatus.CANCELLED,
})

class Delivery(Base):
    __tablename__ = "deliveries"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    vendor_id = Column(String, ForeignKey("vendors.id"), nullable=True, index=True)
    pickup_address = Column(Text, nullable=False)
    drop_address = Column(Text, nullable=False)
    weight_kg = Column(Numeric(10, 2), nullable=False)
    package_type = Column(Enum(PackageType), nullable=False, default=PackageType.STANDARD)
    scheduled_date = Column(Date, nullable=True)
    status = Column(Enum(DeliveryStatus), nullable=False, default=DeliveryStatus.PENDING, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    customer = relationship("User", foreign_keys=[user_id])
    vendor = relationship("Vendor", foreign_keys=[vendor_id])
