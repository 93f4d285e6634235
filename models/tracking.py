import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Float
from database.base import Base

class TrackingUpdate(Base):
    """Append-only history entry written on every status change."""
    __tablename__ = "tracking_updates"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    delivery_id = Column(String, ForeignKey("deliveries.id"), nullable=False, index=True)
    status_update = Column(String(50), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, index=True)
