from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database.base import Base

class Vendor(Base):
    """Company profile of a vendor user; shares the user's id."""
    __tablename__ = "vendors"

    id = Column(String, ForeignKey("users.id"), primary_key=True, index=True)
    company_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User")
