from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from models.payment import PaymentMethod, PaymentStatus

class PaymentRequest(BaseModel):
    delivery_id: str
    payment_method: PaymentMethod

class PaymentResponse(BaseModel):
    id: str
    delivery_id: str
    user_id: str
    amount: float
    payment_method: Optional[PaymentMethod] = None
    status: PaymentStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
