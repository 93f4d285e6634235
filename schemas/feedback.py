from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional
import enum

class FeedbackType(str, enum.Enum):
    GENERAL = "general"
    BUG = "bug"
    FEATURE = "feature"
    COMPLAINT = "complaint"
    PRAISE = "praise"

class FeedbackCreate(BaseModel):
    feedback_type: FeedbackType = FeedbackType.GENERAL
    subject: str = Field(..., min_length=3, max_length=200)
    message: str = Field(..., min_length=10, max_length=5000)
    # Default to the account's own name and email
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None

    @validator('subject', 'message')
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError('Field cannot be blank')
        return v.strip()

class FeedbackResponse(BaseModel):
    success: bool = True
    message: str
    notifications_sent: int
