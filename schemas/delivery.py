from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import date, datetime
from models.delivery import DeliveryStatus, PackageType

# Delivery intake
class DeliveryCreate(BaseModel):
    pickup_address: str = Field(..., min_length=5, max_length=500)
    drop_address: str = Field(..., min_length=5, max_length=500)
    weight_kg: float = Field(..., gt=0, le=10000)
    package_type: PackageType = PackageType.STANDARD
    scheduled_date: Optional[date] = None
    vendor_id: Optional[str] = None

    @validator('pickup_address', 'drop_address')
    def validate_address(cls, v):
        if not v.strip():
            raise ValueError('Address cannot be blank')
        return v.strip()

    @validator('drop_address')
    def validate_distinct_addresses(cls, v, values):
        if values.get('pickup_address') and values['pickup_address'].lower() == v.lower():
            raise ValueError('Pickup and drop addresses must differ')
        return v

class DeliveryResponse(BaseModel):
    id: str
    user_id: str
    vendor_id: Optional[str] = None
    pickup_address: str
    drop_address: str
    weight_kg: float
    package_type: PackageType
    scheduled_date: Optional[date] = None
    status: DeliveryStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class DeliveryCreatedResponse(BaseModel):
    delivery: DeliveryResponse
    payment_id: Optional[str] = None
    estimated_price: float

# Status transitions
class TransitionRequest(BaseModel):
    status: DeliveryStatus
    expected_status: Optional[DeliveryStatus] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @validator('longitude', always=True)
    def validate_coordinates_pair(cls, v, values):
        if (v is None) != (values.get('latitude') is None):
            raise ValueError('Latitude and longitude must be supplied together')
        return v

class StatusActionRequest(BaseModel):
    expected_status: Optional[DeliveryStatus] = None

class AssignVendorRequest(BaseModel):
    vendor_id: str

class TrackingUpdateResponse(BaseModel):
    id: str
    delivery_id: str
    status_update: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    updated_at: datetime

    class Config:
        from_attributes = True

class TrackingResponse(BaseModel):
    delivery: DeliveryResponse
    updates: List[TrackingUpdateResponse]

class TransitionResponse(BaseModel):
    delivery: DeliveryResponse
    previous_status: DeliveryStatus
    tracking_update: Optional[TrackingUpdateResponse] = None
    notifications_sent: int
    warnings: List[str] = []

class DeliveryDetailResponse(BaseModel):
    delivery: DeliveryResponse
    available_transitions: List[DeliveryStatus] = []
