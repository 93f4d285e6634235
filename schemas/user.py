from pydantic import BaseModel, EmailStr, validator, Field
from typing import Optional, Union
from datetime import datetime
from models.user import UserRole
import re

# Base User Schema
class UserBase(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    role: Union[UserRole, str] = UserRole.CUSTOMER

# User Registration Schema
class UserRegister(UserBase):
    password: str = Field(..., min_length=8, max_length=72)
    confirm_password: str = Field(..., min_length=8, max_length=72)
    company_name: Optional[str] = Field(None, max_length=120)

    @validator('name')
    def validate_name(cls, v):
        if not v or len(v.strip()) < 2:
            raise ValueError('Name must be at least 2 characters long')
        return v.strip()

    @validator('phone')
    def validate_phone(cls, v):
        if v is None:
            return v
        clean_phone = re.sub(r'\D', '', v)
        if len(clean_phone) < 9 or len(clean_phone) > 15:
            raise ValueError('Phone number must be between 9 and 15 digits')
        return clean_phone

    @validator('password')
    def validate_password(cls, v):
        if not any(c.isupper() for c in v):
            raise ValueError('Password must contain at least one uppercase letter')
        if not any(c.islower() for c in v):
            raise ValueError('Password must contain at least one lowercase letter')
        if not any(c.isdigit() for c in v):
            raise ValueError('Password must contain at least one digit')
        return v

    @validator('confirm_password')
    def validate_confirm_password(cls, v, values):
        if 'password' in values and v != values['password']:
            raise ValueError('Passwords do not match')
        return v

    @validator('role')
    def validate_role(cls, v):
        if isinstance(v, str):
            try:
                v = UserRole(v.lower())
            except ValueError:
                valid_roles = [role.value for role in UserRole]
                raise ValueError(f'Invalid role. Must be one of: {valid_roles}')
        if v == UserRole.ADMIN:
            raise ValueError('Admin accounts cannot be self-registered')
        return v

    @validator('company_name', always=True)
    def validate_company_name(cls, v, values):
        if values.get('role') == UserRole.VENDOR and not (v and v.strip()):
            raise ValueError('Vendors must provide a company name')
        return v.strip() if v else v

# User Login Schema
class UserLogin(BaseModel):
    email: EmailStr
    password: str

# User Response Schema
class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    phone: Optional[str]
    role: UserRole
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True

# Vendor Response Schema
class VendorResponse(BaseModel):
    id: str
    company_name: str
    email: Optional[str]
    phone: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True

# Token Schema
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

# Claims read back from a bearer token
class TokenData(BaseModel):
    email: str
    user_id: str
    role: UserRole
