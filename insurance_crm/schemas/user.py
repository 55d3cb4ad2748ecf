from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class UserResponse(BaseModel):
    """User response schema"""
    id: int
    username: str
    email: str
    user_role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    mobile_number: Optional[str] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    is_active: bool = True
    is_locked: bool = False
    failed_login_attempts: int = 0
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    """Schema for creating a new user"""
    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3)
    pin: str = Field(..., min_length=4, max_length=12)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    mobile_number: Optional[str] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    user_role: Optional[str] = "user"


class UserUpdate(BaseModel):
    """Schema for updating a user; omitted fields are left unchanged"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    user_role: Optional[str] = None
    is_active: Optional[bool] = None
    is_locked: Optional[bool] = None


class ResetPinRequest(BaseModel):
    new_pin: str = Field(..., min_length=4, max_length=12)
