from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from insurance_crm.models.customer import CustomerStatus


class CustomerResponse(BaseModel):
    id: int
    first_name: Optional[str] = None
    mobile_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    registration_number: Optional[str] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    previous_insurer: Optional[str] = None
    previous_policy_number: Optional[str] = None
    customer_status: str = "not_started"
    is_closed: bool = False
    reminder_date: Optional[datetime] = None
    last_status_updated: Optional[datetime] = None
    status_updated_by: Optional[int] = None
    assigned_to: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("customer_status", mode="before")
    @classmethod
    def _default_status(cls, v):
        return CustomerStatus.parse(v).value

    @field_validator("is_closed", mode="before")
    @classmethod
    def _closed_flag(cls, v):
        return bool(v)

    class Config:
        from_attributes = True


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., min_length=1)
    notes: Optional[str] = None
    reminder_date: Optional[datetime] = None


class IndividualSubmissionRequest(BaseModel):
    user_id: int
    customer_id: int
    status: str = Field(..., min_length=1)
    notes: Optional[str] = None
    follow_up_date: Optional[datetime] = None


class AssignmentRequest(BaseModel):
    user_id: int
    customer_ids: List[int] = Field(..., min_length=1)


class StatusBreakdownItem(BaseModel):
    customer_status: str
    is_closed: bool
    count: int
