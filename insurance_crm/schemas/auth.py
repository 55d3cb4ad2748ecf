from pydantic import BaseModel, Field
from typing import Optional


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, description="Username or email")
    pin: str = Field(..., min_length=1)
    state: Optional[str] = Field(None, description="Mobile login only; defaults to the user's own state")


class UserInfo(BaseModel):
    id: int
    username: str
    email: str
    user_role: str
    location_state: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    mobile_number: Optional[str] = None

    class Config:
        from_attributes = True


class LoginData(BaseModel):
    user: UserInfo
    token: str
    token_type: str = "bearer"
    state: Optional[str] = None


class LoginResponse(BaseModel):
    success: bool
    data: Optional[LoginData] = None
    error: Optional[str] = None
