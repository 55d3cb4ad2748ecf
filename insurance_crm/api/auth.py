import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from insurance_crm.database import get_db
from insurance_crm.schemas.auth import LoginRequest, LoginResponse, LoginData, UserInfo
from insurance_crm.services.auth_service import AuthService, AuthenticationError, valid_states
from insurance_crm.middleware.auth import get_current_user, get_request_ip
from insurance_crm.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _user_info(user: User) -> UserInfo:
    return UserInfo(
        id=user.id,
        username=user.username,
        email=user.email,
        user_role=user.role.value,
        location_state=user.location_state,
        first_name=user.first_name,
        last_name=user.last_name,
        mobile_number=user.mobile_number,
    )


@router.post("/login", response_model=LoginResponse)
def login(
    request: LoginRequest,
    http_request: Request,
    db: Session = Depends(get_db)
):
    """Web/admin login"""
    logger.info(f"Web login attempt from {get_request_ip(http_request)} for {request.username}")
    try:
        user, token = AuthService(db).login_web(request.username, request.pin)
    except AuthenticationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return LoginResponse(success=True, data=LoginData(user=_user_info(user), token=token))


@router.post("/mobile-login", response_model=LoginResponse)
def mobile_login(
    request: LoginRequest,
    http_request: Request,
    db: Session = Depends(get_db)
):
    """Mobile login; the token carries the user's state"""
    logger.info(f"Mobile login attempt from {get_request_ip(http_request)} for {request.username} "
                f"in state {request.state}")
    try:
        user, token, state = AuthService(db).login_mobile(request.username, request.pin, request.state)
    except AuthenticationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return LoginResponse(success=True, data=LoginData(user=_user_info(user), token=token, state=state))


@router.post("/validate-token")
def validate_token(current_user: User = Depends(get_current_user)):
    """Return the user behind a bearer token"""
    return {"success": True, "user": _user_info(current_user)}


@router.get("/states")
def get_available_states():
    """States accepted by mobile login"""
    return {"success": True, "data": valid_states()}
