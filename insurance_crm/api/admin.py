import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from insurance_crm.config import settings
from insurance_crm.database import get_db
from insurance_crm.schemas.user import UserResponse, UserCreate, UserUpdate, ResetPinRequest
from insurance_crm.repositories.user_repo import UserRepository
from insurance_crm.middleware.auth import require_admin
from insurance_crm.models.user import User, UserRole
from insurance_crm.utils.helpers import normalize_state_name, page_to_offset, total_pages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def _get_user_or_404(repo: UserRepository, user_id: int) -> User:
    user = repo.get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    role: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort_by: Optional[str] = Query("created_at", description="Sort by: id, created_at, username, email, last_login, location_state"),
    sort_order: Optional[str] = Query("desc", description="Sort order: asc or desc"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List users with filters and pagination"""
    users, total = UserRepository(db).get_all(
        skip=page_to_offset(page, size),
        limit=size,
        role=role,
        state=normalize_state_name(state),
        search=search,
        sort_field=sort_by,
        sort_desc=(sort_order or "desc").lower() != "asc",
    )

    return {
        "success": True,
        "data": [UserResponse.model_validate(u) for u in users],
        "total": total,
        "total_pages": total_pages(total, size),
        "current_page": page,
        "page_size": size,
    }


@router.get("/users/{user_id}")
def get_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    user = _get_user_or_404(UserRepository(db), user_id)
    return {"success": True, "data": UserResponse.model_validate(user)}


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a new user"""
    repo = UserRepository(db)

    if repo.exists_username(user_data.username):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")
    if repo.exists_email(user_data.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already exists")

    user = repo.create(
        username=user_data.username,
        email=user_data.email,
        pin=user_data.pin,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        mobile_number=user_data.mobile_number,
        location_city=user_data.location_city,
        location_state=normalize_state_name(user_data.location_state),
        role=UserRole.parse(user_data.user_role),
        created_by=current_user.username,
    )
    logger.info(f"User {user.username} created by {current_user.username}")
    return {"success": True, "data": UserResponse.model_validate(user)}


@router.patch("/users/{user_id}")
def update_user(
    user_id: int,
    user_data: UserUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update a user; unlocking also clears the failed-login counter"""
    repo = UserRepository(db)
    user = _get_user_or_404(repo, user_id)

    if user_data.email and repo.exists_email(user_data.email, exclude_id=user.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already exists")

    changes = user_data.model_dump(exclude_unset=True)
    if "user_role" in changes and changes["user_role"] is not None:
        changes["user_role"] = UserRole.parse(changes["user_role"]).value
    if "location_state" in changes:
        changes["location_state"] = normalize_state_name(changes["location_state"])
    if changes.get("is_locked") is False:
        user.failed_login_attempts = 0
        user.locked_until = None

    user = repo.update(user, **changes)
    logger.info(f"User {user.username} updated by {current_user.username}: {sorted(changes)}")
    return {"success": True, "data": UserResponse.model_validate(user)}


@router.post("/users/{user_id}/reset-pin")
def reset_user_pin(
    user_id: int,
    request: ResetPinRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Set a new PIN and clear any lockout"""
    repo = UserRepository(db)
    user = _get_user_or_404(repo, user_id)

    user.is_locked = False
    user.failed_login_attempts = 0
    user.locked_until = None
    repo.set_pin(user, request.new_pin)

    logger.info(f"PIN reset for user {user.username} by {current_user.username}")
    return {"success": True, "message": "PIN reset successfully"}
