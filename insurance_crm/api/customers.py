import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from insurance_crm.config import settings
from insurance_crm.database import get_db
from insurance_crm.schemas.customer import CustomerResponse, AssignmentRequest
from insurance_crm.repositories.customer_repo import CustomerRepository
from insurance_crm.repositories.user_repo import UserRepository
from insurance_crm.middleware.auth import require_supervisor
from insurance_crm.models.user import User
from insurance_crm.utils.helpers import utcnow, page_to_offset, total_pages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/customers", tags=["Customers"])


def parse_sort(sort: Optional[str]) -> tuple:
    """'first_name ASC' -> ('first_name', False); direction defaults to DESC"""
    parts = (sort or "id DESC").split()
    field = parts[0] if parts else "id"
    descending = not (len(parts) > 1 and parts[1].upper() == "ASC")
    return field, descending


@router.get("")
def list_customers(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort: Optional[str] = Query("id DESC", description="Field and direction, e.g. 'created_at DESC'"),
    state: Optional[str] = Query(None),
    assigned_to: Optional[str] = Query(None, description="User ID, or 'null' for unassigned customers"),
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db)
):
    """List customers with pagination, sorting and filters"""
    unassigned_only = assigned_to is not None and assigned_to.strip().lower() in ("", "null")
    assigned_id = None
    if assigned_to is not None and not unassigned_only:
        try:
            assigned_id = int(assigned_to)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid assigned_to: {assigned_to}")

    sort_field, sort_desc = parse_sort(sort)
    customers, total = CustomerRepository(db).get_all(
        skip=page_to_offset(page, size),
        limit=size,
        state=state,
        assigned_to=assigned_id,
        unassigned_only=unassigned_only,
        sort_field=sort_field,
        sort_desc=sort_desc,
    )

    return {
        "success": True,
        "data": [CustomerResponse.model_validate(c) for c in customers],
        "total": total,
        "total_pages": total_pages(total, size),
        "current_page": page,
        "page_size": size,
    }


@router.get("/unassigned")
def list_unassigned_customers(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    state: Optional[str] = Query(None),
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db)
):
    """Open customers available for assignment"""
    customers, total = CustomerRepository(db).find_unassigned(page_to_offset(page, size), size, state)
    return {
        "success": True,
        "data": [CustomerResponse.model_validate(c) for c in customers],
        "total": total,
        "total_pages": total_pages(total, size),
        "current_page": page,
        "page_size": size,
    }


@router.post("/assign")
def assign_customers(
    request: AssignmentRequest,
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db)
):
    """Assign open, unassigned customers to an active user"""
    assignee = UserRepository(db).get_by_id(request.user_id)
    if not assignee or not assignee.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found or inactive")

    customer_ids = list(dict.fromkeys(request.customer_ids))
    assigned = CustomerRepository(db).assign_to_user(customer_ids, assignee.id, utcnow())
    logger.info(f"{current_user.username} assigned {assigned}/{len(customer_ids)} customers to user {assignee.id}")

    return {
        "success": True,
        "data": {
            "user_id": assignee.id,
            "requested": len(customer_ids),
            "assigned": assigned,
            "skipped": len(customer_ids) - assigned,
        },
    }


@router.get("/search")
def search_customers(
    q: str = Query(..., min_length=1, description="Mobile number digits or part of a name"),
    limit: int = Query(100, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db)
):
    """Search customers by mobile number or name"""
    customers = CustomerRepository(db).search(q, limit)
    return {
        "success": True,
        "data": [CustomerResponse.model_validate(c) for c in customers],
        "total": len(customers),
    }


@router.get("/{customer_id}")
def get_customer(
    customer_id: int,
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db)
):
    customer = CustomerRepository(db).get_by_id(customer_id)
    if not customer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return {"success": True, "data": CustomerResponse.model_validate(customer)}
