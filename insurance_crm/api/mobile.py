import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from insurance_crm.config import settings
from insurance_crm.database import get_db
from insurance_crm.schemas.customer import (
    CustomerResponse, StatusUpdateRequest, IndividualSubmissionRequest, StatusBreakdownItem
)
from insurance_crm.services.customer_lifecycle import (
    CustomerLifecycleService, CustomerPage, LifecycleError, StatusUpdateResult,
    closed_statuses, open_statuses,
)
from insurance_crm.services.metrics import MetricsService
from insurance_crm.middleware.auth import get_current_user
from insurance_crm.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/mobile", tags=["Mobile"])

ERROR_STATUS_CODES = {
    LifecycleError.INVALID_STATUS: status.HTTP_400_BAD_REQUEST,
    LifecycleError.INVALID_REMINDER_DATE: status.HTTP_400_BAD_REQUEST,
    LifecycleError.NOT_FOUND_OR_NOT_OWNED: status.HTTP_404_NOT_FOUND,
}


def status_rules() -> dict:
    return {
        "closed": ", ".join(closed_statuses()) + " -> removed from home list",
        "open": ", ".join(open_statuses()) + " -> remain in home list",
        "reminder": "follow_up customers with future reminder dates are hidden until due",
    }


def _raise_for(result: StatusUpdateResult) -> None:
    if not result.success:
        raise HTTPException(status_code=ERROR_STATUS_CODES[result.error], detail=result.message)


def _page_payload(customer_page: CustomerPage, user: User, showing: str, include_closed: bool) -> dict:
    return {
        "customers": [CustomerResponse.model_validate(c) for c in customer_page.customers],
        "pagination": {
            "current_page": customer_page.page,
            "page_size": customer_page.size,
            "total_count": customer_page.total,
            "total_pages": customer_page.total_pages,
        },
        "user_info": {
            "user_id": user.id,
            "username": user.username,
            "state": user.location_state,
        },
        "filter_info": {
            "include_closed": include_closed,
            "showing": showing,
            "closed_statuses": closed_statuses(),
            "open_statuses": open_statuses(),
        },
    }


def _breakdown(rows) -> list:
    return [StatusBreakdownItem(customer_status=s, is_closed=c, count=n) for s, c, n in rows]


@router.get("/customers/allocated")
def get_allocated_customers(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    include_closed: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Open work queue of the current user, or every assigned customer with include_closed"""
    service = CustomerLifecycleService(db)
    if include_closed:
        customer_page = service.list_all(current_user.id, page, size)
        showing = "All customers"
    else:
        customer_page = service.list_open(current_user.id, page, size)
        showing = "Open customers only"

    data = _page_payload(customer_page, current_user, showing, include_closed)
    data["status_breakdown"] = _breakdown(service.status_breakdown(current_user.id))
    data["system_info"] = {"status_rules": status_rules()}

    logger.info(f"Found {len(customer_page.customers)} {'total' if include_closed else 'open'} "
                f"customers for user {current_user.id}")
    return {"success": True, "data": data}


@router.patch("/customers/{customer_id}/status")
def update_customer_status(
    customer_id: int,
    request: StatusUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a customer's status; closing statuses also unassign it"""
    result = CustomerLifecycleService(db).update_status(
        customer_id, current_user.id, request.status, request.notes, request.reminder_date
    )
    _raise_for(result)

    return {
        "success": True,
        "data": {
            "customer_id": result.customer_id,
            "status": result.status.value,
            "is_closed": result.is_closed,
            "reminder_date": result.reminder_date,
            "updated_by": current_user.username,
            "closure_info": {
                "closed_statuses": closed_statuses(),
                "open_statuses": open_statuses(),
                "action_taken": result.action_taken,
            },
        },
    }


@router.post("/customers/submit-individual")
def submit_individual_customer(
    request: IndividualSubmissionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record a status and move the customer to the user's submissions"""
    if request.user_id != current_user.id:
        logger.warning(f"User ID mismatch: authenticated user {current_user.id} vs request user {request.user_id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User ID mismatch")

    result = CustomerLifecycleService(db).submit_individual(
        request.customer_id, current_user.id, request.status, request.notes, request.follow_up_date
    )
    _raise_for(result)

    return {
        "success": True,
        "message": f"Customer status updated to '{result.status.value}' and moved to submissions!",
        "data": {
            "customer_id": result.customer_id,
            "status": result.status.value,
            "is_closed": True,
            "unassigned": True,
            "moved_to_submissions": True,
            "updated_by": current_user.username,
        },
    }


@router.get("/customers/submissions")
def get_submitted_customers(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Closed customers last updated by the current user"""
    service = CustomerLifecycleService(db)
    customer_page = service.list_submitted(current_user.id, page, size)

    data = _page_payload(customer_page, current_user, "My submitted customers", True)
    data["status_breakdown"] = _breakdown(service.status_breakdown(current_user.id, closed_only=True))
    data["system_info"] = {"status_rules": status_rules()}
    return {"success": True, "data": data}


@router.get("/customers/follow-up")
def get_follow_up_customers(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    days_ahead: int = Query(settings.FOLLOW_UP_DAYS_AHEAD, ge=0, le=365),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Follow-ups due within days_ahead, soonest first"""
    customer_page = CustomerLifecycleService(db).list_follow_up(current_user.id, page, size, days_ahead)
    data = _page_payload(
        customer_page, current_user, f"Follow-up customers due within {days_ahead} days", False
    )
    return {"success": True, "data": data}


@router.get("/analytics")
def get_user_analytics(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Activity summary for the current user"""
    return {
        "success": True,
        "message": "Analytics data retrieved successfully",
        "data": MetricsService(db).user_analytics(current_user.id),
    }
