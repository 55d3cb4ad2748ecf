from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from insurance_crm.database import get_db
from insurance_crm.services.metrics import MetricsService
from insurance_crm.middleware.auth import require_supervisor
from insurance_crm.models.user import User
from insurance_crm.utils.helpers import normalize_state_name

router = APIRouter(prefix="/api/admin/metrics", tags=["Metrics"])


@router.get("/overview")
def get_overview(
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db)
):
    """Customer totals by dashboard category, state and top closers"""
    return {"success": True, "data": MetricsService(db).overview()}


@router.get("/state")
def get_state_metrics(
    state: str = Query(..., min_length=1),
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db)
):
    normalized = normalize_state_name(state)
    if not normalized:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid state")
    return {"success": True, "data": MetricsService(db).state_metrics(normalized)}


@router.get("/states")
def get_states(
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db)
):
    """States that have at least one customer"""
    return {"success": True, "data": MetricsService(db).available_states()}


@router.get("/daily")
def get_daily_metrics(
    days: int = Query(7, ge=1, le=90),
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db)
):
    return {"success": True, "data": MetricsService(db).daily(days)}
