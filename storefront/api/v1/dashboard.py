"""
Customer dashboard endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.core.auth import require_roles
from storefront.core.database import get_db
from storefront.models.schemas import DashboardResponse
from storefront.services.dashboard_service import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/summary", response_model=DashboardResponse)
async def get_dashboard_summary(user=Depends(require_roles("CUSTOMER")), db: Session = Depends(get_db)):
    """Counters, the last ten order updates and what the customer should do next."""
    return dashboard_service.get_dashboard(db, user)
