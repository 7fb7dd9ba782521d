"""Report endpoints.

All ranges are inclusive and default to the current calendar month.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal, get_current_principal
from agency_api.db.session import get_db
from agency_api.schemas import (
    CampaignHoursReport,
    ClientHoursReport,
    ClientSummary,
    DashboardStats,
    EmployeeHoursReport,
    MyHoursReport,
)
from agency_api.services import reports

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("/hours-by-employee", response_model=EmployeeHoursReport)
def hours_by_employee(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Owners and managers only; managers see their assigned clients."""
    return reports.hours_by_employee(db, principal, start_date, end_date)


@router.get("/hours-by-client", response_model=ClientHoursReport)
def hours_by_client(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return reports.hours_by_client(db, principal, start_date, end_date)


@router.get("/hours-by-campaign", response_model=CampaignHoursReport)
def hours_by_campaign(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return reports.hours_by_campaign(db, principal, start_date, end_date)


@router.get("/my-hours", response_model=MyHoursReport)
def my_hours(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return reports.my_hours(db, principal, start_date, end_date)


@router.get("/dashboard-stats", response_model=DashboardStats)
def dashboard_stats(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """KPI tiles scoped to what the caller can see. Weeks start on Sunday."""
    return reports.dashboard_stats(db, principal)


@router.get("/client-summary/{client_id}", response_model=ClientSummary)
def client_summary(
    client_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return reports.client_summary(db, principal, client_id, start_date, end_date)
