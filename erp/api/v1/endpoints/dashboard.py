"""Dashboard API endpoints - counts, sums and revenue trend."""
from typing import Optional

from fastapi import APIRouter, Query

from erp.api.deps import DB, OrgId
from erp.api.response import ok, http_error
from erp.services.dashboard_service import DashboardService, DashboardError, parse_range


router = APIRouter(tags=["Dashboard"])


@router.get("")
async def get_dashboard(
    db: DB,
    org_id: OrgId,
    date_from: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, alias="to", description="YYYY-MM-DD"),
):
    """
    Per-entity counts and sums plus sales, payments and inventory figures.
    The range is inclusive; all time when omitted.
    """
    try:
        data = await DashboardService(db, org_id).get_overview(*parse_range(date_from, date_to))
    except DashboardError as e:
        raise http_error(e)

    return ok(data, message="Dashboard data fetched")


@router.get("/timeseries")
async def get_timeseries(
    db: DB,
    org_id: OrgId,
    date_from: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, alias="to", description="YYYY-MM-DD"),
):
    """Daily revenue and invoice count; every day is present when both bounds are given."""
    try:
        series = await DashboardService(db, org_id).get_timeseries(*parse_range(date_from, date_to))
    except DashboardError as e:
        raise http_error(e)

    return ok({"timeseries": series}, message="Dashboard timeseries fetched")
