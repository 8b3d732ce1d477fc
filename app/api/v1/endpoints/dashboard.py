"""Dashboard endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import CurrentUser
from app.schemas.dashboard import DashboardResponse
from app.services.analytics import AnalyticsService

router = APIRouter()


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    course_id: int | None = Query(None),
    subject_id: int | None = Query(None),
):
    """
    Get dashboard analytics.

    Totals, grade distribution, averages per assessment type, demographic
    distributions and points per assessment type, optionally narrowed to one
    course and/or subject.
    """
    service = AnalyticsService(db)
    return await service.get_dashboard(current_user.id, course_id, subject_id)
