# inkhall/api/v1/endpoints/statistics.py
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from inkhall.api.deps import year_param
from inkhall.core.security import get_current_admin, get_current_staff
from inkhall.db.session import get_db
from inkhall.models.user import User
from inkhall.schemas.statistics import (
    CourseStat,
    DailyConsumption,
    MonthlyHoursSeries,
    MonthlyRevenueSeries,
    Overview,
    PackageStat,
    StudentStat,
    TeacherStat,
)
from inkhall.services import statistics_service

router = APIRouter()


@router.get("/overview", response_model=Overview)
def overview(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return statistics_service.overview(db)


@router.get("/daily-consumption", response_model=List[DailyConsumption])
def daily_consumption(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    """
    按天统计出勤；老师只看自己的课程。
    """
    return statistics_service.daily_consumption(
        db, viewer=current_user, start_date=start_date, end_date=end_date
    )


@router.get("/monthly-hours", response_model=MonthlyHoursSeries)
def monthly_hours(
    year: int = Depends(year_param),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return MonthlyHoursSeries(
        year=year, monthly_data=statistics_service.monthly_hours(db, year=year)
    )


@router.get("/monthly-revenue", response_model=MonthlyRevenueSeries)
def monthly_revenue(
    year: int = Depends(year_param),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return MonthlyRevenueSeries(
        year=year, monthly_data=statistics_service.monthly_revenue(db, year=year)
    )


@router.get("/teachers", response_model=List[TeacherStat])
def teacher_statistics(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return statistics_service.teacher_stats(db)


@router.get("/students", response_model=List[StudentStat])
def student_statistics(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    return statistics_service.student_stats(db, viewer=current_user)


@router.get("/courses", response_model=List[CourseStat])
def course_statistics(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    return statistics_service.course_stats(
        db, viewer=current_user, start_date=start_date, end_date=end_date
    )


@router.get("/packages", response_model=List[PackageStat])
def package_statistics(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return statistics_service.package_stats(db)
