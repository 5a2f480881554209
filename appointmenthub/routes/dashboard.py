"""
Dashboard Routes
Headline numbers, recent activity and period analytics for the signed-in user's tenant
"""

import logging
import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..auth import get_current_user, resolve_tenant_scope
from ..database import get_db
from ..models import ROLE_CLIENT, ROLE_PROVIDER, Appointment, Service, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


def growth_percentage(this_month: int, last_month: int) -> str:
    if last_month > 0:
        return f"{(this_month - last_month) / last_month * 100:.1f}%"
    return "100.0%" if this_month > 0 else "0.0%"


def scoped_appointments(db: Session, user: User, tenant_id: int):
    """Appointments of a tenant as far as the user may see them"""
    appointments = db.query(Appointment).filter(Appointment.tenant_id == tenant_id)
    if user.role == ROLE_PROVIDER:
        appointments = appointments.filter(Appointment.provider_id == user.id)
    elif user.role == ROLE_CLIENT:
        appointments = appointments.filter(Appointment.client_id == user.id)
    return appointments


@router.get("/stats")
async def get_dashboard_stats(
    tenantId: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Appointment counts, month-over-month growth and the five newest bookings"""
    tenant_id = resolve_tenant_scope(current_user, tenantId)

    try:
        appointments = scoped_appointments(db, current_user, tenant_id)

        now = datetime.utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        start_of_month = start_of_day.replace(day=1)
        start_of_next_month = start_of_month + relativedelta(months=1)
        start_of_last_month = start_of_month - relativedelta(months=1)

        def count_between(start: datetime, end: datetime) -> int:
            return appointments.filter(
                Appointment.start_time >= start, Appointment.start_time < end
            ).count()

        total_appointments = appointments.count()
        today_appointments = count_between(start_of_day, start_of_day + timedelta(days=1))
        this_month = count_between(start_of_month, start_of_next_month)
        last_month = count_between(start_of_last_month, start_of_month)

        if current_user.role == ROLE_CLIENT:
            total_clients = 1
        else:
            total_clients = (
                db.query(User)
                .filter(User.tenant_id == tenant_id, User.role == ROLE_CLIENT)
                .count()
            )

        total_services = db.query(Service).filter(Service.tenant_id == tenant_id).count()

        recent = (
            appointments.options(
                joinedload(Appointment.client),
                joinedload(Appointment.provider),
                joinedload(Appointment.service),
            )
            .order_by(Appointment.created_at.desc(), Appointment.id.desc())
            .limit(5)
            .all()
        )
    except Exception as e:
        logger.error(f"❌ Error fetching dashboard stats for tenant {tenant_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch dashboard statistics") from e

    return {
        "totalAppointments": total_appointments,
        "todayAppointments": today_appointments,
        "totalClients": total_clients,
        "totalServices": total_services,
        "growthPercentage": growth_percentage(this_month, last_month),
        "thisMonthAppointments": this_month,
        "lastMonthAppointments": last_month,
        "recentActivity": [
            {
                "id": a.id,
                "type": "appointment",
                "title": f"{a.service.name} with {a.client.name}",
                "subtitle": f"Provider: {a.provider.name}",
                "time": a.created_at,
                "status": a.status,
            }
            for a in recent
        ],
    }


# ============================================================================
# ANALYTICS
# ============================================================================

MONTHS_OF_HISTORY = 6
TOP_CLIENTS_LIMIT = 10


def period_bounds(time_range: str, now: datetime) -> tuple[datetime, datetime, datetime, datetime]:
    """
    Current and previous reporting periods as half-open ranges
    (current_start, current_end, previous_start, previous_end).
    Weeks start on Sunday; unknown ranges fall back to the calendar month.
    """
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if time_range == "week":
        start = midnight - timedelta(days=(midnight.weekday() + 1) % 7)
        step = relativedelta(weeks=1)
    elif time_range == "quarter":
        start = midnight.replace(month=(midnight.month - 1) // 3 * 3 + 1, day=1)
        step = relativedelta(months=3)
    elif time_range == "year":
        start = midnight.replace(month=1, day=1)
        step = relativedelta(years=1)
    else:
        start = midnight.replace(day=1)
        step = relativedelta(months=1)

    return start, start + step, start - step, start


def percent_change(current: float, previous: float) -> int:
    """Whole-number growth; 100 when starting from nothing, halves round up"""
    if previous > 0:
        return math.floor((current - previous) / previous * 100 + 0.5)
    return 100 if current > 0 else 0


def paid_revenue(appointments, start: datetime, end: datetime) -> float:
    total = (
        appointments.filter(
            Appointment.start_time >= start,
            Appointment.start_time < end,
            Appointment.payment_status == "PAID",
        )
        .with_entities(func.sum(Appointment.payment_amount))
        .scalar()
    )
    return float(total or 0)


def monthly_history(db: Session, appointments, tenant_id: int, now: datetime) -> list[dict]:
    """Bookings, paid revenue and new clients for the last six calendar months, oldest first"""
    this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    history = []
    for months_back in range(MONTHS_OF_HISTORY - 1, -1, -1):
        start = this_month - relativedelta(months=months_back)
        end = start + relativedelta(months=1)
        new_clients = (
            db.query(User)
            .filter(
                User.tenant_id == tenant_id,
                User.role == ROLE_CLIENT,
                User.created_at >= start,
                User.created_at < end,
            )
            .count()
        )
        history.append(
            {
                "month": start.strftime("%b %Y"),
                "appointments": appointments.filter(
                    Appointment.start_time >= start, Appointment.start_time < end
                ).count(),
                "revenue": paid_revenue(appointments, start, end),
                "newClients": new_clients,
            }
        )
    return history


def service_performance(db: Session, in_period, tenant_id: int) -> list[dict]:
    """Active services ranked by bookings in the period"""
    booked = {
        service_id: (bookings, float(revenue or 0))
        for service_id, bookings, revenue in in_period.with_entities(
            Appointment.service_id,
            func.count(Appointment.id),
            func.sum(Appointment.payment_amount),
        )
        .group_by(Appointment.service_id)
        .all()
    }
    services = (
        db.query(Service)
        .filter(Service.tenant_id == tenant_id, Service.is_active.is_(True))
        .order_by(Service.id)
        .all()
    )
    stats = [
        {
            "serviceName": service.name,
            "bookings": booked.get(service.id, (0, 0.0))[0],
            "revenue": booked.get(service.id, (0, 0.0))[1],
            "avgRating": 0,
        }
        for service in services
    ]
    return sorted(stats, key=lambda s: s["bookings"], reverse=True)


def busiest_hours(in_period) -> list[dict]:
    """Hours of the day that had bookings, busiest first"""
    hours = Counter(start.hour for (start,) in in_period.with_entities(Appointment.start_time).all())
    ranked = sorted(hours.items(), key=lambda item: (-item[1], item[0]))
    return [{"hour": hour, "bookings": bookings} for hour, bookings in ranked]


def top_clients(db: Session, appointments) -> list[dict]:
    rows = (
        appointments.with_entities(
            Appointment.client_id,
            func.count(Appointment.id),
            func.sum(Appointment.payment_amount),
        )
        .group_by(Appointment.client_id)
        .order_by(func.count(Appointment.id).desc(), Appointment.client_id)
        .limit(TOP_CLIENTS_LIMIT)
        .all()
    )
    clients = {
        user.id: user
        for user in db.query(User).filter(User.id.in_([client_id for client_id, _, _ in rows])).all()
    }
    return [
        {
            "name": clients[client_id].name if client_id in clients else "Unknown Client",
            "email": clients[client_id].email if client_id in clients else "",
            "totalAppointments": bookings,
            "totalSpent": float(spent or 0),
        }
        for client_id, bookings, spent in rows
    ]


@router.get("/analytics")
async def get_dashboard_analytics(
    timeRange: str = Query("month"),
    tenantId: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Period report for the dashboard charts.

    Cancelled appointments are left out everywhere. Providers and clients only see
    their own bookings; the top clients list is not shown to clients.
    """
    tenant_id = resolve_tenant_scope(current_user, tenantId)
    now = datetime.utcnow()
    current_start, current_end, previous_start, previous_end = period_bounds(timeRange, now)

    try:
        appointments = scoped_appointments(db, current_user, tenant_id).filter(
            Appointment.status != "CANCELLED"
        )
        in_period = appointments.filter(
            Appointment.start_time >= current_start, Appointment.start_time < current_end
        )

        current_count = in_period.count()
        previous_count = appointments.filter(
            Appointment.start_time >= previous_start, Appointment.start_time < previous_end
        ).count()
        current_revenue = paid_revenue(appointments, current_start, current_end)
        previous_revenue = paid_revenue(appointments, previous_start, previous_end)

        total = appointments.count()
        completed = appointments.filter(Appointment.status == "COMPLETED").count()
        distinct_clients = appointments.with_entities(Appointment.client_id).distinct().count()

        analytics = {
            "overview": {
                "totalAppointments": current_count,
                "totalRevenue": current_revenue,
                "totalClients": distinct_clients,
                "averageRating": 0,
                "appointmentGrowth": percent_change(current_count, previous_count),
                "revenueGrowth": percent_change(current_revenue, previous_revenue),
                "clientGrowth": 0,
                "completionRate": math.floor(completed / total * 100 + 0.5) if total else 0,
            },
            "monthlyStats": monthly_history(db, appointments, tenant_id, now),
            "serviceStats": service_performance(db, in_period, tenant_id),
            "timeSlotStats": busiest_hours(in_period),
            "topClients": [] if current_user.role == ROLE_CLIENT else top_clients(db, appointments),
        }
    except Exception as e:
        logger.error(f"❌ Error building analytics for tenant {tenant_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch analytics") from e

    return analytics
