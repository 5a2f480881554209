from datetime import datetime, timedelta

import pytest
from conftest import auth, make_appointment, make_user

from appointmenthub.models import ROLE_CLIENT, ROLE_PROVIDER
from appointmenthub.routes.dashboard import growth_percentage, percent_change, period_bounds


@pytest.mark.parametrize(
    "this_month, last_month, expected",
    [
        (15, 10, "50.0%"),
        (5, 10, "-50.0%"),
        (10, 10, "0.0%"),
        (3, 0, "100.0%"),
        (0, 0, "0.0%"),
        (1, 3, "-66.7%"),
    ],
)
def test_growth_percentage(this_month, last_month, expected):
    assert growth_percentage(this_month, last_month) == expected


@pytest.fixture
def history(db, seed):
    """One booking today and two in the previous month"""
    now = datetime.utcnow()
    start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    today = make_appointment(db, seed, now.replace(second=0, microsecond=0))
    make_appointment(db, seed, start_of_month - timedelta(days=3), status="COMPLETED")
    make_appointment(db, seed, start_of_month - timedelta(days=2), status="NO_SHOW")
    return today


def test_admin_stats(client, db, seed, history):
    body = client.get("/api/dashboard/stats", headers=auth(seed.admin)).json()

    assert body["totalAppointments"] == 3
    assert body["todayAppointments"] == 1
    assert body["thisMonthAppointments"] == 1
    assert body["lastMonthAppointments"] == 2
    assert body["growthPercentage"] == "-50.0%"
    assert body["totalClients"] == 1
    assert body["totalServices"] == 1

    assert len(body["recentActivity"]) == 3
    activity = next(a for a in body["recentActivity"] if a["id"] == history.id)
    assert activity["type"] == "appointment"
    assert activity["title"] == "Haircut with Cora Client"
    assert activity["subtitle"] == "Provider: Pat Provider"


def test_recent_activity_is_capped_at_five(client, db, seed):
    for day in range(7):
        make_appointment(db, seed, datetime.utcnow() + timedelta(days=day + 1))

    body = client.get("/api/dashboard/stats", headers=auth(seed.admin)).json()
    assert len(body["recentActivity"]) == 5


def test_provider_sees_own_calendar_only(client, db, seed, history):
    colleague = make_user(db, seed.tenant, ROLE_PROVIDER, "sam@acme.example.com")

    body = client.get("/api/dashboard/stats", headers=auth(colleague)).json()

    assert body["totalAppointments"] == 0
    assert body["growthPercentage"] == "0.0%"
    assert body["totalClients"] == 1


def test_client_stats(client, db, seed, history):
    other = make_user(db, seed.tenant, ROLE_CLIENT, "max@acme.example.com")

    mine = client.get("/api/dashboard/stats", headers=auth(seed.client)).json()
    theirs = client.get("/api/dashboard/stats", headers=auth(other)).json()

    assert mine["totalAppointments"] == 3
    assert mine["totalClients"] == 1
    assert theirs["totalAppointments"] == 0
    assert theirs["recentActivity"] == []


def test_admin_may_look_at_another_tenant(client, db, seed, other_seed, history):
    body = client.get(
        "/api/dashboard/stats", headers=auth(seed.admin), params={"tenantId": other_seed.tenant.id}
    ).json()

    assert body["totalAppointments"] == 0
    assert body["totalServices"] == 1


def test_stats_need_login(client, seed):
    assert client.get("/api/dashboard/stats").status_code == 401


# ============================================================================
# ANALYTICS
# ============================================================================


@pytest.mark.parametrize(
    "time_range, expected",
    [
        ("week", ("2025-05-11", "2025-05-18", "2025-05-04", "2025-05-11")),
        ("month", ("2025-05-01", "2025-06-01", "2025-04-01", "2025-05-01")),
        ("quarter", ("2025-04-01", "2025-07-01", "2025-01-01", "2025-04-01")),
        ("year", ("2025-01-01", "2026-01-01", "2024-01-01", "2025-01-01")),
        ("fortnight", ("2025-05-01", "2025-06-01", "2025-04-01", "2025-05-01")),
    ],
)
def test_period_bounds(time_range, expected):
    # Wednesday
    now = datetime(2025, 5, 14, 15, 30)
    assert tuple(d.date().isoformat() for d in period_bounds(time_range, now)) == expected


@pytest.mark.parametrize(
    "current, previous, expected",
    [(3, 2, 50), (1, 3, -67), (100.0, 40.0, 150), (5, 0, 100), (0, 0, 0), (1, 8, -87)],
)
def test_percent_change(current, previous, expected):
    assert percent_change(current, previous) == expected


@pytest.fixture
def bookings(db, seed):
    """Two paid bookings this month, one cancelled, one paid booking last month"""
    start_of_month = datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    paid = {"payment_status": "PAID", "payment_method": "ONLINE"}
    make_appointment(db, seed, start_of_month + timedelta(hours=10), payment_amount=50.0, **paid)
    make_appointment(
        db, seed, start_of_month + timedelta(hours=14), status="COMPLETED", payment_amount=50.0, **paid
    )
    make_appointment(db, seed, start_of_month + timedelta(hours=10), status="CANCELLED", payment_amount=50.0)
    make_appointment(
        db,
        seed,
        start_of_month - timedelta(days=3) + timedelta(hours=9),
        status="COMPLETED",
        payment_amount=40.0,
        **paid,
    )
    return start_of_month


def test_admin_analytics(client, db, seed, bookings):
    body = client.get("/api/dashboard/analytics", headers=auth(seed.admin)).json()

    assert body["overview"] == {
        "totalAppointments": 2,
        "totalRevenue": 100.0,
        "totalClients": 1,
        "averageRating": 0,
        "appointmentGrowth": 100,
        "revenueGrowth": 150,
        "clientGrowth": 0,
        "completionRate": 67,
    }

    months = body["monthlyStats"]
    assert len(months) == 6
    assert months[-1]["month"] == bookings.strftime("%b %Y")
    assert months[-1]["appointments"] == 2
    assert months[-1]["revenue"] == 100.0
    assert months[-2]["appointments"] == 1
    assert months[-2]["revenue"] == 40.0

    assert body["serviceStats"] == [{"serviceName": "Haircut", "bookings": 2, "revenue": 100.0, "avgRating": 0}]
    assert body["timeSlotStats"] == [{"hour": 10, "bookings": 1}, {"hour": 14, "bookings": 1}]
    assert body["topClients"] == [
        {"name": "Cora Client", "email": "cora@acme.example.com", "totalAppointments": 3, "totalSpent": 140.0}
    ]


def test_client_analytics_hide_top_clients(client, db, seed, bookings):
    mine = client.get("/api/dashboard/analytics", headers=auth(seed.client)).json()
    other = make_user(db, seed.tenant, ROLE_CLIENT, "max@acme.example.com")
    theirs = client.get("/api/dashboard/analytics", headers=auth(other)).json()

    assert mine["overview"]["totalAppointments"] == 2
    assert mine["topClients"] == []
    assert theirs["overview"]["totalAppointments"] == 0
    assert theirs["overview"]["completionRate"] == 0


def test_provider_analytics_only_cover_own_bookings(client, db, seed, bookings):
    colleague = make_user(db, seed.tenant, ROLE_PROVIDER, "sam@acme.example.com")

    body = client.get("/api/dashboard/analytics", headers=auth(colleague)).json()

    assert body["overview"]["totalAppointments"] == 0
    assert body["serviceStats"][0]["bookings"] == 0
    assert body["timeSlotStats"] == []
    assert body["topClients"] == []


def test_yearly_analytics_and_admin_tenant_override(client, db, seed, other_seed, bookings):
    year = client.get("/api/dashboard/analytics", headers=auth(seed.admin), params={"timeRange": "year"}).json()
    elsewhere = client.get(
        "/api/dashboard/analytics", headers=auth(seed.admin), params={"tenantId": other_seed.tenant.id}
    ).json()

    expected = 3 if bookings.month > 1 else 2
    assert year["overview"]["totalAppointments"] == expected
    assert elsewhere["overview"]["totalAppointments"] == 0
    assert elsewhere["serviceStats"][0]["bookings"] == 0


def test_analytics_need_login(client, seed):
    assert client.get("/api/dashboard/analytics").status_code == 401
