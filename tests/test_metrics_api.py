from datetime import timedelta

import pytest

from insurance_crm.models.user import UserRole
from insurance_crm.services.metrics import MetricsService, dashboard_category
from insurance_crm.services.customer_lifecycle import CustomerLifecycleService


@pytest.fixture()
def supervisor(make_user):
    return make_user(username="super", role=UserRole.SUPERVISOR)


def test_dashboard_categories():
    assert dashboard_category("active") == "COMPLETED"
    assert dashboard_category("renewed") == "COMPLETED"
    assert dashboard_category("not_interested") == "IN_PROGRESS"
    assert dashboard_category("follow_up") == "IN_PROGRESS"
    assert dashboard_category("not_reachable") == "IN_PROGRESS"
    assert dashboard_category("not_started") == "NOT_STARTED"
    assert dashboard_category(None) == "NOT_STARTED"


def test_overview(client, supervisor, make_user, make_customer, auth_headers):
    agent = make_user(state="Karnataka")
    make_customer(state="Karnataka", customer_status="renewed")
    make_customer(state="Karnataka", customer_status="follow_up", assigned_to=agent.id)
    make_customer(state="TamilNadu")
    done = make_customer(state="TamilNadu", assigned_to=agent.id)
    client.patch(f"/api/mobile/customers/{done.id}/status", json={"status": "active"}, headers=auth_headers(agent))

    r = client.get("/api/admin/metrics/overview", headers=auth_headers(supervisor))

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["total_customers"] == 4
    assert data["status_breakdown"] == [
        {"status": "COMPLETED", "count": 2},
        {"status": "IN_PROGRESS", "count": 1},
        {"status": "NOT_STARTED", "count": 1},
    ]
    assert data["states_summary"] == [
        {"state": "Karnataka", "total": 2, "assigned": 1, "closed": 1},
        {"state": "TamilNadu", "total": 2, "assigned": 0, "closed": 1},
    ]
    assert data["top_users"][0]["user_id"] == agent.id
    assert data["top_users"][0]["completed"] == 1


def test_metrics_require_supervisor(client, make_user, auth_headers):
    r = client.get("/api/admin/metrics/overview", headers=auth_headers(make_user()))
    assert r.status_code == 403


def test_states_and_state_metrics(client, supervisor, make_customer, auth_headers):
    make_customer(state="TamilNadu")
    make_customer(state="Karnataka", customer_status="active")
    make_customer(state="Karnataka")
    headers = auth_headers(supervisor)

    states = client.get("/api/admin/metrics/states", headers=headers).json()["data"]
    karnataka = client.get("/api/admin/metrics/state?state=karnataka", headers=headers).json()["data"]

    assert states == ["Karnataka", "TamilNadu"]
    assert karnataka["total_customers"] == 2
    assert {"status": "COMPLETED", "count": 1} in karnataka["status_breakdown"]


def test_blank_state_is_rejected(client, supervisor, make_customer, auth_headers):
    make_customer(state="Karnataka")
    make_customer(state="Kerala")

    r = client.get("/api/admin/metrics/state?state=%20%20%20", headers=auth_headers(supervisor))

    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Invalid state"}


def test_daily_fills_missing_days(db, make_user, make_customer, clock):
    agent = make_user()
    lifecycle = CustomerLifecycleService(db, clock=clock)
    first = make_customer(assigned_to=agent.id)
    second = make_customer(assigned_to=agent.id)
    assert lifecycle.update_status(first.id, agent.id, "renewed").success
    clock.advance(timedelta(days=-2))
    assert lifecycle.update_status(second.id, agent.id, "not_reachable").success
    clock.advance(timedelta(days=2))

    days = MetricsService(db, clock=clock).daily(3)

    assert days == [
        {"date": "2025-05-30", "count": 1, "closed": 0, "open": 1},
        {"date": "2025-05-31", "count": 0, "closed": 0, "open": 0},
        {"date": "2025-06-01", "count": 1, "closed": 1, "open": 0},
    ]


def test_daily_endpoint_validates_days(client, supervisor, auth_headers):
    headers = auth_headers(supervisor)
    assert len(client.get("/api/admin/metrics/daily?days=5", headers=headers).json()["data"]) == 5
    assert client.get("/api/admin/metrics/daily?days=0", headers=headers).status_code == 400


def test_health_and_root(client):
    health = client.get("/api/health")
    root = client.get("/")

    assert health.status_code == 200
    assert health.json()["database"] == "connected"
    assert root.json()["health"] == "/api/health"
