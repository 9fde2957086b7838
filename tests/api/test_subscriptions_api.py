"""Admin ledger endpoints and the student's own balance."""

from __future__ import annotations

import pytest
import pytest_asyncio

from academy.courses.service import create_course
from academy.enrollment.service import enroll

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def enrolled(db_session, admin, student):
    for title in ("Python", "Scratch"):
        course = await create_course(db_session, admin.id, title)
        await enroll(db_session, student, course, admin.id)
    await db_session.commit()
    return student


def _url(student_id: str, action: str = "") -> str:
    base = f"/api/v1/admin/students/{student_id}/subscription"
    return f"{base}/{action}" if action else base


async def test_no_subscription_yet(client, enrolled, auth_headers):
    response = await client.get("/api/v1/me/subscription", headers=auth_headers(enrolled))
    assert response.status_code == 200
    assert response.json()["has_subscription"] is False
    assert response.json()["status"] == "none"


async def test_create_plan(client, admin, enrolled, auth_headers):
    response = await client.post(_url(enrolled.id), json={"plan_duration_months": 2}, headers=auth_headers(admin))
    assert response.status_code == 201
    data = response.json()
    assert (data["total_sessions"], data["remaining_sessions"], data["plan_duration_months"]) == (8, 8, 2)
    assert data["status"] == "active"

    mine = (await client.get("/api/v1/me/subscription", headers=auth_headers(enrolled))).json()
    assert mine == data

    again = await client.post(_url(enrolled.id), json={"plan_duration_months": 1}, headers=auth_headers(admin))
    assert again.status_code == 409


async def test_create_plan_validates_months(client, admin, enrolled, auth_headers):
    response = await client.post(_url(enrolled.id), json={"plan_duration_months": 0}, headers=auth_headers(admin))
    assert response.status_code == 422


async def test_create_plan_requires_enrollment(client, admin, make_profile, auth_headers):
    loner = await make_profile(name="Lonely Lu")
    response = await client.post(_url(loner.id), json={"plan_duration_months": 1}, headers=auth_headers(admin))
    assert response.status_code == 400


async def test_adjust_refill_consume(client, admin, enrolled, auth_headers):
    headers = auth_headers(admin)
    await client.post(_url(enrolled.id), json={"plan_duration_months": 1}, headers=headers)

    data = (
        await client.post(_url(enrolled.id, "adjust"), json={"action": "remove", "sessions": 2}, headers=headers)
    ).json()
    assert (data["total_sessions"], data["remaining_sessions"], data["status"], data["warning"]) == (2, 2, "low", True)

    data = (await client.post(_url(enrolled.id, "refill"), json={"sessions": 6}, headers=headers)).json()
    assert (data["total_sessions"], data["remaining_sessions"], data["plan_duration_months"]) == (8, 8, 2)

    data = (await client.post(_url(enrolled.id, "consume"), headers=headers)).json()
    assert (data["used_sessions"], data["remaining_sessions"], data["usage_percent"]) == (1, 7, 12.5)


async def test_consume_with_nothing_left(client, admin, enrolled, auth_headers):
    headers = auth_headers(admin)
    await client.post(_url(enrolled.id, "adjust"), json={"action": "add", "sessions": 1}, headers=headers)
    await client.post(_url(enrolled.id, "consume"), headers=headers)

    response = await client.post(_url(enrolled.id, "consume"), headers=headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "No remaining sessions"

    mine = (await client.get("/api/v1/me/subscription", headers=auth_headers(enrolled))).json()
    assert mine["status"] == "expired"


async def test_adjust_rejects_unknown_action(client, admin, enrolled, auth_headers):
    response = await client.post(
        _url(enrolled.id, "adjust"), json={"action": "double", "sessions": 1}, headers=auth_headers(admin)
    )
    assert response.status_code == 422


async def test_students_cannot_manage_balances(client, enrolled, auth_headers):
    response = await client.post(_url(enrolled.id, "refill"), json={"sessions": 5}, headers=auth_headers(enrolled))
    assert response.status_code == 403


async def test_deduplicate_endpoint(client, admin, auth_headers):
    response = await client.post("/api/v1/admin/subscriptions/deduplicate", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json() == {"removed": 0}


async def test_low_session_alerts(client, admin, enrolled, auth_headers):
    headers = auth_headers(admin)
    await client.post(_url(enrolled.id, "adjust"), json={"action": "add", "sessions": 1}, headers=headers)

    assert (await client.get("/api/v1/admin/low-session-alerts", headers=headers)).json() == []

    response = await client.post("/api/v1/admin/low-session-alerts/refresh", headers=headers)
    assert response.status_code == 200
    alerts = response.json()
    assert [(a["student_unique_id"], a["remaining_sessions"]) for a in alerts] == [("SAM00001", 1)]

    listed = (await client.get("/api/v1/admin/low-session-alerts", headers=headers)).json()
    assert [a["student_id"] for a in listed] == [enrolled.id]
