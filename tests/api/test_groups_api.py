"""Group management and group leaderboards over HTTP."""

from __future__ import annotations

import pytest
import pytest_asyncio

from academy.courses.service import create_course

pytestmark = pytest.mark.asyncio

GROUPS_URL = "/api/v1/admin/groups"


@pytest_asyncio.fixture
async def course(db_session, admin):
    course = await create_course(db_session, admin.id, "Minecraft Modding")
    await db_session.commit()
    return course


async def _group(client, headers, course_id, **extra):
    body = {"title": "Tuesday Crew", "course_id": course_id, "start_date": "2026-09-01", **extra}
    response = await client.post(GROUPS_URL, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_and_list(client, admin, course, auth_headers):
    group = await _group(client, auth_headers(admin), course.id, branch="Downtown")
    assert group["course_title"] == "Minecraft Modding"
    assert group["member_count"] == 0
    assert group["branch"] == "Downtown"

    listed = (await client.get(GROUPS_URL, headers=auth_headers(admin))).json()
    assert [g["id"] for g in listed] == [group["id"]]


async def test_create_for_foreign_course_forbidden(client, course, make_profile, auth_headers):
    outsider = await make_profile(role="admin", name="Outsider")
    body = {"title": "Nope", "course_id": course.id, "start_date": "2026-09-01"}
    response = await client.post(GROUPS_URL, json=body, headers=auth_headers(outsider))
    assert response.status_code == 403


async def test_co_admin_access(client, admin, course, make_profile, auth_headers):
    helper = await make_profile(role="admin", name="Helper")
    outsider = await make_profile(role="admin", name="Outsider")
    group = await _group(client, auth_headers(admin), course.id, allowed_admin_id=helper.id)

    assert (await client.get(f"{GROUPS_URL}/{group['id']}", headers=auth_headers(helper))).status_code == 200
    assert (await client.get(f"{GROUPS_URL}/{group['id']}", headers=auth_headers(outsider))).status_code == 403
    assert (await client.get(f"{GROUPS_URL}/missing", headers=auth_headers(admin))).status_code == 404


async def test_members_and_candidates(client, admin, student, course, make_profile, auth_headers):
    headers = auth_headers(admin)
    await make_profile(name="Sammy Second")
    group = await _group(client, headers, course.id)

    candidates = (await client.get(f"{GROUPS_URL}/{group['id']}/candidates", params={"q": "sam"}, headers=headers)).json()
    assert [c["name"] for c in candidates] == ["Sam Student", "Sammy Second"]

    response = await client.post(f"{GROUPS_URL}/{group['id']}/students", json={"student_id": student.id}, headers=headers)
    assert response.status_code == 201
    assert response.json()["student_course_id"]

    again = await client.post(f"{GROUPS_URL}/{group['id']}/students", json={"student_id": student.id}, headers=headers)
    assert again.status_code == 409

    detail = (await client.get(f"{GROUPS_URL}/{group['id']}", headers=headers)).json()
    assert detail["member_count"] == 1
    assert [(m["name"], m["remaining_sessions"]) for m in detail["members"]] == [("Sam Student", 0)]

    candidates = (await client.get(f"{GROUPS_URL}/{group['id']}/candidates", params={"q": "sam"}, headers=headers)).json()
    assert [c["name"] for c in candidates] == ["Sammy Second"]

    # Joining a group enrolls the student in the group's course
    courses = (await client.get(f"/api/v1/admin/courses/{course.id}/students", headers=headers)).json()
    assert [c["student_id"] for c in courses] == [student.id]

    response = await client.delete(f"{GROUPS_URL}/{group['id']}/students/{student.id}", headers=headers)
    assert response.status_code == 204
    detail = (await client.get(f"{GROUPS_URL}/{group['id']}", headers=headers)).json()
    assert detail["members"] == []


async def test_leaderboard_and_ranks(client, admin, course, make_profile, auth_headers):
    headers = auth_headers(admin)
    group = await _group(client, headers, course.id)
    ana = await make_profile(name="Ana")
    bo = await make_profile(name="Bo")
    for s in (ana, bo):
        await client.post(f"{GROUPS_URL}/{group['id']}/students", json={"student_id": s.id}, headers=headers)

    response = await client.post(
        f"{GROUPS_URL}/{group['id']}/points", json={"student_id": bo.id, "points": 4}, headers=headers
    )
    assert response.json() == {"student_id": bo.id, "group_id": group["id"], "group_points": 4}

    board = (await client.get(f"{GROUPS_URL}/{group['id']}/leaderboard", headers=headers)).json()
    assert [(e["rank"], e["name"], e["points"]) for e in board] == [(1, "Bo", 4), (2, "Ana", 0)]

    ranks = (await client.get("/api/v1/me/group-ranks", headers=auth_headers(ana))).json()
    assert [(r["group_title"], r["rank"], r["total_students"]) for r in ranks] == [("Tuesday Crew", 2, 2)]

    top = (await client.get("/api/v1/leaderboard/top", headers=auth_headers(ana))).json()
    assert top[0]["name"] == "Bo"
    assert top[0]["points"] == 4


async def test_points_must_be_positive(client, admin, student, course, auth_headers):
    headers = auth_headers(admin)
    group = await _group(client, headers, course.id)
    response = await client.post(
        f"{GROUPS_URL}/{group['id']}/points", json={"student_id": student.id, "points": 0}, headers=headers
    )
    assert response.status_code == 422

    response = await client.post(
        f"{GROUPS_URL}/{group['id']}/points", json={"student_id": student.id, "points": 2}, headers=headers
    )
    assert response.status_code == 404
