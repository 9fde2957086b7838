"""Certificate issuing, visibility and PDF download."""

from __future__ import annotations

from datetime import date

import pytest

pytestmark = pytest.mark.asyncio

ADMIN_URL = "/api/v1/admin/certificates"


def _body(unique_id: str = "sam00001", **overrides) -> dict:
    return {
        "student_name": "Sam Student",
        "student_unique_id": unique_id,
        "course_name": "Python",
        "description": "loops and functions",
        "start_date": "2026-01-10",
        "end_date": "2026-06-20",
        **overrides,
    }


async def _issue(client, headers, **overrides):
    response = await client.post(ADMIN_URL, json=_body(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_issue_certificate(client, admin, student, auth_headers):
    data = await _issue(client, auth_headers(admin))
    assert data["student_unique_id"] == "SAM00001"
    assert data["certificate_text"] == (
        "For completing Python Course with focus on loops and functions, from 2026-01-10 until 2026-06-20"
    )
    assert data["certificate_date"] == date.today().isoformat()
    assert data["is_visible"] is True
    assert data["download_count"] == 0

    inbox = (await client.get("/api/v1/notifications", headers=auth_headers(student))).json()
    assert [n["notification_type"] for n in inbox["notifications"]] == ["certificate"]


async def test_end_before_start_rejected(client, admin, auth_headers):
    response = await client.post(ADMIN_URL, json=_body(end_date="2025-12-31"), headers=auth_headers(admin))
    assert response.status_code == 400


async def test_issue_for_unknown_unique_id(client, admin, auth_headers):
    data = await _issue(client, auth_headers(admin), unique_id="GHOST123")
    listed = (await client.get(ADMIN_URL, headers=auth_headers(admin))).json()
    assert [c["id"] for c in listed] == [data["id"]]


async def test_student_sees_only_visible(client, admin, student, auth_headers):
    issued = await _issue(client, auth_headers(admin))
    await _issue(client, auth_headers(admin), unique_id="OTHER999")

    mine = (await client.get("/api/v1/me/certificates", headers=auth_headers(student))).json()
    assert [c["id"] for c in mine] == [issued["id"]]

    response = await client.patch(
        f"{ADMIN_URL}/{issued['certificate_id']}", json={"is_visible": False}, headers=auth_headers(admin)
    )
    assert response.json() == {"id": issued["certificate_id"], "is_visible": False}

    mine = (await client.get("/api/v1/me/certificates", headers=auth_headers(student))).json()
    assert mine == []
    response = await client.get(f"/api/v1/me/certificates/{issued['id']}/download", headers=auth_headers(student))
    assert response.status_code == 404


async def test_download_pdf(client, admin, student, auth_headers):
    issued = await _issue(client, auth_headers(admin))

    response = await client.get(f"/api/v1/me/certificates/{issued['id']}/download", headers=auth_headers(student))
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == 'attachment; filename="Sam_Student_Python_Certificate.pdf"'
    assert response.content.startswith(b"%PDF")

    mine = (await client.get("/api/v1/me/certificates", headers=auth_headers(student))).json()
    assert mine[0]["download_count"] == 1


async def test_cannot_download_someone_elses(client, admin, make_profile, auth_headers):
    issued = await _issue(client, auth_headers(admin))
    other = await make_profile(name="Other Kid")
    response = await client.get(f"/api/v1/me/certificates/{issued['id']}/download", headers=auth_headers(other))
    assert response.status_code == 404


async def test_unknown_certificate_visibility(client, admin, auth_headers):
    response = await client.patch(f"{ADMIN_URL}/missing", json={"is_visible": True}, headers=auth_headers(admin))
    assert response.status_code == 404
