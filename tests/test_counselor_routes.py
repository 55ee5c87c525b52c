# tests/test_counselor_routes.py
"""Tests for counselor assignments and coverage grants."""
from datetime import timedelta

import pytest
from sqlalchemy import select

from counselor_api.data.database import utcnow
from counselor_api.models.database_models.counselor_assignment import CounselorAssignment


@pytest.fixture
async def people(make_user):
    return {
        "admin": await make_user("admin", is_admin=True),
        "member": await make_user("member"),
        "counselor": await make_user("counselor"),
        "other_counselor": await make_user("other_counselor"),
    }


async def assign(client, auth_headers, people, counselor, organization_id="org-1"):
    return await client.post(
        "/api/counselors/assignments",
        json={"organizationId": organization_id, "counselorId": counselor.id, "memberId": people["member"].id},
        headers=auth_headers(people["admin"]),
    )


class TestAssignments:
    async def test_admin_assigns_counselor(self, client, auth_headers, people):
        response = await assign(client, auth_headers, people, people["counselor"])
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "active"
        assert body["counselorId"] == people["counselor"].id

    async def test_reassignment_ends_previous_assignment(self, client, auth_headers, people, session_factory):
        first = await assign(client, auth_headers, people, people["counselor"])
        second = await assign(client, auth_headers, people, people["other_counselor"])
        assert second.status_code == 201

        async with session_factory() as db:
            rows = (await db.execute(select(CounselorAssignment).order_by(CounselorAssignment.id))).scalars().all()
        assert [(r.id, r.status) for r in rows] == [(first.json()["id"], "inactive"), (second.json()["id"], "active")]
        assert rows[0].ended_at is not None

    async def test_same_triple_twice_keeps_one_active_row(self, client, auth_headers, people, session_factory):
        await assign(client, auth_headers, people, people["counselor"])
        response = await assign(client, auth_headers, people, people["counselor"])
        assert response.status_code == 201

        async with session_factory() as db:
            active = (await db.execute(
                select(CounselorAssignment).where(CounselorAssignment.status == "active")
            )).scalars().all()
        assert len(active) == 1

    async def test_other_organization_is_independent(self, client, auth_headers, people, session_factory):
        await assign(client, auth_headers, people, people["counselor"], "org-1")
        await assign(client, auth_headers, people, people["other_counselor"], "org-2")
        async with session_factory() as db:
            active = (await db.execute(
                select(CounselorAssignment).where(CounselorAssignment.status == "active")
            )).scalars().all()
        assert len(active) == 2

    async def test_end_assignment(self, client, auth_headers, people):
        created = await assign(client, auth_headers, people, people["counselor"])
        response = await client.delete(f"/api/counselors/assignments/{created.json()['id']}",
                                       headers=auth_headers(people["admin"]))
        assert response.status_code == 200
        assert response.json()["status"] == "inactive"
        assert response.json()["endedAt"] is not None

    async def test_non_admin_is_forbidden(self, client, auth_headers, people):
        response = await client.post(
            "/api/counselors/assignments",
            json={"organizationId": "org-1", "counselorId": people["counselor"].id, "memberId": people["member"].id},
            headers=auth_headers(people["counselor"]),
        )
        assert response.status_code == 403

    async def test_self_assignment_and_unknown_users(self, client, auth_headers, people):
        headers = auth_headers(people["admin"])
        response = await client.post(
            "/api/counselors/assignments",
            json={"organizationId": "org-1", "counselorId": people["member"].id, "memberId": people["member"].id},
            headers=headers,
        )
        assert response.status_code == 400
        response = await client.post(
            "/api/counselors/assignments",
            json={"organizationId": "org-1", "counselorId": 999, "memberId": people["member"].id},
            headers=headers,
        )
        assert response.status_code == 404


class TestCoverageGrants:
    async def test_grant_then_revoke(self, client, auth_headers, people):
        headers = auth_headers(people["admin"])
        response = await client.post(
            "/api/counselors/coverage-grants",
            json={"backupCounselorId": people["other_counselor"].id, "memberId": people["member"].id,
                  "expiresAt": (utcnow() + timedelta(days=3)).isoformat()},
            headers=headers,
        )
        assert response.status_code == 201
        grant = response.json()
        assert grant["revokedAt"] is None

        members = await client.get("/api/counselors/members", headers=auth_headers(people["other_counselor"]))
        assert [g["id"] for g in members.json()["coverageGrants"]] == [grant["id"]]

        response = await client.delete(f"/api/counselors/coverage-grants/{grant['id']}", headers=headers)
        assert response.status_code == 200
        assert response.json()["revokedAt"] is not None

        members = await client.get("/api/counselors/members", headers=auth_headers(people["other_counselor"]))
        assert members.json()["coverageGrants"] == []

    async def test_members_lists_active_assignments(self, client, auth_headers, people):
        await assign(client, auth_headers, people, people["counselor"])
        response = await client.get("/api/counselors/members", headers=auth_headers(people["counselor"]))
        assert response.status_code == 200
        assert [a["memberId"] for a in response.json()["assignments"]] == [people["member"].id]

        response = await client.get("/api/counselors/members", params={"organization_id": "org-2"},
                                    headers=auth_headers(people["counselor"]))
        assert response.json()["assignments"] == []

    async def test_unknown_grant(self, client, auth_headers, people):
        response = await client.delete("/api/counselors/coverage-grants/999", headers=auth_headers(people["admin"]))
        assert response.status_code == 404
