"""Tests for registration, authentication and profiles."""

import uuid

from sqlalchemy import func, select

from complaintdesk.accounts.infrastructure import ProfileModel, UserRoleModel
from complaintdesk.config import AppRole
from complaintdesk.infrastructure.database import get_session_context

from conftest import TEST_WEBHOOK_SECRET, auth_headers, make_token

WEBHOOK_HEADERS = {"X-Auth-Webhook-Secret": TEST_WEBHOOK_SECRET}


async def _row_counts(user_id: uuid.UUID):
    async with get_session_context() as session:
        profiles = (await session.execute(
            select(func.count(ProfileModel.id)).where(ProfileModel.id == user_id)
        )).scalar_one()
        roles = (await session.execute(
            select(UserRoleModel.role).where(UserRoleModel.user_id == user_id)
        )).scalars().all()
    return profiles, roles


class TestRegistration:
    async def test_creates_profile_and_student_role(self, client):
        user_id = uuid.uuid4()

        response = await client.post("/accounts/register", json={
            "id": str(user_id),
            "email": "meera@example.com",
            "name": "Meera Das",
        }, headers=WEBHOOK_HEADERS)

        assert response.status_code == 201
        assert response.json()["name"] == "Meera Das"
        profiles, roles = await _row_counts(user_id)
        assert profiles == 1
        assert roles == [AppRole.STUDENT]

    async def test_name_defaults_to_user(self, client):
        response = await client.post("/accounts/register", json={
            "id": str(uuid.uuid4()),
            "email": "anon@example.com",
        }, headers=WEBHOOK_HEADERS)

        assert response.json()["name"] == "User"

    async def test_duplicate_registration_conflicts(self, client):
        payload = {"id": str(uuid.uuid4()), "email": "twice@example.com", "name": "Twice"}

        first = await client.post("/accounts/register", json=payload, headers=WEBHOOK_HEADERS)
        second = await client.post("/accounts/register", json=payload, headers=WEBHOOK_HEADERS)

        assert first.status_code == 201
        assert second.status_code == 409
        profiles, roles = await _row_counts(uuid.UUID(payload["id"]))
        assert profiles == 1
        assert len(roles) == 1

    async def test_duplicate_email_conflicts(self, client, student):
        response = await client.post("/accounts/register", json={
            "id": str(uuid.uuid4()),
            "email": student.email,
        }, headers=WEBHOOK_HEADERS)

        assert response.status_code == 409

    async def test_wrong_webhook_secret(self, client):
        response = await client.post("/accounts/register", json={
            "id": str(uuid.uuid4()),
            "email": "sneaky@example.com",
        }, headers={"X-Auth-Webhook-Secret": "guess"})

        assert response.status_code == 401

    async def test_missing_webhook_secret(self, client):
        response = await client.post("/accounts/register", json={
            "id": str(uuid.uuid4()),
            "email": "sneaky@example.com",
        })

        assert response.status_code == 401


class TestAuthentication:
    async def test_me_returns_profile_and_roles(self, client, admin):
        response = await client.get("/accounts/me", headers=admin.headers)

        assert response.status_code == 200
        assert response.json()["profile"]["email"] == "admin@example.com"
        assert response.json()["roles"] == ["admin", "student"]

    async def test_missing_token(self, client):
        response = await client.get("/accounts/me")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_expired_token(self, client, student):
        token = make_token(student.user_id, email=student.email, expires_in=-60)

        response = await client.get("/accounts/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    async def test_wrong_audience(self, client, student):
        token = make_token(student.user_id, email=student.email, audience="anon")

        response = await client.get("/accounts/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    async def test_unregistered_without_email_is_forbidden(self, client):
        response = await client.get("/accounts/me", headers=auth_headers(uuid.uuid4()))

        assert response.status_code == 403

    async def test_unregistered_with_provisioning_disabled(self, client, monkeypatch):
        from complaintdesk.config import settings

        monkeypatch.setattr(settings, "auto_provision_accounts", False)

        response = await client.get(
            "/accounts/me",
            headers=auth_headers(uuid.uuid4(), email="late@example.com")
        )

        assert response.status_code == 403

    async def test_first_request_provisions_account(self, client):
        user_id = uuid.uuid4()

        response = await client.get(
            "/accounts/me",
            headers=auth_headers(user_id, email="fresh@example.com", name="Fresh Face")
        )

        assert response.status_code == 200
        assert response.json()["profile"]["name"] == "Fresh Face"
        profiles, roles = await _row_counts(user_id)
        assert profiles == 1
        assert roles == [AppRole.STUDENT]

    async def test_roles_come_from_database_not_token(self, client, student):
        token = make_token(student.user_id, email=student.email)

        response = await client.get("/admin/complaints", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403


class TestProfiles:
    async def test_owner_reads_own_profile(self, client, student):
        response = await client.get(f"/accounts/profiles/{student.user_id}", headers=student.headers)

        assert response.status_code == 200
        assert response.json()["name"] == "Asha Nair"

    async def test_admin_reads_any_profile(self, client, student, admin):
        response = await client.get(f"/accounts/profiles/{student.user_id}", headers=admin.headers)

        assert response.status_code == 200

    async def test_other_student_gets_not_found(self, client, student, other_student):
        response = await client.get(f"/accounts/profiles/{student.user_id}", headers=other_student.headers)

        assert response.status_code == 404

    async def test_owner_renames(self, client, student):
        response = await client.patch(
            f"/accounts/profiles/{student.user_id}",
            json={"name": "  Asha N.  "},
            headers=student.headers
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Asha N."

    async def test_blank_name_rejected(self, client, student):
        response = await client.patch(
            f"/accounts/profiles/{student.user_id}",
            json={"name": "   "},
            headers=student.headers
        )

        assert response.status_code == 422

    async def test_other_student_cannot_rename(self, client, student, other_student):
        response = await client.patch(
            f"/accounts/profiles/{student.user_id}",
            json={"name": "Hijacked"},
            headers=other_student.headers
        )

        assert response.status_code == 404


class TestGrantRole:
    async def test_grant_is_idempotent(self, student):
        from complaintdesk.accounts.interfaces import build_account_service

        async with get_session_context() as session:
            service = build_account_service(session)
            assert await service.grant_role(student.user_id, AppRole.ADMIN) is True
            assert await service.grant_role(student.user_id, AppRole.ADMIN) is False
            assert await service.list_roles(student.user_id) == {AppRole.STUDENT, AppRole.ADMIN}
