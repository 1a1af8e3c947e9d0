"""Integration tests for the student complaint routes."""

import re
import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from complaintdesk.complaints.infrastructure import ComplaintModel
from complaintdesk.config import ComplaintStatus
from complaintdesk.core import (
    LLMConfigurationException,
    LLMException,
    LLMQuotaException,
    LLMRateLimitException,
    MalformedLLMResponseException,
)
from complaintdesk.infrastructure.database import get_session_context

from conftest import analysis, auth_headers

PROJECTOR_COMPLAINT = {
    "title": "Broken projector in Lab 3",
    "description": "Projector has no signal!!",
    "category": "Facilities",
}


async def _complaint_count() -> int:
    async with get_session_context() as session:
        return (await session.execute(select(func.count(ComplaintModel.id)))).scalar_one()


async def _set_status(complaint_id: str, status: ComplaintStatus) -> None:
    async with get_session_context() as session:
        model = await session.get(ComplaintModel, uuid.UUID(complaint_id))
        model.status = status


class TestSubmitComplaint:
    async def test_projector_scenario(self, client, student, stub_llm):
        stub_llm.arguments = analysis("Facilities", "Medium", 0.7, "We will send a technician.")

        response = await client.post("/complaints", json=PROJECTOR_COMPLAINT, headers=student.headers)

        assert response.status_code == 201
        body = response.json()
        year = datetime.now(timezone.utc).year
        assert re.fullmatch(rf"CMP-{year}-\d{{3,}}", body["complaint_id"])
        assert body["status"] == "Pending"
        assert body["priority"] == "Medium"
        assert body["ai_priority_score"] == 0.7
        assert body["ai_suggested_category"] == "Facilities"
        assert body["ai_suggested_response"] == "We will send a technician."
        assert body["student_id"] == str(student.user_id)
        assert body["admin_response"] is None

    async def test_high_priority_stored(self, client, student, stub_llm):
        stub_llm.arguments = analysis("Infrastructure", "High", 0.9)

        response = await client.post("/complaints", json={
            "title": "Exposed wiring near the lab door",
            "description": "There are live wires hanging near the entrance of Lab 2.",
            "category": "Infrastructure",
        }, headers=student.headers)

        assert response.status_code == 201
        assert response.json()["priority"] == "High"
        assert response.json()["ai_priority_score"] == 0.9

    async def test_validation_errors_reported_together(self, client, student, stub_llm):
        response = await client.post("/complaints", json={
            "title": "Hi",
            "description": "Too short",
            "category": "",
        }, headers=student.headers)

        assert response.status_code == 422
        errors = response.json()["detail"]["errors"]
        assert errors == {
            "title": "Title must be at least 5 characters",
            "description": "Description must be at least 20 characters",
            "category": "Please select a category",
        }
        assert stub_llm.calls == []
        assert await _complaint_count() == 0

    @pytest.mark.parametrize("error,status_code", [
        (LLMRateLimitException("Rate limit exceeded", retry_after=2.5), 429),
        (LLMQuotaException("AI service requires payment"), 402),
        (LLMConfigurationException("LLM API key is not configured"), 503),
        (MalformedLLMResponseException("No valid response from AI"), 502),
        (LLMException("Gateway error: 500"), 502),
    ])
    async def test_classification_failure_blocks_creation(self, client, student, stub_llm, error, status_code):
        stub_llm.error = error

        response = await client.post("/complaints", json=PROJECTOR_COMPLAINT, headers=student.headers)

        assert response.status_code == status_code
        assert await _complaint_count() == 0

    async def test_rate_limit_sets_retry_after(self, client, student, stub_llm):
        stub_llm.error = LLMRateLimitException("Rate limit exceeded", retry_after=2.5)

        response = await client.post("/complaints", json=PROJECTOR_COMPLAINT, headers=student.headers)

        assert response.headers["Retry-After"] == "3"
        assert response.json()["detail"] == "Rate limit exceeded. Please try again later."

    async def test_missing_llm_credential(self, client, student, no_llm):
        response = await client.post("/complaints", json=PROJECTOR_COMPLAINT, headers=student.headers)

        assert response.status_code == 503
        assert await _complaint_count() == 0

    async def test_non_blocking_intake(self, client, student, stub_llm, monkeypatch):
        from complaintdesk.complaints.interfaces import dependencies

        monkeypatch.setattr(dependencies.settings, "intake_requires_classification", False)
        stub_llm.error = LLMException("Gateway error: 500")

        response = await client.post("/complaints", json=PROJECTOR_COMPLAINT, headers=student.headers)

        assert response.status_code == 201
        body = response.json()
        assert body["priority"] == "Medium"
        assert body["ai_priority_score"] is None
        assert body["ai_suggested_response"] is None

    async def test_requires_authentication(self, client, stub_llm):
        response = await client.post("/complaints", json=PROJECTOR_COMPLAINT)

        assert response.status_code == 401

    async def test_rejects_forged_token(self, client, student, stub_llm):
        from conftest import make_token

        token = make_token(student.user_id, email=student.email, secret="not-the-real-secret-but-long-enough")
        response = await client.post(
            "/complaints",
            json=PROJECTOR_COMPLAINT,
            headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401


class TestStudentWorkflow:
    async def _submit(self, client, user, title="Broken projector in Lab 3"):
        response = await client.post(
            "/complaints",
            json={**PROJECTOR_COMPLAINT, "title": title},
            headers=user.headers
        )
        assert response.status_code == 201
        return response.json()

    async def test_list_own_newest_first(self, client, student, other_student, stub_llm):
        first = await self._submit(client, student, "First complaint here")
        second = await self._submit(client, student, "Second complaint here")
        await self._submit(client, other_student, "Someone else's complaint")

        response = await client.get("/complaints", headers=student.headers)

        assert response.status_code == 200
        ids = [c["id"] for c in response.json()]
        assert ids == [second["id"], first["id"]]

    async def test_other_students_complaint_is_not_found(self, client, student, other_student, stub_llm):
        complaint = await self._submit(client, student)

        own = await client.get(f"/complaints/{complaint['id']}", headers=student.headers)
        foreign = await client.get(f"/complaints/{complaint['id']}", headers=other_student.headers)

        assert own.status_code == 200
        assert foreign.status_code == 404

    async def test_admin_can_read_any_complaint(self, client, student, admin, stub_llm):
        complaint = await self._submit(client, student)

        response = await client.get(f"/complaints/{complaint['id']}", headers=admin.headers)

        assert response.status_code == 200

    async def test_edit_pending_complaint(self, client, student, stub_llm):
        complaint = await self._submit(client, student)
        calls_before = len(stub_llm.calls)

        response = await client.patch(
            f"/complaints/{complaint['id']}",
            json={"title": "Projector in Lab 3 still broken"},
            headers=student.headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Projector in Lab 3 still broken"
        assert body["description"] == complaint["description"]
        assert body["ai_suggested_response"] == complaint["ai_suggested_response"]
        assert len(stub_llm.calls) == calls_before

    async def test_edit_is_revalidated(self, client, student, stub_llm):
        complaint = await self._submit(client, student)

        response = await client.patch(
            f"/complaints/{complaint['id']}",
            json={"category": "Hostel"},
            headers=student.headers
        )

        assert response.status_code == 422
        assert response.json()["detail"]["errors"] == {"category": "Please select a valid category"}

    async def test_edit_resolved_complaint_rejected(self, client, student, stub_llm):
        complaint = await self._submit(client, student)
        await _set_status(complaint["id"], ComplaintStatus.RESOLVED)

        response = await client.patch(
            f"/complaints/{complaint['id']}",
            json={"title": "Trying to change history"},
            headers=student.headers
        )

        assert response.status_code == 403

    async def test_edit_by_other_student_is_not_found(self, client, student, other_student, stub_llm):
        complaint = await self._submit(client, student)

        response = await client.patch(
            f"/complaints/{complaint['id']}",
            json={"title": "Hijacked complaint title"},
            headers=other_student.headers
        )

        assert response.status_code == 404

    async def test_withdraw(self, client, student, stub_llm):
        complaint = await self._submit(client, student)

        response = await client.post(f"/complaints/{complaint['id']}/withdraw", headers=student.headers)
        again = await client.post(f"/complaints/{complaint['id']}/withdraw", headers=student.headers)

        assert response.status_code == 200
        assert response.json()["status"] == "Withdrawn"
        assert again.status_code == 403


class TestAnalyzeEndpoint:
    async def test_returns_camel_case_analysis(self, client, student, stub_llm):
        stub_llm.arguments = analysis("Facilities", "High", 0.85, "On it.")

        response = await client.post("/complaints/analyze", json=PROJECTOR_COMPLAINT, headers=student.headers)

        assert response.status_code == 200
        assert response.json() == {
            "suggestedCategory": "Facilities",
            "priority": "High",
            "priorityScore": 0.85,
            "suggestedResponse": "On it.",
        }
        assert await _complaint_count() == 0

    @pytest.mark.parametrize("error,status_code,message", [
        (LLMRateLimitException("Rate limit exceeded"), 429, "Rate limit exceeded. Please try again later."),
        (LLMQuotaException("AI service requires payment"), 402, None),
        (MalformedLLMResponseException("No valid response from AI"), 500, None),
        (LLMConfigurationException("LLM API key is not configured"), 500, None),
    ])
    async def test_errors_use_error_field(self, client, student, stub_llm, error, status_code, message):
        stub_llm.error = error

        response = await client.post("/complaints/analyze", json=PROJECTOR_COMPLAINT, headers=student.headers)

        assert response.status_code == status_code
        assert "error" in response.json()
        if message:
            assert response.json()["error"] == message


class TestAutoProvisioning:
    async def test_first_request_registers_account(self, client, stub_llm):
        user_id = uuid.uuid4()
        headers = auth_headers(user_id, email="newcomer@example.com", name="New Comer")

        response = await client.post("/complaints", json=PROJECTOR_COMPLAINT, headers=headers)

        assert response.status_code == 201
        me = await client.get("/accounts/me", headers=headers)
        assert me.json()["profile"]["name"] == "New Comer"
        assert me.json()["roles"] == ["student"]
