"""Tests for the change feed and its poll endpoint."""

import asyncio

from complaintdesk.infrastructure.events import ChangeFeed

COMPLAINT = {
    "title": "Broken projector in Lab 3",
    "description": "The projector in Lab 3 has not worked for a week.",
    "category": "Facilities",
}


class TestChangeFeed:
    async def test_cursor_increases(self):
        feed = ChangeFeed(buffer_size=10)

        first = await feed.publish("INSERT", "complaints", "a", owner_id="u1")
        second = await feed.publish("UPDATE", "complaints", "a", owner_id="u1")

        assert (first.cursor, second.cursor) == (1, 2)
        assert feed.latest_cursor == 2

    async def test_since_filters_by_cursor_and_owner(self):
        feed = ChangeFeed(buffer_size=10)
        await feed.publish("INSERT", "complaints", "a", owner_id="u1")
        await feed.publish("INSERT", "complaints", "b", owner_id="u2")
        await feed.publish("UPDATE", "complaints", "a", owner_id="u1")

        assert [e.cursor for e in feed.since(0)] == [1, 2, 3]
        assert [e.cursor for e in feed.since(1, owner_id="u1")] == [3]
        assert [e.record_id for e in feed.since(0, owner_id="u2")] == ["b"]

    async def test_buffer_is_bounded(self):
        feed = ChangeFeed(buffer_size=10)
        for i in range(15):
            await feed.publish("INSERT", "complaints", str(i))

        events = feed.since(0, limit=100)

        assert len(events) == 10
        assert events[0].cursor == 6

    async def test_subscriber_receives_only_visible_events(self):
        feed = ChangeFeed(buffer_size=10)

        async with feed.subscribe(owner_id="u1") as queue:
            assert feed.subscriber_count == 1
            await feed.publish("INSERT", "complaints", "b", owner_id="u2")
            await feed.publish("INSERT", "complaints", "a", owner_id="u1")

            event = await asyncio.wait_for(queue.get(), timeout=1)
            assert event.record_id == "a"
            assert queue.empty()

        assert feed.subscriber_count == 0

    async def test_lagging_subscriber_drops_events(self):
        feed = ChangeFeed(buffer_size=10, subscriber_queue_size=1)

        async with feed.subscribe() as queue:
            await feed.publish("INSERT", "complaints", "a")
            await feed.publish("INSERT", "complaints", "b")

            assert queue.qsize() == 1
            assert (await queue.get()).record_id == "a"


class TestPollEndpoint:
    async def test_submission_and_review_are_announced(self, client, student, admin, stub_llm):
        created = await client.post("/complaints", json=COMPLAINT, headers=student.headers)
        complaint = created.json()
        await client.patch(
            f"/admin/complaints/{complaint['id']}",
            json={"status": "In Progress"},
            headers=admin.headers
        )

        response = await client.get("/complaints/changes", headers=admin.headers)

        assert response.status_code == 200
        body = response.json()
        assert [e["event"] for e in body["events"]] == ["INSERT", "UPDATE"]
        assert body["events"][1]["payload"] == {
            "complaint_id": complaint["complaint_id"],
            "student_id": str(student.user_id),
            "status": "In Progress",
        }
        assert body["cursor"] == body["events"][-1]["cursor"]

    async def test_students_only_see_their_own_changes(self, client, student, other_student, stub_llm):
        await client.post("/complaints", json=COMPLAINT, headers=student.headers)
        await client.post("/complaints", json=COMPLAINT, headers=other_student.headers)

        response = await client.get("/complaints/changes", headers=student.headers)

        events = response.json()["events"]
        assert len(events) == 1
        assert events[0]["payload"]["student_id"] == str(student.user_id)

    async def test_cursor_resumes_polling(self, client, student, stub_llm):
        await client.post("/complaints", json=COMPLAINT, headers=student.headers)
        first = await client.get("/complaints/changes", headers=student.headers)
        cursor = first.json()["cursor"]

        idle = await client.get("/complaints/changes", params={"after": cursor}, headers=student.headers)
        await client.post("/complaints", json=COMPLAINT, headers=student.headers)
        later = await client.get("/complaints/changes", params={"after": cursor}, headers=student.headers)

        assert idle.json() == {"cursor": cursor, "events": []}
        assert len(later.json()["events"]) == 1

    async def test_limit_returns_resumable_cursor(self, client, student, stub_llm):
        for _ in range(3):
            await client.post("/complaints", json=COMPLAINT, headers=student.headers)

        page = await client.get("/complaints/changes", params={"limit": 2}, headers=student.headers)
        rest = await client.get(
            "/complaints/changes",
            params={"after": page.json()["cursor"]},
            headers=student.headers
        )

        assert len(page.json()["events"]) == 2
        assert len(rest.json()["events"]) == 1

    async def test_failed_submission_publishes_nothing(self, client, student, stub_llm):
        from complaintdesk.core import LLMException

        stub_llm.error = LLMException("Gateway error: 500")
        await client.post("/complaints", json=COMPLAINT, headers=student.headers)

        response = await client.get("/complaints/changes", headers=student.headers)

        assert response.json()["events"] == []

    async def test_requires_authentication(self, client):
        response = await client.get("/complaints/changes")

        assert response.status_code == 401
