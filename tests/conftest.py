"""
Shared test fixtures for pytest.

Provides:
- a throwaway SQLite database (aiosqlite) created and dropped per test
- client: async HTTP client over the ASGI app
- student, other_student, admin: registered users with Bearer headers
- stub_llm: scripted LLM client injected through dependency overrides
- make_token: helper to mint access tokens
"""

import json
import os
import tempfile
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, List, Optional

# Configure test environment BEFORE importing the app
_DB_PATH = os.path.join(tempfile.gettempdir(), f"complaintdesk_test_{os.getpid()}.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["ENVIRONMENT"] = "testing"
os.environ["AUTH_JWT_SECRET"] = "test-jwt-secret-with-enough-bytes-for-hs256"
os.environ["AUTH_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["MOCK_LLM"] = "true"
os.environ["SLACK_WEBHOOK_URL"] = ""
os.environ["INTAKE_REQUIRES_CLASSIFICATION"] = "true"

import jwt
import pytest
from httpx import ASGITransport, AsyncClient

from complaintdesk.accounts.interfaces import build_account_service
from complaintdesk.complaints.interfaces.dependencies import get_llm_client
from complaintdesk.config import AppRole
from complaintdesk.infrastructure.database import (
    close_database,
    create_tables,
    drop_tables,
    get_session_context,
    init_database,
)
from complaintdesk.infrastructure.events import get_change_feed
from complaintdesk.infrastructure.llm import ChatCompletionResult, ILLMClient
from complaintdesk.main import app

TEST_JWT_SECRET = os.environ["AUTH_JWT_SECRET"]
TEST_WEBHOOK_SECRET = os.environ["AUTH_WEBHOOK_SECRET"]


# ------------------------------------------------------------------ #
# Tokens
# ------------------------------------------------------------------ #

def make_token(
    user_id: uuid.UUID,
    email: Optional[str] = "student@example.com",
    name: Optional[str] = None,
    audience: str = "authenticated",
    secret: str = TEST_JWT_SECRET,
    expires_in: int = 3600,
) -> str:
    """Create an access token shaped like the auth provider's."""
    now = int(datetime.now(timezone.utc).timestamp())
    payload = {
        "sub": str(user_id),
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        "role": "authenticated",
    }
    if email:
        payload["email"] = email
    if name:
        payload["user_metadata"] = {"name": name}
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user_id: uuid.UUID, email: Optional[str] = None, name: Optional[str] = None) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, email=email, name=name)}"}


# ------------------------------------------------------------------ #
# LLM stub
# ------------------------------------------------------------------ #

def analysis(
    category: str = "Facilities",
    priority: str = "Medium",
    score: float = 0.7,
    response: str = "Thank you for reporting this. The facilities team will look into it.",
) -> dict:
    return {
        "suggestedCategory": category,
        "priority": priority,
        "priorityScore": score,
        "suggestedResponse": response,
    }


class StubLLMClient(ILLMClient):
    """Returns a scripted tool call or raises a scripted error."""

    def __init__(self):
        self.arguments: Optional[Any] = analysis()
        self.content: Optional[str] = None
        self.error: Optional[Exception] = None
        self.calls: List[dict] = []

    async def chat_completion(
        self,
        messages,
        temperature=0.3,
        max_tokens=800,
        tools=None,
        tool_choice=None,
        operation="chat_completion",
    ) -> ChatCompletionResult:
        self.calls.append({"messages": messages, "tools": tools, "tool_choice": tool_choice})
        if self.error is not None:
            raise self.error

        tool_arguments = self.arguments
        if isinstance(tool_arguments, dict):
            tool_arguments = json.dumps(tool_arguments)

        return ChatCompletionResult(
            content=self.content,
            tool_arguments=tool_arguments,
            model="stub-model",
            prompt_tokens=10,
            completion_tokens=20,
            latency_ms=1,
        )


# ------------------------------------------------------------------ #
# Database & App Fixtures
# ------------------------------------------------------------------ #

@pytest.fixture(autouse=True)
async def database():
    """Fresh schema and change feed for every test."""
    get_change_feed.cache_clear()
    init_database()
    await create_tables()

    yield

    app.dependency_overrides.clear()
    await drop_tables()
    await close_database()


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def stub_llm() -> StubLLMClient:
    stub = StubLLMClient()
    app.dependency_overrides[get_llm_client] = lambda: stub
    return stub


@pytest.fixture
def no_llm():
    """Simulate a deployment without an LLM credential."""
    app.dependency_overrides[get_llm_client] = lambda: None


# ------------------------------------------------------------------ #
# Users
# ------------------------------------------------------------------ #

async def create_user(email: str, name: str, roles=(AppRole.STUDENT,)) -> SimpleNamespace:
    user_id = uuid.uuid4()
    async with get_session_context() as session:
        service = build_account_service(session)
        await service.register_account(user_id, email, name)
        for role in roles:
            await service.grant_role(user_id, role)
    return SimpleNamespace(
        user_id=user_id,
        email=email,
        name=name,
        headers=auth_headers(user_id, email=email),
    )


@pytest.fixture
async def student() -> SimpleNamespace:
    return await create_user("asha@example.com", "Asha Nair")


@pytest.fixture
async def other_student() -> SimpleNamespace:
    return await create_user("ravi@example.com", "Ravi Menon")


@pytest.fixture
async def admin() -> SimpleNamespace:
    return await create_user("admin@example.com", "Desk Admin", roles=(AppRole.STUDENT, AppRole.ADMIN))


@pytest.fixture
async def session():
    async with get_session_context() as s:
        yield s
