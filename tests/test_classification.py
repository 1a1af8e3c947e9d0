"""Tests for the classification service and the LLM gateway client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from complaintdesk.complaints.application import ClassificationService
from complaintdesk.complaints.domain import ClassificationPromptBuilder, ClassificationResult
from complaintdesk.config import ComplaintCategory, ComplaintPriority
from complaintdesk.core import (
    LLMConfigurationException,
    LLMException,
    LLMQuotaException,
    LLMRateLimitException,
    MalformedLLMResponseException,
)
from complaintdesk.infrastructure.llm import MockLLMClient, OpenAICompatibleLLMClient

from conftest import StubLLMClient, analysis

GATEWAY_URL = "https://gateway.test/v1/chat/completions"


class TestClassificationService:
    async def test_tool_call_is_parsed(self):
        stub = StubLLMClient()
        stub.arguments = analysis("Facilities", "High", 0.9, "We will fix it.")

        result = await ClassificationService(stub).classify(
            "Broken projector in Lab 3", "The projector flickers and dies.", "Facilities"
        )

        assert result.suggested_category == ComplaintCategory.FACILITIES
        assert result.priority == ComplaintPriority.HIGH
        assert result.priority_score == 0.9
        assert result.suggested_response == "We will fix it."
        assert result.model_used == "stub-model"

    async def test_request_forces_analyze_tool(self):
        stub = StubLLMClient()

        await ClassificationService(stub).classify("Broken projector", "x" * 25, "Facilities")

        call = stub.calls[0]
        assert call["tool_choice"] == {"type": "function", "function": {"name": "analyze_complaint"}}
        assert call["tools"][0]["function"]["name"] == "analyze_complaint"
        assert "Selected Category: Facilities" in call["messages"][-1]["content"]

    async def test_plain_json_content_is_accepted(self):
        stub = StubLLMClient()
        stub.arguments = None
        stub.content = (
            "```json\n"
            '{"suggestedCategory": "Faculty", "priority": "Low", '
            '"priorityScore": 0.4, "suggestedResponse": "Noted."}\n'
            "```"
        )

        result = await ClassificationService(stub).classify("Late mentor", "x" * 25, "Faculty")

        assert result.suggested_category == ComplaintCategory.FACULTY
        assert result.priority == ComplaintPriority.LOW

    async def test_score_rounded_to_two_places(self):
        stub = StubLLMClient()
        stub.arguments = analysis(score=0.8765)

        result = await ClassificationService(stub).classify("Broken projector", "x" * 25, "Facilities")

        assert result.priority_score == 0.88

    async def test_missing_client_is_configuration_error(self):
        with pytest.raises(LLMConfigurationException):
            await ClassificationService(None).classify("Broken projector", "x" * 25, "Facilities")

    async def test_empty_response_is_malformed(self):
        stub = StubLLMClient()
        stub.arguments = None

        with pytest.raises(MalformedLLMResponseException):
            await ClassificationService(stub).classify("Broken projector", "x" * 25, "Facilities")

    @pytest.mark.parametrize("arguments", [
        "not json at all",
        {"suggestedCategory": "Facilities", "priority": "Medium", "priorityScore": 0.5},
        analysis(category="Hostel"),
        analysis(priority="Critical"),
        analysis(score=1.5),
        analysis(response=""),
    ])
    async def test_bad_tool_arguments_are_malformed(self, arguments):
        stub = StubLLMClient()
        stub.arguments = arguments

        with pytest.raises(MalformedLLMResponseException):
            await ClassificationService(stub).classify("Broken projector", "x" * 25, "Facilities")

    async def test_upstream_errors_propagate(self):
        stub = StubLLMClient()
        stub.error = LLMRateLimitException("Rate limit exceeded", retry_after=3)

        with pytest.raises(LLMRateLimitException) as exc_info:
            await ClassificationService(stub).classify("Broken projector", "x" * 25, "Facilities")

        assert exc_info.value.retriable is True
        assert exc_info.value.retry_after == 3


class TestClassificationResult:
    def test_score_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            ClassificationResult(
                suggested_category=ComplaintCategory.OTHER,
                priority=ComplaintPriority.LOW,
                priority_score=-0.1,
                suggested_response="ok",
                model_used="m",
                latency_ms=1,
            )


class TestMockLLMClient:
    async def test_keyword_classification(self):
        result = await MockLLMClient().chat_completion(
            [{"role": "user", "content": ClassificationPromptBuilder.build_prompt(
                "Broken projector in Lab 3", "The projector does not turn on.", "Facilities"
            )}],
            tools=ClassificationPromptBuilder.build_tools(),
        )

        service_result = await ClassificationService(MockLLMClient()).classify(
            "Broken projector in Lab 3", "The projector does not turn on.", "Facilities"
        )

        assert result.tool_arguments is not None
        assert service_result.suggested_category == ComplaintCategory.FACILITIES
        assert service_result.priority == ComplaintPriority.MEDIUM
        assert service_result.priority_score == 0.7


# ------------------------------------------------------------------ #
# Gateway client error translation
# ------------------------------------------------------------------ #

def _response(status_code: int, headers: dict = None) -> httpx.Response:
    return httpx.Response(status_code, headers=headers or {}, request=httpx.Request("POST", GATEWAY_URL))


def _completion(arguments: str):
    tool_call = SimpleNamespace(function=SimpleNamespace(name="analyze_complaint", arguments=arguments))
    message = SimpleNamespace(content=None, tool_calls=[tool_call])
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message)],
        model="gateway-model",
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=34),
    )


@pytest.fixture
def gateway_client() -> OpenAICompatibleLLMClient:
    client = OpenAICompatibleLLMClient(api_key="sk-test", base_url="https://gateway.test/v1")
    client._backoff = 0
    client._client.chat.completions.create = AsyncMock()
    return client


class TestOpenAICompatibleLLMClient:
    def test_missing_key_raises_configuration_error(self, monkeypatch):
        from complaintdesk.infrastructure import llm as llm_module

        monkeypatch.setattr(llm_module.settings, "llm_api_key", None)

        with pytest.raises(LLMConfigurationException):
            OpenAICompatibleLLMClient()

    async def test_tool_arguments_extracted(self, gateway_client):
        gateway_client._client.chat.completions.create.return_value = _completion('{"a": 1}')

        result = await gateway_client.chat_completion([{"role": "user", "content": "hi"}])

        assert result.tool_arguments == '{"a": 1}'
        assert result.model == "gateway-model"
        assert result.total_tokens == 46

    async def test_rate_limit_retried_then_succeeds(self, gateway_client):
        gateway_client._max_retries = 2
        gateway_client._client.chat.completions.create.side_effect = [
            openai.RateLimitError("slow down", response=_response(429), body=None),
            _completion("{}"),
        ]

        result = await gateway_client.chat_completion([{"role": "user", "content": "hi"}])

        assert result.tool_arguments == "{}"
        assert gateway_client._client.chat.completions.create.await_count == 2

    async def test_rate_limit_exhausted(self, gateway_client):
        gateway_client._max_retries = 0
        gateway_client._client.chat.completions.create.side_effect = openai.RateLimitError(
            "slow down", response=_response(429, {"retry-after": "7"}), body=None
        )

        with pytest.raises(LLMRateLimitException) as exc_info:
            await gateway_client.chat_completion([{"role": "user", "content": "hi"}])

        assert exc_info.value.retry_after == 7.0

    async def test_insufficient_quota_is_not_retried(self, gateway_client):
        gateway_client._max_retries = 3
        gateway_client._client.chat.completions.create.side_effect = openai.RateLimitError(
            "quota", response=_response(429), body={"code": "insufficient_quota"}
        )

        with pytest.raises(LLMQuotaException):
            await gateway_client.chat_completion([{"role": "user", "content": "hi"}])

        assert gateway_client._client.chat.completions.create.await_count == 1

    async def test_payment_required_is_quota(self, gateway_client):
        gateway_client._client.chat.completions.create.side_effect = openai.APIStatusError(
            "pay up", response=_response(402), body=None
        )

        with pytest.raises(LLMQuotaException):
            await gateway_client.chat_completion([{"role": "user", "content": "hi"}])

    async def test_rejected_key_is_configuration_error(self, gateway_client):
        gateway_client._client.chat.completions.create.side_effect = openai.AuthenticationError(
            "bad key", response=_response(401), body=None
        )

        with pytest.raises(LLMConfigurationException):
            await gateway_client.chat_completion([{"role": "user", "content": "hi"}])

    async def test_server_error_is_generic_llm_error(self, gateway_client):
        gateway_client._client.chat.completions.create.side_effect = openai.InternalServerError(
            "boom", response=_response(500), body=None
        )

        with pytest.raises(LLMException) as exc_info:
            await gateway_client.chat_completion([{"role": "user", "content": "hi"}])

        assert not isinstance(exc_info.value, (LLMQuotaException, LLMRateLimitException))
