"""
LLM Client Infrastructure
==========================

Wrapper for OpenAI-compatible chat-completion gateways providing a clean
interface for LLM operations.

The application layer depends on the ILLMClient abstraction; this module
supplies the concrete gateway client and a deterministic mock.
"""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import openai
from openai import AsyncOpenAI

from complaintdesk.config import settings
from complaintdesk.core import (
    LLMConfigurationException,
    LLMException,
    LLMQuotaException,
    LLMRateLimitException,
)
from complaintdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ChatCompletionResult:
    """Result of a chat completion."""

    def __init__(
        self,
        content: Optional[str],
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int,
        tool_arguments: Optional[str] = None
    ):
        self.content = content
        self.tool_arguments = tool_arguments
        self.model = model
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = prompt_tokens + completion_tokens
        self.latency_ms = latency_ms


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Only the methods actually needed by the application are defined.
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 800,
        tools: Optional[List[dict]] = None,
        tool_choice: Optional[Any] = None,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Generate chat completion."""


def _retry_after_seconds(error: openai.APIStatusError) -> Optional[float]:
    header = error.response.headers.get("retry-after") if error.response is not None else None
    if header is None:
        return None
    try:
        return float(header)
    except ValueError:
        return None


class OpenAICompatibleLLMClient(ILLMClient):
    """
    Client for OpenAI-compatible chat-completion gateways.

    Rate-limit rejections are retried with exponential backoff; every other
    upstream failure is translated into the LLMException family at once.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None
    ):
        self._api_key = api_key or settings.llm_api_key
        if not self._api_key:
            raise LLMConfigurationException("LLM API key is not configured")

        # Retries are handled here so 429 and 402 stay distinguishable
        self._client = AsyncOpenAI(
            api_key=self._api_key,
            base_url=base_url or settings.llm_base_url,
            timeout=settings.llm_timeout_seconds,
            max_retries=0
        )
        self._model = model or settings.llm_model
        self._max_retries = settings.llm_max_retries
        self._backoff = settings.llm_retry_backoff_seconds

    @property
    def model(self) -> str:
        return self._model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 800,
        tools: Optional[List[dict]] = None,
        tool_choice: Optional[Any] = None,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """
        Generate a chat completion, optionally forcing a tool call.

        Raises:
            LLMRateLimitException: Still rate limited after all retries
            LLMQuotaException: Quota exhausted or payment required
            LLMConfigurationException: Credential rejected by the gateway
            LLMException: Any other upstream failure
        """
        request: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if tools:
            request["tools"] = tools
        if tool_choice is not None:
            request["tool_choice"] = tool_choice

        attempt = 0
        while True:
            start_time = time.perf_counter()
            try:
                response = await self._client.chat.completions.create(**request)
                break
            except openai.RateLimitError as e:
                if e.code == "insufficient_quota":
                    raise LLMQuotaException("AI service quota exhausted") from e
                if attempt >= self._max_retries:
                    raise LLMRateLimitException(
                        "Rate limit exceeded",
                        retry_after=_retry_after_seconds(e)
                    ) from e
                delay = _retry_after_seconds(e) or self._backoff * (2 ** attempt)
                logger.warning(
                    "LLM rate limited, backing off",
                    extra={"operation": operation, "attempt": attempt + 1, "delay_s": delay}
                )
                attempt += 1
                await asyncio.sleep(delay)
            except openai.AuthenticationError as e:
                raise LLMConfigurationException("LLM credential was rejected") from e
            except openai.APIStatusError as e:
                if e.status_code == 402:
                    raise LLMQuotaException("AI service requires payment") from e
                raise LLMException(f"Gateway error: {e.status_code}") from e
            except openai.APIError as e:
                raise LLMException(f"Chat completion failed: {e}") from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        if not response.choices:
            return ChatCompletionResult(
                content=None,
                model=self._model,
                prompt_tokens=0,
                completion_tokens=0,
                latency_ms=latency_ms
            )

        message = response.choices[0].message
        tool_arguments = None
        if message.tool_calls:
            tool_arguments = message.tool_calls[0].function.arguments

        usage = response.usage
        return ChatCompletionResult(
            content=message.content,
            tool_arguments=tool_arguments,
            model=response.model or self._model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency_ms=latency_ms
        )


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for local development.

    Returns keyword-driven classifications without calling external APIs.
    """

    _CATEGORY_KEYWORDS = {
        "Facilities": ("projector", "ac ", "air condition", "washroom", "toilet", "canteen", "furniture", "lab"),
        "Infrastructure": ("wifi", "wi-fi", "internet", "network", "power", "electricity", "server"),
        "Faculty": ("teacher", "mentor", "faculty", "instructor", "trainer"),
        "Curriculum": ("syllabus", "curriculum", "course", "module", "assignment", "exam"),
        "Administration": ("fee", "refund", "certificate", "admission", "office", "document"),
    }
    _HIGH_KEYWORDS = ("urgent", "harass", "unsafe", "danger", "injur", "fire", "emergency")
    _LOW_KEYWORDS = ("suggestion", "minor", "would be nice", "feature request")

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 800,
        tools: Optional[List[dict]] = None,
        tool_choice: Optional[Any] = None,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Return a mock tool call built from the last user message."""
        text = str(messages[-1].get("content", "")).lower() if messages else ""
        # Ignore the output instructions appended to the prompt
        text = text.split("provide json response")[0]

        category = "Other"
        for candidate, keywords in self._CATEGORY_KEYWORDS.items():
            if any(k in text for k in keywords):
                category = candidate
                break

        if any(k in text for k in self._HIGH_KEYWORDS):
            priority, score = "High", 0.9
        elif any(k in text for k in self._LOW_KEYWORDS):
            priority, score = "Low", 0.6
        else:
            priority, score = "Medium", 0.7

        arguments = json.dumps({
            "suggestedCategory": category,
            "priority": priority,
            "priorityScore": score,
            "suggestedResponse": (
                "Thank you for raising this. We have logged your complaint with the "
                f"{category.lower()} team and will update you once it has been reviewed."
            )
        })

        return ChatCompletionResult(
            content=None,
            tool_arguments=arguments,
            model="mock-model",
            prompt_tokens=100,
            completion_tokens=len(arguments.split()),
            latency_ms=1
        )


def create_llm_client() -> ILLMClient:
    """
    Build the configured LLM client.

    Raises:
        LLMConfigurationException: No API key and mock mode is off
    """
    if settings.mock_llm:
        return MockLLMClient()
    return OpenAICompatibleLLMClient()
