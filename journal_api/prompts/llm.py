# journal_api/prompts/llm.py
"""
Gemini client for reflective follow-up questions.

The client is built per request through get_llm_client() so tests and
alternate deployments can swap it with app.dependency_overrides.
"""

import asyncio
import re
from typing import Protocol

from google import genai
from google.genai import types
from google.genai import errors as genai_errors

from ..config import settings
from ..error_handlers import (
    ConfigurationException,
    ExternalServiceException,
    UpstreamQuotaException,
    UpstreamRateLimitException,
    ErrorCode,
)
from ..logging_config import get_logger

logger = get_logger(__name__)


SYSTEM_INSTRUCTION = (
    "You are a supportive journaling companion. Read the user's journal entry and "
    "ask ONE thoughtful, open-ended follow-up question that helps them reflect more "
    "deeply on what they wrote. Do not give advice, diagnoses or instructions. "
    "Respond ONLY with a single short question."
)

_LEADING_MARKER = re.compile(r"^\s*(?:\d+[\).:\-]?|[-*•])\s*")
_QUOTES = "\"'“”‘’"


def build_user_message(content: str) -> str:
    return f"Here is the user's journal entry:\n\n{content}\n\nGenerate one follow-up question."


def clean_prompt_text(raw: str) -> str:
    """
    Reduce model output to a single question.

    Takes the first non-empty line, then strips list numbering, bullets
    and surrounding quotes. Returns "" when nothing usable remains.
    """
    for line in (raw or "").splitlines():
        line = line.strip().strip(_QUOTES)
        line = _LEADING_MARKER.sub("", line, count=1)
        line = line.strip().strip(_QUOTES).strip()
        if line:
            return line
    return ""


class ReflectionLLM(Protocol):
    async def generate_question(self, content: str) -> str:
        ...


class GeminiReflectionClient:
    """Async Gemini wrapper returning the raw question text"""

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout_seconds: float = 30.0,
        temperature: float = 0.7,
    ):
        self._client = genai.Client(api_key=api_key)
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature

    async def generate_question(self, content: str) -> str:
        config = types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTION,
            temperature=self.temperature,
        )

        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self.model,
                    contents=build_user_message(content),
                    config=config,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Gemini request timed out",
                extra={"extra_data": {"timeout_seconds": self.timeout_seconds}}
            )
            raise ExternalServiceException(
                service_name="Gemini",
                message=f"Request timed out after {self.timeout_seconds:g} seconds",
                error_code=ErrorCode.LLM_TIMEOUT,
                status_code=504,
            )
        except genai_errors.APIError as e:
            raise map_api_error(e)

        return response.text or ""


def map_api_error(error: "genai_errors.APIError") -> Exception:
    """Translate a Gemini API error into an application exception"""
    code = getattr(error, "code", None)
    message = str(getattr(error, "message", None) or error)
    lowered = message.lower()

    logger.error(
        f"Gemini API error: {message}",
        extra={"extra_data": {"status_code": code}}
    )

    if code == 429:
        if "quota" in lowered or "billing" in lowered:
            return UpstreamQuotaException()
        return UpstreamRateLimitException()

    if code in (401, 403) or (code == 400 and "api key" in lowered):
        return ExternalServiceException(
            service_name="Gemini",
            message="Invalid API key",
            error_code=ErrorCode.LLM_API_ERROR,
        )

    return ExternalServiceException(
        service_name="Gemini",
        message=message,
        error_code=ErrorCode.LLM_API_ERROR,
    )


def get_llm_client() -> ReflectionLLM:
    if not settings.GEMINI_API_KEY:
        raise ConfigurationException(
            "The AI service is not configured. Please check GEMINI_API_KEY environment variable.",
            setting="GEMINI_API_KEY",
        )
    return GeminiReflectionClient(
        api_key=settings.GEMINI_API_KEY,
        model=settings.GEMINI_LLM_MODEL,
        timeout_seconds=settings.PROMPT_TIMEOUT_SECONDS,
        temperature=settings.PROMPT_TEMPERATURE,
    )
