"""LLM API client utilities."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol
from enum import Enum

from openai import (
    AsyncOpenAI,
    APIConnectionError,
    RateLimitError,
    AuthenticationError,
    BadRequestError,
    APIStatusError,
    OpenAIError,
)

from .config import TranslatorConfig
from .errors import LLMServiceError, SchemaError

logger = logging.getLogger(__name__)


class APIErrorType(Enum):
    """API 错误类型分类。"""
    RATE_LIMIT = "rate_limit"      # 429 - 可重试
    CONNECTION = "connection"       # 网络问题 - 可重试
    AUTH = "auth"                   # 401 - 不可重试
    BAD_REQUEST = "bad_request"     # 400 - 不可重试
    SERVER = "server"               # 500+ - 可重试
    UNKNOWN = "unknown"


def classify_error(error: Exception) -> tuple[APIErrorType, bool]:
    """
    分类 API 错误并判断是否可重试。

    Returns:
        (错误类型, 是否可重试)
    """
    if isinstance(error, RateLimitError):
        return APIErrorType.RATE_LIMIT, True
    elif isinstance(error, APIConnectionError):
        return APIErrorType.CONNECTION, True
    elif isinstance(error, AuthenticationError):
        return APIErrorType.AUTH, False
    elif isinstance(error, BadRequestError):
        return APIErrorType.BAD_REQUEST, False
    elif isinstance(error, APIStatusError):
        # 5xx 错误可重试
        if hasattr(error, 'status_code') and error.status_code >= 500:
            return APIErrorType.SERVER, True
        return APIErrorType.UNKNOWN, False
    else:
        return APIErrorType.UNKNOWN, False


class TranslationService(Protocol):
    """The two request shapes the orchestrators need from an LLM."""

    async def generate_text(self, prompt: str) -> str:
        ...

    async def generate_json(self, prompt: str, *, system: str, schema: Dict[str, Any]) -> str:
        ...


class OpenAIService:
    """TranslationService backed by an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        analysis_model: Optional[str] = None,
        temperature: float = 0.3,
    ):
        self._client = client
        self._model = model
        self._analysis_model = analysis_model or model
        self._temperature = temperature

    async def generate_text(self, prompt: str) -> str:
        return await self._complete(
            self._analysis_model,
            [{"role": "user", "content": prompt}],
        )

    async def generate_json(self, prompt: str, *, system: str, schema: Dict[str, Any]) -> str:
        return await self._complete(
            self._model,
            [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "translation", "schema": schema},
            },
        )

    async def _complete(
        self,
        model: str,
        messages: List[Dict[str, str]],
        response_format: Optional[Dict[str, Any]] = None,
    ) -> str:
        params: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": self._temperature,
        }
        if response_format:
            params["response_format"] = response_format

        try:
            response = await self._client.chat.completions.create(**params)
        except OpenAIError as e:
            error_type, retryable = classify_error(e)
            raise LLMServiceError(str(e), error_type.value, retryable) from e

        choices = getattr(response, "choices", None)
        if not choices:
            raise SchemaError(f"Response from {model} has no choices")
        content = choices[0].message.content
        return content.strip() if content else ""


def create_client(
    api_key: str,
    base_url: str,
    timeout: float = 120.0
) -> AsyncOpenAI:
    """
    Create an AsyncOpenAI client.

    Args:
        api_key: API key for authentication
        base_url: API base URL
        timeout: Default timeout for requests

    Returns:
        Configured AsyncOpenAI client
    """
    # 重试由编排层负责，SDK 层不再重试
    return AsyncOpenAI(
        api_key=api_key,
        base_url=base_url,
        timeout=timeout,
        max_retries=0,
    )


def create_service(config: TranslatorConfig) -> OpenAIService:
    """Build the default service; raises ConfigError without an API key."""
    api_key = config.require_api_key()
    client = create_client(api_key, config.base_url, config.request_timeout)
    return OpenAIService(
        client,
        config.model_name,
        analysis_model=config.analysis_model_name,
        temperature=config.temperature,
    )
