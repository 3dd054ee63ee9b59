"""Streaming chat completion clients.

Both clients expose ``stream_chat(messages)`` which yields text deltas.
Messages use the OpenAI shape: ``{"role": "system"|"user"|"assistant",
"content": str}``. Streaming calls are never retried; a failure part way
through surfaces as ``APIClientError`` to the caller.
"""

import json
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from google import genai
from google.genai import types

from brokerdoc.core.config import LLMSettings
from brokerdoc.core.exceptions import APIClientError, ConfigurationError
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)

ChatMessage = Dict[str, str]

# Sentinel for the "data: [DONE]" terminator
STREAM_DONE = object()


class OpenAICompatibleClient:
    """Client for any OpenAI-compatible ``/chat/completions`` endpoint.

    Defaults to Nebius AI Studio; the URL is the full completions URL.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        timeout: int = 120,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.logger = LOGGER

        LOGGER.info(f"Initialized OpenAI-compatible client with model {self.model}")

    def _build_payload(self, messages: List[ChatMessage]) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages,
            "stream": True,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    async def stream_chat(self, messages: List[ChatMessage]) -> AsyncIterator[str]:
        """Stream a chat completion.

        Args:
            messages: Conversation in OpenAI message format

        Yields:
            Non-empty content deltas in arrival order

        Raises:
            APIClientError: On HTTP errors, timeouts or a broken stream
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }

        self.logger.debug(
            f"Streaming chat completion from {self.api_url}",
            extra={"model": self.model, "messages": len(messages)},
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                async with client.stream(
                    "POST", self.api_url, headers=headers, json=self._build_payload(messages)
                ) as response:
                    if response.status_code != 200:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        self.logger.warning(
                            "LLM API HTTP error",
                            extra={"status_code": response.status_code, "error_body": body[:500]},
                        )
                        raise APIClientError(f"LLM API error {response.status_code}: {body[:200]}")

                    async for line in response.aiter_lines():
                        delta = parse_stream_line(line)
                        if delta is None:
                            continue
                        if delta is STREAM_DONE:
                            break
                        yield delta
        except httpx.TimeoutException as e:
            self.logger.warning("LLM API timeout", extra={"url": self.api_url})
            raise APIClientError("LLM API request timed out", original_error=e) from e
        except httpx.HTTPError as e:
            self.logger.warning("LLM API transport error", extra={"error": str(e)})
            raise APIClientError(f"LLM API request failed: {e}", original_error=e) from e


def parse_stream_line(line: str):
    """Extract the content delta from one server-sent-event line.

    Returns:
        The delta text, ``STREAM_DONE`` for the terminator, or None for
        keep-alives, comments, role-only chunks and unparsable payloads
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None

    data = line[len("data:"):].strip()
    if data == "[DONE]":
        return STREAM_DONE

    try:
        chunk = json.loads(data)
    except json.JSONDecodeError:
        LOGGER.debug(f"Skipping unparsable stream chunk: {data[:100]}")
        return None

    choices = chunk.get("choices") or []
    if not choices:
        return None
    content = (choices[0].get("delta") or {}).get("content")
    return content or None


class GeminiClient:
    """Streaming wrapper around the Google Gemini async API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

        try:
            self.client = genai.Client(api_key=self.api_key)
            LOGGER.info(f"Initialized Gemini client with model {self.model}")
        except Exception as e:
            LOGGER.error(f"Failed to initialize Gemini client: {e}")
            raise APIClientError(f"Failed to initialize Gemini client: {e}", original_error=e) from e

    @staticmethod
    def _to_contents(messages: List[ChatMessage]):
        """Split OpenAI-style messages into a system instruction and Gemini contents."""
        system_parts = []
        contents = []
        for message in messages:
            if message["role"] == "system":
                system_parts.append(message["content"])
                continue
            role = "model" if message["role"] == "assistant" else "user"
            contents.append(types.Content(role=role, parts=[types.Part(text=message["content"])]))
        return "\n\n".join(system_parts) or None, contents

    async def stream_chat(self, messages: List[ChatMessage]) -> AsyncIterator[str]:
        system_instruction, contents = self._to_contents(messages)
        config = types.GenerateContentConfig(
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
            system_instruction=system_instruction,
        )

        try:
            stream = await self.client.aio.models.generate_content_stream(
                model=self.model, contents=contents, config=config
            )
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        except APIClientError:
            raise
        except Exception as e:
            LOGGER.warning(f"Gemini streaming error: {e}")
            raise APIClientError(f"Gemini generation failed: {e}", original_error=e) from e


def create_llm_client(llm_settings: LLMSettings, provider: Optional[str] = None):
    """Build the streaming client for the configured provider.

    Args:
        llm_settings: LLM settings group
        provider: Optional override of ``llm_settings.provider``

    Raises:
        ConfigurationError: If the provider is unknown
    """
    provider = (provider or llm_settings.provider).lower()

    if provider == "openai":
        if not llm_settings.openai_api_key:
            LOGGER.warning("OPENAI_API_KEY is not set; chat requests will fail")
        return OpenAICompatibleClient(
            api_key=llm_settings.openai_api_key,
            api_url=llm_settings.openai_api_url,
            model=llm_settings.openai_model,
            temperature=llm_settings.temperature,
            max_tokens=llm_settings.max_tokens,
            timeout=llm_settings.timeout,
        )
    if provider == "gemini":
        return GeminiClient(
            api_key=llm_settings.gemini_api_key,
            model=llm_settings.gemini_model,
            temperature=llm_settings.temperature,
            max_tokens=llm_settings.max_tokens,
        )

    raise ConfigurationError(f"Unsupported LLM provider: {provider}")
