import json
from unittest.mock import patch

import pytest

from brokerdoc.core.config import LLMSettings
from brokerdoc.core.exceptions import ConfigurationError
from brokerdoc.core.llm_client import (
    STREAM_DONE,
    GeminiClient,
    OpenAICompatibleClient,
    create_llm_client,
    parse_stream_line,
)


def _chunk(content=None, role=None) -> str:
    delta = {}
    if content is not None:
        delta["content"] = content
    if role:
        delta["role"] = role
    return "data: " + json.dumps({"choices": [{"delta": delta}]})


@pytest.mark.parametrize(
    "line, expected",
    [
        (_chunk("Hello"), "Hello"),
        (_chunk(role="assistant"), None),
        (_chunk(""), None),
        ("", None),
        (": keep-alive", None),
        ("data: {not json", None),
        ('data: {"choices": []}', None),
    ],
)
def test_parse_stream_line(line, expected):
    assert parse_stream_line(line) == expected


def test_parse_stream_line_done():
    assert parse_stream_line("data: [DONE]") is STREAM_DONE


def test_factory_builds_openai_compatible_client():
    client = create_llm_client(LLMSettings(LLM_PROVIDER="openai", OPENAI_API_KEY="k"))
    assert isinstance(client, OpenAICompatibleClient)
    assert client.api_url.endswith("/chat/completions")


def test_factory_builds_gemini_client():
    with patch("brokerdoc.core.llm_client.genai.Client"):
        client = create_llm_client(LLMSettings(GEMINI_API_KEY="k"), provider="gemini")
    assert isinstance(client, GeminiClient)


def test_factory_rejects_unknown_provider():
    with pytest.raises(ConfigurationError):
        create_llm_client(LLMSettings(), provider="mystery")


def test_gemini_contents_split_system_prompt():
    system, contents = GeminiClient._to_contents([
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello"},
    ])
    assert system == "Be brief."
    assert [c.role for c in contents] == ["user", "model"]
