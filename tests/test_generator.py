from __future__ import annotations

import httpx
import openai
import pytest
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from agents.generator import GeneratorAgent, _parse_local_model, build_model_settings, build_prompt
from config import Config
from errors import UpstreamError


def test_build_prompt_is_deterministic_and_lists_enumerations() -> None:
    prompt = build_prompt("2026-10-16", 5)
    assert prompt == build_prompt("2026-10-16", 5)
    assert "2026-10-16" in prompt
    assert "EXACTLY 5 stories" in prompt
    assert "Politics, Technology, Business, Science, Health, World" in prompt
    assert "Global, US, Europe, Asia, Africa, Americas, Middle East" in prompt
    assert "breaking, high, medium" in prompt
    assert "raw JSON only" in prompt


def test_build_prompt_uses_story_count() -> None:
    assert "EXACTLY 3 stories" in build_prompt("2026-10-16", 3)


@pytest.mark.parametrize("bad_date", ["2026-13-01", "yesterday", "2026-02-30"])
def test_build_prompt_rejects_invalid_dates(bad_date: str) -> None:
    with pytest.raises(ValueError):
        build_prompt(bad_date)


def test_parse_local_model() -> None:
    assert _parse_local_model("openai:qwen@http://127.0.0.1:8080/v1") == ("qwen", "http://127.0.0.1:8080/v1")
    assert _parse_local_model("google-gla:gemini-2.5-flash") is None


def test_model_settings_pass_through() -> None:
    settings = build_model_settings(Config(temperature=0.2, max_output_tokens=512, top_p=0.8, top_k=20))
    assert settings["temperature"] == 0.2
    assert settings["max_tokens"] == 512
    assert settings["top_p"] == 0.8
    assert "extra_body" not in settings


def test_model_settings_forward_top_k_to_local_models() -> None:
    config = Config(generator_model="openai:qwen@http://127.0.0.1:8080/v1", top_k=20)
    assert build_model_settings(config)["extra_body"] == {"top_k": 20}


async def test_complete_returns_raw_text() -> None:
    seen: dict[str, object] = {}

    def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        seen["prompt"] = [
            part.content
            for message in messages
            for part in message.parts
            if part.part_kind == "user-prompt"
        ]
        return ModelResponse(parts=[TextPart('```json\n{"stories": []}\n```')])

    agent = GeneratorAgent(Config(), model=FunctionModel(respond))
    text = await agent.complete("give me news")

    assert text == '```json\n{"stories": []}\n```'
    assert seen["prompt"] == ["give me news"]


async def test_complete_maps_http_errors_to_upstream_error() -> None:
    def fail(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        raise ModelHTTPError(status_code=503, model_name="gemini", body={"error": "overloaded"})

    agent = GeneratorAgent(Config(), model=FunctionModel(fail))
    with pytest.raises(UpstreamError) as excinfo:
        await agent.complete("give me news")

    assert excinfo.value.status_code == 503
    assert excinfo.value.body == {"error": "overloaded"}


LOCAL_REQUEST = httpx.Request("POST", "http://127.0.0.1:8080/v1/chat/completions")


@pytest.mark.parametrize(
    "failure",
    [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("read timed out"),
        openai.APIConnectionError(request=LOCAL_REQUEST),
        openai.APITimeoutError(request=LOCAL_REQUEST),
        TimeoutError(),
    ],
)
async def test_complete_maps_transport_failures_to_upstream_error(failure: Exception) -> None:
    def fail(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        raise failure

    agent = GeneratorAgent(Config(), model=FunctionModel(fail))
    with pytest.raises(UpstreamError) as excinfo:
        await agent.complete("give me news")

    assert excinfo.value.status_code == 0
    assert excinfo.value.__cause__ is failure
    assert str(excinfo.value).startswith("Upstream request failed")
