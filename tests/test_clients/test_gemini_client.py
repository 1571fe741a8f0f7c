"""Tests for GeminiClient (generateContent over httpx)."""

from __future__ import annotations

import json

import httpx
import pytest

from resume_forge.clients.gemini_client import (
    Accepted,
    Failed,
    GeminiClient,
    GenerationOptions,
    RejectedField,
    classify_response,
)
from resume_forge.clients.response_shapes import ResponseShape
from resume_forge.errors import GenerationError

UNKNOWN_FIELD_BODY = {
    "error": {
        "code": 400,
        "message": 'Invalid JSON payload received. Unknown name "generationConfig": Cannot find field.',
        "status": "INVALID_ARGUMENT",
        "details": [
            {
                "@type": "type.googleapis.com/google.rpc.BadRequest",
                "fieldViolations": [
                    {
                        "description": 'Invalid JSON payload received. Unknown name "generationConfig": Cannot find field.'
                    }
                ],
            }
        ],
    }
}


def _payload(text: str, input_tokens: int = 12, output_tokens: int = 34) -> dict:
    """A successful generateContent response body in the documented shape."""
    return {
        "candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}],
        "usageMetadata": {
            "promptTokenCount": input_tokens,
            "candidatesTokenCount": output_tokens,
        },
    }


class Recorder:
    """MockTransport handler that replays queued responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def payload(self, index: int) -> dict:
        return json.loads(self.requests[index].content)


def _client(recorder: Recorder, **kwargs) -> GeminiClient:
    return GeminiClient("test-key", transport=httpx.MockTransport(recorder), **kwargs)


class TestGeminiClientInit:
    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="API key"):
            GeminiClient("")

    def test_from_config(self):
        from resume_forge.config import GeminiConfig

        cfg = GeminiConfig(api_key="k", model="gemini-test", max_output_tokens=99)
        client = GeminiClient.from_config(cfg)
        assert client.model == "gemini-test"
        assert client.max_output_tokens == 99
        assert client.endpoint("m").endswith("/m:generateContent")


class TestGenerate:
    async def test_success_uses_extended_payload(self):
        recorder = Recorder(httpx.Response(200, json=_payload("# Resume")))
        async with _client(recorder) as llm:
            result = await llm.generate("tailor me", GenerationOptions(temperature=0.3, max_output_tokens=512))

        assert result.text == "# Resume"
        assert result.shape is ResponseShape.CANDIDATE_CONTENT_PARTS
        assert result.used_fallback is False
        assert len(recorder.requests) == 1

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path.endswith("/gemini-2.5-flash:generateContent")
        assert request.url.params["key"] == "test-key"
        assert recorder.payload(0) == {
            "contents": [{"parts": [{"text": "tailor me"}]}],
            "generationConfig": {"temperature": 0.3, "maxOutputTokens": 512},
        }

    async def test_default_max_tokens_from_client(self):
        recorder = Recorder(httpx.Response(200, json=_payload("ok")))
        async with _client(recorder, max_output_tokens=2048) as llm:
            await llm.generate("p")
        assert recorder.payload(0)["generationConfig"]["maxOutputTokens"] == 2048

    async def test_model_override(self):
        recorder = Recorder(httpx.Response(200, json=_payload("ok")))
        async with _client(recorder) as llm:
            await llm.generate("p", GenerationOptions(model="gemini-2.5-pro"))
        assert "/gemini-2.5-pro:generateContent" in recorder.requests[0].url.path

    async def test_rejected_option_retries_with_prompt_only(self):
        recorder = Recorder(
            httpx.Response(400, json=UNKNOWN_FIELD_BODY),
            httpx.Response(200, json=_payload("fallback text")),
        )
        async with _client(recorder) as llm:
            result = await llm.generate("prompt text")

        assert len(recorder.requests) == 2
        assert recorder.payload(1) == {"contents": [{"parts": [{"text": "prompt text"}]}]}
        assert result.text == "fallback text"
        assert result.used_fallback is True

    async def test_other_failure_also_retries_once(self):
        recorder = Recorder(
            httpx.Response(503, text="overloaded"),
            httpx.Response(200, json={"output_text": "ok"}),
        )
        async with _client(recorder) as llm:
            result = await llm.generate("p")
        assert len(recorder.requests) == 2
        assert "generationConfig" not in recorder.payload(1)
        assert result.text == "ok"

    async def test_transport_error_retries(self):
        recorder = Recorder(
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json=_payload("ok")),
        )
        async with _client(recorder) as llm:
            result = await llm.generate("p")
        assert result.text == "ok"
        assert len(recorder.requests) == 2

    async def test_both_attempts_fail_raises_with_both_bodies(self):
        recorder = Recorder(
            httpx.Response(400, json=UNKNOWN_FIELD_BODY),
            httpx.Response(500, text="internal boom"),
        )
        async with _client(recorder) as llm:
            with pytest.raises(GenerationError) as exc_info:
                await llm.generate("p")

        message = str(exc_info.value)
        assert "Unknown name" in message
        assert "internal boom" in message
        assert exc_info.value.fallback_body == "internal boom"
        assert len(recorder.requests) == 2

    async def test_invalid_json_on_success_status_retries(self):
        recorder = Recorder(
            httpx.Response(200, text="<html>proxy error</html>"),
            httpx.Response(200, text="still not json"),
        )
        async with _client(recorder) as llm:
            with pytest.raises(GenerationError, match="proxy error"):
                await llm.generate("p")

    async def test_unrecognised_shape_returns_raw_json(self):
        body = {"promptFeedback": {"blockReason": "SAFETY"}}
        recorder = Recorder(httpx.Response(200, json=body))
        async with _client(recorder) as llm:
            result = await llm.generate("p")
        assert result.shape is ResponseShape.OPAQUE
        assert json.loads(result.text) == body

    async def test_generate_json(self):
        recorder = Recorder(httpx.Response(200, json=_payload('```json\n{"gaps": []}\n```')))
        async with _client(recorder) as llm:
            assert await llm.generate_json("p") == {"gaps": []}


class TestTokenSummary:
    async def test_accumulates_and_resets(self):
        recorder = Recorder(
            httpx.Response(200, json=_payload("a", input_tokens=10, output_tokens=5)),
            httpx.Response(200, json=_payload("b", input_tokens=20, output_tokens=8)),
        )
        async with _client(recorder) as llm:
            await llm.generate("one")
            await llm.generate("two")
            summary = llm.get_token_summary()
            assert summary["input"] == 30
            assert summary["output"] == 13
            assert len(summary["calls"]) == 2
            assert llm.get_token_summary()["calls"] == []

    async def test_missing_usage_counts_zero(self):
        recorder = Recorder(httpx.Response(200, json={"output_text": "x"}))
        async with _client(recorder) as llm:
            result = await llm.generate("p")
        assert (result.input_tokens, result.output_tokens) == (0, 0)


class TestClassifyResponse:
    def test_accepted(self):
        outcome = classify_response(httpx.Response(200, json={"a": 1}))
        assert outcome == Accepted({"a": 1})

    def test_rejected_field_from_field_path(self):
        body = {
            "error": {
                "details": [{"fieldViolations": [{"field": "generation_config.temperature"}]}]
            }
        }
        outcome = classify_response(httpx.Response(400, json=body))
        assert isinstance(outcome, RejectedField)
        assert outcome.field == "generation_config"

    def test_rejected_field_from_description(self):
        outcome = classify_response(httpx.Response(400, json=UNKNOWN_FIELD_BODY))
        assert isinstance(outcome, RejectedField)
        assert outcome.field == "generationConfig"

    def test_bad_request_about_other_field_is_failure(self):
        body = {"error": {"details": [{"fieldViolations": [{"field": "contents"}]}]}}
        outcome = classify_response(httpx.Response(400, json=body))
        assert isinstance(outcome, Failed)
        assert outcome.status == 400

    def test_auth_failure(self):
        outcome = classify_response(httpx.Response(403, text="API key not valid"))
        assert outcome == Failed(403, "API key not valid")


class TestGenerationOptions:
    def test_rejects_temperature_out_of_range(self):
        with pytest.raises(ValueError, match="temperature"):
            GenerationOptions(temperature=1.5)

    def test_rejects_zero_tokens(self):
        with pytest.raises(ValueError, match="max_output_tokens"):
            GenerationOptions(max_output_tokens=0)
