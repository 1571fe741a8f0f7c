"""Gemini generateContent client with a single minimal-payload fallback."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Union

import httpx

from resume_forge.clients.response_shapes import ResponseShape, extract_text
from resume_forge.errors import GenerationError
from resume_forge.utils.json_parser import extract_json

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1/models"
DEFAULT_MODEL = "gemini-2.5-flash"

# Field names the extended payload may carry; a 400 naming one of them is
# treated as a rejected option rather than a generic failure.
OPTION_FIELDS = frozenset(
    {
        "generationConfig",
        "generation_config",
        "temperature",
        "maxOutputTokens",
        "max_output_tokens",
    }
)

_UNKNOWN_NAME = re.compile(r'Unknown name "([^"]+)"')


@dataclass(frozen=True)
class GenerationOptions:
    temperature: float = 0.2
    max_output_tokens: int | None = None
    model: str | None = None

    def __post_init__(self):
        if not 0.0 <= self.temperature <= 1.0:
            raise ValueError(f"temperature must be between 0.0 and 1.0, got {self.temperature}")
        if self.max_output_tokens is not None and self.max_output_tokens < 1:
            raise ValueError(f"max_output_tokens must be >= 1, got {self.max_output_tokens}")


@dataclass
class LLMResponse:
    """Generated text plus where it came from."""

    text: str
    shape: ResponseShape
    input_tokens: int = 0
    output_tokens: int = 0
    used_fallback: bool = False


@dataclass(frozen=True)
class Accepted:
    payload: object


@dataclass(frozen=True)
class RejectedField:
    status: int
    field: str
    body: str


@dataclass(frozen=True)
class Failed:
    status: int | None
    body: str


AttemptOutcome = Union[Accepted, RejectedField, Failed]


def _rejected_field(error_json: object) -> str | None:
    """Return the option name a 400 error body complains about, if any."""
    if not isinstance(error_json, dict):
        return None
    error = error_json.get("error")
    if not isinstance(error, dict):
        return None
    for detail in error.get("details") or []:
        if not isinstance(detail, dict):
            continue
        for violation in detail.get("fieldViolations") or []:
            if not isinstance(violation, dict):
                continue
            names = [segment for segment in str(violation.get("field") or "").split(".") if segment]
            match = _UNKNOWN_NAME.search(str(violation.get("description") or ""))
            if match:
                names.append(match.group(1).split(".")[-1])
            for name in names:
                if name in OPTION_FIELDS:
                    return name
    return None


def classify_response(response: httpx.Response) -> AttemptOutcome:
    """Turn an HTTP response into an attempt outcome."""
    body = response.text
    try:
        data = response.json()
    except ValueError:
        data = None
        decoded = False
    else:
        decoded = True

    if response.is_success:
        if not decoded:
            return Failed(response.status_code, f"Invalid JSON from Gemini: {body}")
        return Accepted(data)

    if response.status_code == 400:
        field = _rejected_field(data)
        if field is not None:
            return RejectedField(response.status_code, field, body)
    return Failed(response.status_code, body)


class GeminiClient:
    """Async client for the Gemini generateContent endpoint.

    The first attempt sends the prompt with a ``generationConfig`` block.
    If the endpoint rejects it (or fails for any other reason) one retry is
    made with a payload carrying only the prompt.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        max_output_tokens: int = 4096,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Gemini API key required.")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_output_tokens = max_output_tokens
        kwargs: dict = {"timeout": timeout}
        if transport is not None:
            kwargs["transport"] = transport
        self._http = httpx.AsyncClient(**kwargs)
        self._token_log: list[tuple[str, int, int]] = []  # (model, input_tokens, output_tokens)

    @classmethod
    def from_config(cls, gemini_config, **kwargs) -> GeminiClient:
        return cls(
            gemini_config.api_key,
            model=gemini_config.model,
            base_url=gemini_config.base_url,
            max_output_tokens=gemini_config.max_output_tokens,
            timeout=gemini_config.timeout,
            **kwargs,
        )

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def endpoint(self, model: str) -> str:
        return f"{self.base_url}/{model}:generateContent"

    @staticmethod
    def minimal_payload(prompt: str) -> dict:
        return {"contents": [{"parts": [{"text": prompt}]}]}

    def extended_payload(self, prompt: str, options: GenerationOptions) -> dict:
        payload = self.minimal_payload(prompt)
        payload["generationConfig"] = {
            "temperature": options.temperature,
            "maxOutputTokens": options.max_output_tokens or self.max_output_tokens,
        }
        return payload

    async def _post(self, url: str, payload: dict) -> AttemptOutcome:
        try:
            response = await self._http.post(
                url,
                params={"key": self.api_key},
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            return Failed(None, f"{type(e).__name__}: {e}")
        return classify_response(response)

    async def generate(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
    ) -> LLMResponse:
        """Send a prompt to Gemini and return the generated text."""
        options = options or GenerationOptions()
        model = options.model or self.model
        url = self.endpoint(model)
        logger.debug("Gemini call: model=%s, prompt=%d chars", model, len(prompt))

        outcome = await self._post(url, self.extended_payload(prompt, options))
        used_fallback = False
        if isinstance(outcome, RejectedField):
            logger.warning(
                "Gemini rejected option '%s'; retrying with minimal payload", outcome.field
            )
        elif isinstance(outcome, Failed):
            logger.warning(
                "Gemini call failed (status=%s); retrying with minimal payload", outcome.status
            )

        if not isinstance(outcome, Accepted):
            primary_body = outcome.body
            outcome = await self._post(url, self.minimal_payload(prompt))
            used_fallback = True
            if not isinstance(outcome, Accepted):
                logger.error("Gemini fallback call failed (status=%s)", outcome.status)
                raise GenerationError(primary_body, outcome.body)

        extracted = extract_text(outcome.payload)
        if extracted.shape is ResponseShape.OPAQUE:
            logger.warning("Unrecognised Gemini response shape; using raw JSON text")
        input_tokens, output_tokens = _usage(outcome.payload)
        logger.debug(
            "Gemini response: shape=%s, %d input, %d output tokens",
            extracted.shape.value, input_tokens, output_tokens,
        )
        self._token_log.append((model, input_tokens, output_tokens))
        return LLMResponse(
            text=extracted.text,
            shape=extracted.shape,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            used_fallback=used_fallback,
        )

    async def generate_json(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
    ) -> dict | list:
        """Send a prompt and parse JSON from the response."""
        response = await self.generate(prompt, options)
        return extract_json(response.text)

    def get_token_summary(self) -> dict:
        """Return accumulated token usage and reset the log."""
        summary = {
            "input": sum(t[1] for t in self._token_log),
            "output": sum(t[2] for t in self._token_log),
            "calls": list(self._token_log),
        }
        self._token_log.clear()
        return summary


def _usage(payload: object) -> tuple[int, int]:
    if not isinstance(payload, dict):
        return 0, 0
    usage = payload.get("usageMetadata")
    if not isinstance(usage, dict):
        return 0, 0
    try:
        return int(usage.get("promptTokenCount", 0)), int(usage.get("candidatesTokenCount", 0))
    except (TypeError, ValueError):
        return 0, 0

