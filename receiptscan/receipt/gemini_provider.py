import base64
import logging
import time

import httpx

from receiptscan.config import DEFAULT_BASE_URL, DEFAULT_MODEL
from receiptscan.receipt.base import Candidate, FunctionCall, ModelResponse, Part, TextPart, UnknownPart
from receiptscan.receipt.errors import ModelAPIError, UpstreamError

logger = logging.getLogger("receiptscan")


def _parse_part(raw: dict) -> Part:
    if "functionCall" in raw:
        call = raw["functionCall"]
        return FunctionCall(name=call.get("name", ""), args=call.get("args") or {})
    if "text" in raw:
        return TextPart(text=raw["text"])
    return UnknownPart(raw=raw)


def parse_response(data: dict) -> ModelResponse:
    """Turn a ``generateContent`` JSON reply into a ``ModelResponse``."""
    candidates = []
    for raw in data.get("candidates") or []:
        content = raw.get("content") or {}
        candidates.append(
            Candidate(
                parts=[_parse_part(p) for p in content.get("parts") or []],
                finish_reason=raw.get("finishReason"),
            )
        )
    return ModelResponse(candidates=candidates)


class GeminiModel:
    """Gemini ``generateContent`` over REST, optionally with one callable function."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        function: dict | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        client: httpx.Client | None = None,
    ):
        if not api_key:
            raise ValueError("Gemini API key is not set (API_KEY or GEMINI_API_KEY)")
        self.model = model
        self.function = function
        self.url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    def build_request(self, image: bytes, mime_type: str, instruction: str) -> dict:
        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"inlineData": {"mimeType": mime_type, "data": base64.b64encode(image).decode("utf-8")}},
                        {"text": instruction},
                    ],
                }
            ],
        }
        if self.function is not None:
            body["tools"] = [{"functionDeclarations": [self.function]}]
        return body

    def generate(self, image: bytes, mime_type: str, instruction: str) -> ModelResponse:
        t0 = time.monotonic()
        try:
            resp = self._client.post(
                self.url,
                headers={"x-goog-api-key": self._api_key, "Content-Type": "application/json"},
                json=self.build_request(image, mime_type, instruction),
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ModelAPIError(e.response.status_code, _error_message(e.response)) from e
        except httpx.RequestError as e:
            raise UpstreamError(f"generateContent: {e}") from e

        elapsed_ms = round((time.monotonic() - t0) * 1000)
        logger.debug(
            "Gemini call finished",
            extra={"extra_data": {"model": self.model, "duration_ms": elapsed_ms, "image_bytes": len(image)}},
        )
        try:
            return parse_response(resp.json())
        except (ValueError, AttributeError, TypeError) as e:
            raise UpstreamError(f"generateContent: unreadable reply: {e}") from e

    def close(self):
        self._client.close()


def _error_message(resp: httpx.Response) -> str:
    try:
        return resp.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return resp.text[:200]
