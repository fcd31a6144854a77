"""Free-text variant: the model answers with JSON in prose instead of a function call.

Kept for models without function calling. The function-call extractor is the
default because it pins the reply shape at the API level.
"""

import json
import logging

from pydantic import ValidationError

from receiptscan.receipt.base import LegacyExpense, ReceiptModel, TextPart
from receiptscan.receipt.errors import ResponseParseError, ResponseShapeError
from receiptscan.receipt.extractor import DEFAULT_MEDIA_TYPE, single_part
from receiptscan.receipt.retry import RetryPolicy, call_with_retry

logger = logging.getLogger("receiptscan")

PROMPT = """\
Parse this receipt and reply with a single JSON object with these keys:
- date: receipt date in ISO8601 format, eg. 2024-02-17
- amount: total amount of the receipt, as a string, eg. "34.15"
- shop: shop where the purchase took place
- description: brief description of the purchased articles
- confidence: how sure you are about the values, between 0.0 and 1.0
Reply with the JSON object only."""

FENCE_PREFIX = "```json\n"
FENCE_SUFFIX = "\n```"


def strip_markdown_fence(text: str) -> str:
    """Drop a ```json ... ``` wrapper. Text without one is returned unchanged."""
    if text.startswith(FENCE_PREFIX):
        text = text[len(FENCE_PREFIX):]
    if text.endswith(FENCE_SUFFIX):
        text = text[: -len(FENCE_SUFFIX)]
    return text


class TextPromptExtractor:
    def __init__(self, model: ReceiptModel, retry_policy: RetryPolicy | None = None, sleep=None, jitter=None):
        self.model = model
        self.retry_policy = retry_policy or RetryPolicy()
        self._retry_kwargs = {k: v for k, v in (("sleep", sleep), ("jitter", jitter)) if v is not None}

    def extract(self, image_bytes: bytes, content_type: str | None = None, filename: str | None = None) -> LegacyExpense:
        media_type = content_type or DEFAULT_MEDIA_TYPE
        response = call_with_retry(
            lambda: self.model.generate(image_bytes, media_type, PROMPT),
            self.retry_policy,
            **self._retry_kwargs,
        )

        part = single_part(response)
        if not isinstance(part, TextPart):
            raise ResponseShapeError(
                ResponseShapeError.PART_KIND,
                f"expected TextPart, got: {type(part).__name__}",
            )

        raw = strip_markdown_fence(part.text)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ResponseParseError(f"reply is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ResponseParseError(f"expected a JSON object, got: {type(data).__name__}")

        try:
            return LegacyExpense.model_validate({**data, "filename": filename})
        except ValidationError as e:
            raise ResponseParseError(f"reply does not describe a receipt: {e}") from e
