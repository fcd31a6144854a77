import logging

from receiptscan.receipt.base import Expense, FunctionCall, ModelResponse, Part, ReceiptModel
from receiptscan.receipt.errors import ResponseShapeError, WrongFunctionError
from receiptscan.receipt.retry import RetryPolicy, call_with_retry
from receiptscan.receipt.schema import FUNCTION_NAME, validate_arguments

logger = logging.getLogger("receiptscan")

PROMPT = f"Parse this receipt and pass the data to the {FUNCTION_NAME} function."
DEFAULT_MEDIA_TYPE = "image/jpeg"


def single_part(response: ModelResponse) -> Part:
    """Return the only part of the only candidate, or raise ``ResponseShapeError``."""
    if len(response.candidates) != 1:
        raise ResponseShapeError(
            ResponseShapeError.CANDIDATE_COUNT,
            f"expected 1 candidate, got: {len(response.candidates)}",
        )
    candidate = response.candidates[0]
    parts = candidate.parts
    if len(parts) != 1:
        message = f"expected 1 part, got: {len(parts)}"
        if candidate.finish_reason:
            message += f" (finish reason: {candidate.finish_reason})"
        raise ResponseShapeError(ResponseShapeError.PART_COUNT, message)
    return parts[0]


class FunctionCallExtractor:
    """Asks the model to call ``addReceipt`` and validates what it passed."""

    def __init__(self, model: ReceiptModel, retry_policy: RetryPolicy | None = None, sleep=None, jitter=None):
        self.model = model
        self.retry_policy = retry_policy or RetryPolicy()
        self._retry_kwargs = {k: v for k, v in (("sleep", sleep), ("jitter", jitter)) if v is not None}

    def extract(self, image_bytes: bytes, content_type: str | None = None, filename: str | None = None) -> Expense:
        media_type = content_type or DEFAULT_MEDIA_TYPE
        response = call_with_retry(
            lambda: self.model.generate(image_bytes, media_type, PROMPT),
            self.retry_policy,
            **self._retry_kwargs,
        )

        part = single_part(response)
        if not isinstance(part, FunctionCall):
            raise ResponseShapeError(
                ResponseShapeError.PART_KIND,
                f"expected FunctionCall, got: {type(part).__name__}",
            )
        if part.name != FUNCTION_NAME:
            raise WrongFunctionError(FUNCTION_NAME, part.name)
        if not isinstance(part.args, dict):
            raise ResponseShapeError(
                ResponseShapeError.PART_KIND,
                f"expected {FUNCTION_NAME} args object, got: {type(part.args).__name__}",
            )

        args = validate_arguments(part.args)
        expense = Expense.from_arguments(args, filename=filename)
        logger.info(
            "Receipt extracted",
            extra={"extra_data": {"filename": filename, "shop": expense.shop, "amount": expense.amount}},
        )
        return expense
