from receiptscan.config import Settings, get_settings
from receiptscan.receipt.base import ReceiptExtractor
from receiptscan.receipt.extractor import FunctionCallExtractor
from receiptscan.receipt.gemini_provider import GeminiModel
from receiptscan.receipt.legacy import TextPromptExtractor
from receiptscan.receipt.retry import RetryPolicy
from receiptscan.receipt.schema import function_declaration

PROVIDERS = ("gemini", "gemini-text")


def get_receipt_extractor(settings: Settings | None = None) -> ReceiptExtractor:
    """Return the configured receipt extraction provider."""
    settings = settings or get_settings()
    provider = settings.receipt_provider
    retry_policy = RetryPolicy(max_attempts=settings.max_attempts)

    if provider == "gemini":
        model = GeminiModel(
            settings.api_key,
            model=settings.gemini_model,
            function=function_declaration(),
            base_url=settings.gemini_base_url,
            timeout=settings.timeout_seconds,
        )
        return FunctionCallExtractor(model, retry_policy)
    if provider == "gemini-text":
        model = GeminiModel(
            settings.api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.timeout_seconds,
        )
        return TextPromptExtractor(model, retry_policy)
    raise ValueError(f"Unknown receipt provider: {provider}")
