import pytest

from receiptscan.config import get_settings
from receiptscan.receipt.base import Candidate, FunctionCall, ModelResponse, TextPart
from receiptscan.receipt.errors import ModelAPIError

VALID_ARGS = {
    "date": "2024-02-17",
    "amount": 34.15,
    "shop": "Mary's Apotheke",
    "description": "Omeprazol, Artelac Lipids",
}


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def call_response(name: str = "addReceipt", args: dict | None = None) -> ModelResponse:
    return ModelResponse(candidates=[Candidate(parts=[FunctionCall(name=name, args=dict(VALID_ARGS) if args is None else args)])])


def text_response(text: str) -> ModelResponse:
    return ModelResponse(candidates=[Candidate(parts=[TextPart(text=text)])])


class ScriptedModel:
    """Plays back a fixed list of responses; exceptions in the list are raised."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def generate(self, image, mime_type, instruction):
        self.calls.append((image, mime_type, instruction))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingSleep:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def sleeper():
    return RecordingSleep()


def api_error(status: int) -> ModelAPIError:
    return ModelAPIError(status, "upstream")
