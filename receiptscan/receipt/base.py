from dataclasses import dataclass, field
from typing import Protocol, Union

from pydantic import BaseModel, ConfigDict, field_validator


class Expense(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str | None = None
    date: str  # ISO8601, as read off the receipt
    amount: float
    shop: str
    description: str

    @classmethod
    def from_arguments(cls, args: dict, filename: str | None = None) -> "Expense":
        """Build from ``addReceipt`` arguments that already passed ``validate_arguments``."""
        return cls(
            filename=filename,
            date=args["date"],
            amount=float(args["amount"]),
            shop=args["shop"],
            description=args["description"],
        )


class LegacyExpense(BaseModel):
    """Receipt parsed from a free-text JSON reply."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    filename: str | None = None
    date: str
    amount: str  # kept verbatim, eg. "34.15"
    shop: str
    description: str
    confidence: float

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_text(cls, v):
        # Models often drop the quotes around numbers
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


# --- Model replies ---

@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: dict = field(default_factory=dict)


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class UnknownPart:
    """A part kind we don't handle (inline data, code execution, ...)."""

    raw: dict = field(default_factory=dict)


Part = Union[FunctionCall, TextPart, UnknownPart]


@dataclass(frozen=True)
class Candidate:
    parts: list[Part] = field(default_factory=list)
    finish_reason: str | None = None


@dataclass(frozen=True)
class ModelResponse:
    candidates: list[Candidate] = field(default_factory=list)


class ReceiptModel(Protocol):
    def generate(self, image: bytes, mime_type: str, instruction: str) -> ModelResponse: ...


class ReceiptExtractor(Protocol):
    def extract(
        self, image_bytes: bytes, content_type: str, filename: str | None = None
    ) -> Expense | LegacyExpense: ...
