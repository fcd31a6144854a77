"""The ``addReceipt`` parameter table.

One table drives both sides of the model call: the function declaration we
send, and the checks we run on the arguments the model sends back.
"""

from dataclasses import dataclass
from enum import Enum

from receiptscan.receipt.errors import FieldTypeError, MissingFieldError

FUNCTION_NAME = "addReceipt"
FUNCTION_DESCRIPTION = "Add a new receipt."


class ParamType(str, Enum):
    STRING = "STRING"
    NUMBER = "NUMBER"


@dataclass(frozen=True)
class Parameter:
    name: str
    type: ParamType
    description: str
    required: bool = True

    def accepts(self, value) -> bool:
        if self.type is ParamType.STRING:
            return isinstance(value, str)
        # bool is an int subclass; a true/false amount is never a number here
        return isinstance(value, (int, float)) and not isinstance(value, bool)


PARAMETERS: tuple[Parameter, ...] = (
    Parameter("date", ParamType.STRING, "Receipt date in ISO8601 format, eg. 2024-02-17"),
    Parameter("amount", ParamType.NUMBER, "Total amount of the receipt."),
    Parameter("shop", ParamType.STRING, "Shop where the purchase took place."),
    Parameter("description", ParamType.STRING, "Brief description of the purchased articles."),
)


def required_parameters() -> list[str]:
    return [p.name for p in PARAMETERS if p.required]


def function_declaration() -> dict:
    """Gemini ``FunctionDeclaration`` for ``addReceipt``."""
    return {
        "name": FUNCTION_NAME,
        "description": FUNCTION_DESCRIPTION,
        "parameters": {
            "type": "OBJECT",
            "properties": {
                p.name: {"type": p.type.value, "description": p.description}
                for p in PARAMETERS
            },
            "required": required_parameters(),
        },
    }


def validate_arguments(args: dict) -> dict:
    """Check *args* against the table and return only the declared fields.

    Raises ``MissingFieldError`` or ``FieldTypeError`` naming the first
    offending parameter, in table order.
    """
    for p in PARAMETERS:
        if p.name not in args:
            if p.required:
                raise MissingFieldError(p.name, args)
            continue
        if not p.accepts(args[p.name]):
            raise FieldTypeError(p.name, p.type.value, args[p.name])
    return {p.name: args[p.name] for p in PARAMETERS if p.name in args}
