class ExtractionError(Exception):
    """Base class for every way a single receipt can fail to extract."""


class UpstreamError(ExtractionError):
    """The model could not be reached or returned an error."""


class ModelAPIError(UpstreamError):
    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        self.message = message
        super().__init__(f"model API returned status {status_code}: {message}" if message
                         else f"model API returned status {status_code}")


class ResponseShapeError(ExtractionError):
    CANDIDATE_COUNT = "candidate_count"
    PART_COUNT = "part_count"
    PART_KIND = "part_kind"

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)


class WrongFunctionError(ExtractionError):
    def __init__(self, expected: str, got: str):
        self.expected = expected
        self.got = got
        super().__init__(f"expected {expected}, got: {got}")


class MissingFieldError(ExtractionError):
    def __init__(self, parameter: str, args: dict):
        self.parameter = parameter
        super().__init__(f"args ({args}) is missing required parameter {parameter}")


class FieldTypeError(ExtractionError):
    def __init__(self, parameter: str, expected: str, got: object):
        self.parameter = parameter
        self.expected = expected
        self.got = type(got).__name__
        super().__init__(f"parameter {parameter} must be {expected}, got: {self.got}")


class ResponseParseError(ExtractionError):
    """The textual reply could not be turned into a receipt."""
