"""
Error taxonomy for the verification and pricing pipeline.

Degraded signals (no chain data, no OCR fields, low confidence) are not
errors and never raise; they only skip the matching pricing adjustment.
"""


class FinvoiceError(Exception):
    """Base class for all pipeline errors."""


class DecodeError(FinvoiceError):
    """The document could not be turned into recognizable text."""


class OcrTimeout(DecodeError):
    """The OCR engine did not answer in time."""


class ValidationError(FinvoiceError):
    """User input is invalid. Nothing is persisted."""

    def __init__(self, problems: list[str] | str) -> None:
        if isinstance(problems, str):
            problems = [problems]
        self.problems = problems
        super().__init__("; ".join(problems))


class VerificationIncomplete(FinvoiceError):
    """The upload has not reached verified or manual_override yet."""


class InvalidTransition(FinvoiceError):
    """A state machine was asked to make a move it does not allow."""

    def __init__(self, machine: str, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"{machine}: cannot move from '{current}' to '{target}'")
