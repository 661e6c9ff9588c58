"""Error kinds raised by the interview engine."""
from __future__ import annotations


class InterviewError(RuntimeError):  # Base engine error
    pass


class ServiceUnavailableError(InterviewError):
    """The text-generation dependency was never configured."""


class RequestValidationError(InterviewError):
    """A caller supplied missing or inconsistent input."""


class NotFoundError(InterviewError):
    """Unknown session, evaluation or summary."""


class MalformedResponseError(InterviewError):
    """Generated text did not have the expected shape; recovered by the evaluator."""


class NoQuestionsAvailableError(InterviewError):
    """The question corpus has nothing for the requested filter."""


__all__ = [
    "InterviewError",
    "ServiceUnavailableError",
    "RequestValidationError",
    "NotFoundError",
    "MalformedResponseError",
    "NoQuestionsAvailableError",
]
