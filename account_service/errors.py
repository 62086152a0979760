"""Failure values produced by pipeline steps and the exception they turn into."""

from dataclasses import dataclass, field
from typing import Dict, TypeVar, Union

from fastapi import HTTPException

T = TypeVar("T")


@dataclass(frozen=True)
class Failure:
    """A step outcome that stops the pipeline: HTTP status code plus field -> reason."""
    error_code: int
    message: Dict[str, str] = field(default_factory=dict)


class ServiceError(HTTPException):
    """
    Structured error raised by the service layer.

    Carries the status code and the field -> reason mapping; the app renders
    it as ``{"errors": message}`` with ``error_code`` as the status.
    """

    def __init__(self, error_code: int, message: Dict[str, str]):
        super().__init__(status_code=error_code, detail=message)
        self.error_code = error_code
        self.message = message


def raise_for_failure(value: Union[T, Failure]) -> T:
    """Raises ServiceError if the value is a Failure, otherwise returns it unchanged."""
    if isinstance(value, Failure):
        raise ServiceError(value.error_code, value.message)
    return value
