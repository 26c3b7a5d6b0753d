"""Uniform ``{data, error}`` return shape used by every public service call."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from .error_handlers import StudyFlowError

T = TypeVar("T")


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Either ``data`` or ``error``; callers check ``error`` first."""

    data: Optional[T] = None
    error: Optional[StudyFlowError] = None

    def __post_init__(self) -> None:
        if self.error is not None and self.data is not None:
            raise ValueError("ServiceResult cannot carry both data and an error")

    @classmethod
    def ok(cls, data: T) -> "ServiceResult[T]":
        return cls(data=data, error=None)

    @classmethod
    def fail(cls, error: StudyFlowError) -> "ServiceResult[T]":
        return cls(data=None, error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def map(self, func: Callable[[T], Any]) -> "ServiceResult[Any]":
        if self.error is not None:
            return ServiceResult.fail(self.error)
        return ServiceResult.ok(func(self.data))

    def to_dict(self, serialize: Optional[Callable[[T], Any]] = None) -> dict:
        if self.error is not None:
            return {'data': None, 'error': self.error.to_dict()}
        data = serialize(self.data) if serialize else self.data
        return {'data': data, 'error': None}

    @property
    def status_code(self) -> int:
        return self.error.status_code if self.error is not None else 200


def json_result(result: ServiceResult, serialize: Optional[Callable[[Any], Any]] = None):
    """Flask ``(response, status)`` pair for a ServiceResult."""
    from flask import jsonify

    return jsonify(result.to_dict(serialize)), result.status_code
