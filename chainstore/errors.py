"""Errors raised by the storage layer."""

from __future__ import annotations


class NotFoundError(LookupError):
    """Raised when an entity cannot be found in a store."""

    def __init__(self, message: str = "could not find entity") -> None:
        super().__init__(message)


class FlowError(Exception):
    """Wraps an error raised while executing a transaction or script."""

    def __init__(self, flow_error: BaseException) -> None:
        super().__init__(str(flow_error))
        self.flow_error = flow_error
        self.__cause__ = flow_error

    def __str__(self) -> str:
        return str(self.flow_error)