"""gRPC status codes and the error that carries them."""

from __future__ import annotations

import enum


class Code(enum.IntEnum):
    """The canonical gRPC status codes."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


class Status(Exception):
    """A gRPC status: a code and a message, raised when a call fails."""

    def __init__(self, code: Code | int, message: str = "") -> None:
        code = Code(code)
        super().__init__(code, message)
        self.code = code
        self.message = message

    @classmethod
    def internal(cls, message: str) -> Status:
        return cls(Code.INTERNAL, message)

    @classmethod
    def unimplemented(cls, message: str) -> Status:
        return cls(Code.UNIMPLEMENTED, message)

    @classmethod
    def deadline_exceeded(cls, message: str) -> Status:
        return cls(Code.DEADLINE_EXCEEDED, message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Status):
            return NotImplemented
        return self.code == other.code and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.code, self.message))

    def __str__(self) -> str:
        return f"status: {self.code.name}, message: {self.message!r}"

    def __repr__(self) -> str:
        return f"Status(code={self.code.name}, message={self.message!r})"