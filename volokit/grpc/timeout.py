"""Server-side deadline taken from the ``grpc-timeout`` request header."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .status import Status

GRPC_TIMEOUT_HEADER = "grpc-timeout"

_U64_MAX = 2**64 - 1
_AMOUNT = re.compile(r"\+?[0-9]+")
_SECONDS_PER_UNIT = {"H": 60 * 60, "M": 60, "S": 1}
_UNITS_PER_SECOND = {"m": 1_000, "u": 1_000_000, "n": 1_000_000_000}

logger = logging.getLogger(__name__)


class InvalidTimeoutHeader(ValueError):
    """The ``grpc-timeout`` header is present but malformed."""

    def __init__(self, value: str) -> None:
        super().__init__(f"invalid grpc-timeout header: {value!r}")
        self.value = value


def _header(headers: Mapping[str, str], name: str) -> str | None:
    if name in headers:
        return headers[name]
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def parse_grpc_timeout(headers: Mapping[str, str]) -> float | None:
    """Read the ``grpc-timeout`` header as a number of seconds.

    Returns ``None`` when the header is absent and raises
    :class:`InvalidTimeoutHeader` when its value cannot be parsed.
    """
    value = _header(headers, GRPC_TIMEOUT_HEADER)
    if value is None:
        return None
    if not value:
        raise InvalidTimeoutHeader(value)
    amount, unit = value[:-1], value[-1]
    if not _AMOUNT.fullmatch(amount):
        raise InvalidTimeoutHeader(value)
    number = int(amount)
    if number > _U64_MAX:
        raise InvalidTimeoutHeader(value)
    if unit in _SECONDS_PER_UNIT:
        return float(number * _SECONDS_PER_UNIT[unit])
    if unit in _UNITS_PER_SECOND:
        return number / _UNITS_PER_SECOND[unit]
    raise InvalidTimeoutHeader(value)


@dataclass
class GrpcTimeout:
    """Runs the inner service under the shorter of the client's and the server's timeout.

    ``inner`` is any object with an ``async call(cx, request)`` method; the
    request must have a ``headers`` mapping. Timeouts are in seconds.
    """

    inner: Any
    server_timeout: float | None = None

    async def call(self, cx: Any, request: Any) -> Any:
        try:
            client_timeout = parse_grpc_timeout(request.headers)
        except InvalidTimeoutHeader:
            logger.debug("error parsing grpc-timeout header")
            client_timeout = None

        timeouts = [t for t in (client_timeout, self.server_timeout) if t is not None]
        if not timeouts:
            return await self.inner.call(cx, request)
        try:
            return await asyncio.wait_for(self.inner.call(cx, request), min(timeouts))
        except asyncio.TimeoutError:
            raise Status.deadline_exceeded("timeout") from None


@dataclass
class GrpcTimeoutLayer:
    """Wraps services in :class:`GrpcTimeout` with a fixed server timeout."""

    timeout: float | None = None

    def layer(self, inner: Any) -> GrpcTimeout:
        return GrpcTimeout(inner, self.timeout)