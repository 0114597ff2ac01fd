"""Per-call configuration, call information and call options."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .compression import CompressionEncoding


@dataclass
class RpcConfig:
    """Timeouts (in seconds) and compression settings of a call."""

    connect_timeout: float | None = None
    read_timeout: float | None = None
    write_timeout: float | None = None
    accept_compressions: list[CompressionEncoding] | None = None
    send_compressions: list[CompressionEncoding] | None = None

    def merge(self, other: RpcConfig) -> None:
        """Take every setting that ``other`` has set, keeping the rest."""
        if other.connect_timeout is not None:
            self.connect_timeout = other.connect_timeout
        if other.read_timeout is not None:
            self.read_timeout = other.read_timeout
        if other.write_timeout is not None:
            self.write_timeout = other.write_timeout
        if other.accept_compressions is not None:
            self.accept_compressions = list(other.accept_compressions)
        if other.send_compressions is not None:
            self.send_compressions = list(other.send_compressions)


@dataclass
class Endpoint:
    """One side of a call: a service name, an optional address and tags."""

    service_name: str = ""
    address: Any = None
    tags: dict[Any, Any] = field(default_factory=dict)


@dataclass
class CallInfo:
    """What a call carries through the layers: method, endpoints and config."""

    method: str | None = None
    caller: Endpoint | None = None
    callee: Endpoint | None = None
    config: RpcConfig = field(default_factory=RpcConfig)


@dataclass
class CallOpt:
    """Options that apply to a single call.

    Setting ``address`` sends the call straight to it, skipping discovery
    and load balancing.
    """

    callee_tags: dict[Any, Any] = field(default_factory=dict)
    address: Any = None
    config: RpcConfig = field(default_factory=RpcConfig)
    caller_tags: dict[Any, Any] = field(default_factory=dict)

    def apply(self, info: CallInfo) -> None:
        """Apply the options to ``info``, which must have both endpoints."""
        if info.caller is None:
            raise ValueError("call info has no caller endpoint")
        if info.callee is None:
            raise ValueError("call info has no callee endpoint")
        info.caller.tags.update(self.caller_tags)
        info.callee.tags.update(self.callee_tags)
        if self.address is not None:
            info.callee.address = self.address
        info.config.merge(self.config)