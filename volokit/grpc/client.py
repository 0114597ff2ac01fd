"""gRPC client: a builder that assembles layers around a transport, and the client itself."""

from __future__ import annotations

import copy
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from .compression import CompressionEncoding
from .config import CallInfo, CallOpt, Endpoint, RpcConfig

DEFAULT_STREAM_WINDOW_SIZE = 1024 * 1024 * 2
DEFAULT_CONN_WINDOW_SIZE = 1024 * 1024 * 5
DEFAULT_MAX_FRAME_SIZE = 1024 * 16
DEFAULT_KEEPALIVE_TIMEOUT = 20.0
DEFAULT_MAX_CONCURRENT_RESET_STREAMS = 10

_U32_MAX = 2**32 - 1


def _u32(value: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U32_MAX:
        raise ValueError(f"{what} must be an integer between 0 and {_U32_MAX}, got {value!r}")
    return value


def _non_negative(value: float, what: str) -> float:
    if isinstance(value, bool) or value < 0:
        raise ValueError(f"{what} must not be negative, got {value!r}")
    return value


@dataclass
class Http2Config:
    """Settings of the underlying HTTP/2 connection; durations are in seconds."""

    init_stream_window_size: int = DEFAULT_STREAM_WINDOW_SIZE
    init_connection_window_size: int = DEFAULT_CONN_WINDOW_SIZE
    adaptive_window: bool = False
    max_frame_size: int = DEFAULT_MAX_FRAME_SIZE
    http2_keepalive_interval: float | None = None
    http2_keepalive_timeout: float = DEFAULT_KEEPALIVE_TIMEOUT
    http2_keepalive_while_idle: bool = False
    max_concurrent_reset_streams: int = DEFAULT_MAX_CONCURRENT_RESET_STREAMS
    retry_canceled_requests: bool = True
    accept_http1: bool = False


class _WithOpt:
    """Applies call options to the call information before calling the inner service."""

    def __init__(self, inner: Any, opt: CallOpt) -> None:
        self.inner = inner
        self.opt = opt

    async def call(self, info: CallInfo, request: Any) -> Any:
        self.opt.apply(info)
        return await self.inner.call(info, request)


@dataclass(frozen=True)
class _ClientSettings:
    callee_name: str
    caller_name: str
    rpc_config: RpcConfig
    target: Any


class Client:
    """A client for a gRPC service; cheap to copy and meant to be shared."""

    def __init__(self, transport: Any, settings: _ClientSettings) -> None:
        self.transport = transport
        self._settings = settings

    @property
    def callee_name(self) -> str:
        return self._settings.callee_name

    @property
    def caller_name(self) -> str:
        return self._settings.caller_name

    @property
    def target(self) -> Any:
        return self._settings.target

    @property
    def rpc_config(self) -> RpcConfig:
        return copy.deepcopy(self._settings.rpc_config)

    def make_call_info(self, method: str) -> CallInfo:
        """Fresh call information for ``method``, with its own copy of the config."""
        settings = self._settings
        caller = Endpoint(service_name=settings.caller_name)
        callee = Endpoint(service_name=settings.callee_name, address=settings.target)
        return CallInfo(
            method=method,
            caller=caller,
            callee=callee,
            config=copy.deepcopy(settings.rpc_config),
        )

    def with_opt(self, opt: CallOpt) -> Client:
        """A client whose calls first apply ``opt``; this client is left unchanged."""
        return Client(_WithOpt(self.transport, opt), self._settings)

    async def call(self, info: CallInfo, request: Any) -> Any:
        return await self.transport.call(info, request)


def _apply_layer(layer: Any, service: Any) -> Any:
    make = getattr(layer, "layer", None)
    if make is not None:
        return make(service)
    if callable(layer):
        return layer(service)
    raise TypeError(f"{layer!r} is neither a layer nor callable")


class ClientBuilder:
    """Collects settings and layers, then builds a :class:`Client` around a transport.

    Layers are objects with a ``layer(service)`` method or plain callables
    taking the service to wrap. The order of a call is
    outer layers -> inner layers -> transport.
    """

    def __init__(
        self,
        service_name: str,
        mk_client: Callable[[Client], Any] | None = None,
    ) -> None:
        self.http2_config = Http2Config()
        self.rpc_config = RpcConfig()
        self.callee_name = str(service_name)
        self.caller_name_value = ""
        self.target: Any = None
        self.inner_layers: list[Any] = []
        self.outer_layers: list[Any] = []
        self.mk_client = mk_client

    def http2_init_stream_window_size(self, size: int) -> ClientBuilder:
        self.http2_config.init_stream_window_size = _u32(size, "stream window size")
        return self

    def http2_init_connection_window_size(self, size: int) -> ClientBuilder:
        self.http2_config.init_connection_window_size = _u32(size, "connection window size")
        return self

    def http2_adaptive_window(self, enabled: bool) -> ClientBuilder:
        self.http2_config.adaptive_window = bool(enabled)
        return self

    def http2_max_frame_size(self, size: int) -> ClientBuilder:
        self.http2_config.max_frame_size = _u32(size, "max frame size")
        return self

    def http2_keepalive_interval(self, interval: float | None) -> ClientBuilder:
        self.http2_config.http2_keepalive_interval = (
            None if interval is None else _non_negative(interval, "keepalive interval")
        )
        return self

    def http2_keepalive_timeout(self, timeout: float) -> ClientBuilder:
        self.http2_config.http2_keepalive_timeout = _non_negative(timeout, "keepalive timeout")
        return self

    def http2_keepalive_while_idle(self, enabled: bool) -> ClientBuilder:
        self.http2_config.http2_keepalive_while_idle = bool(enabled)
        return self

    def http2_max_concurrent_reset_streams(self, size: int) -> ClientBuilder:
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise ValueError(f"max concurrent reset streams must be a non-negative integer, got {size!r}")
        self.http2_config.max_concurrent_reset_streams = size
        return self

    def retry_canceled_requests(self, enabled: bool) -> ClientBuilder:
        self.http2_config.retry_canceled_requests = bool(enabled)
        return self

    def accept_http1(self, accept: bool) -> ClientBuilder:
        self.http2_config.accept_http1 = bool(accept)
        return self

    def connect_timeout(self, timeout: float) -> ClientBuilder:
        self.rpc_config.connect_timeout = _non_negative(timeout, "connect timeout")
        return self

    def read_timeout(self, timeout: float) -> ClientBuilder:
        self.rpc_config.read_timeout = _non_negative(timeout, "read timeout")
        return self

    def write_timeout(self, timeout: float) -> ClientBuilder:
        self.rpc_config.write_timeout = _non_negative(timeout, "write timeout")
        return self

    def caller_name(self, name: str) -> ClientBuilder:
        self.caller_name_value = str(name)
        return self

    def send_compressions(self, encodings: Sequence[CompressionEncoding]) -> ClientBuilder:
        self.rpc_config.send_compressions = list(encodings)
        return self

    def accept_compressions(self, encodings: Sequence[CompressionEncoding]) -> ClientBuilder:
        self.rpc_config.accept_compressions = list(encodings)
        return self

    def address(self, target: Any) -> ClientBuilder:
        """Send every call to ``target``, skipping discovery and load balancing."""
        self.target = target
        return self

    def layer_inner(self, layer: Any) -> ClientBuilder:
        """Add an inner layer after the existing ones (closest to the transport)."""
        self.inner_layers.append(layer)
        return self

    def layer_outer(self, layer: Any) -> ClientBuilder:
        """Add an outer layer after the existing outer ones."""
        self.outer_layers.append(layer)
        return self

    def layer_outer_front(self, layer: Any) -> ClientBuilder:
        """Add an outer layer in front of all others (the first to see a call)."""
        self.outer_layers.insert(0, layer)
        return self

    def build(self, transport: Any) -> Any:
        """Wrap ``transport`` in the layers and make the client."""
        service = transport
        for layer in reversed(self.inner_layers):
            service = _apply_layer(layer, service)
        for layer in reversed(self.outer_layers):
            service = _apply_layer(layer, service)
        settings = _ClientSettings(
            callee_name=self.callee_name,
            caller_name=self.caller_name_value,
            rpc_config=copy.deepcopy(self.rpc_config),
            target=self.target,
        )
        client = Client(service, settings)
        if self.mk_client is None:
            return client
        return self.mk_client(client)