"""Message compression encodings negotiated through gRPC headers."""

from __future__ import annotations

import enum
import gzip
import zlib
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from .status import Status

ENCODING_HEADER = "grpc-encoding"
ACCEPT_ENCODING_HEADER = "grpc-accept-encoding"

LEVEL_NONE = 0
LEVEL_FAST = 1
LEVEL_BEST = 9
DEFAULT_LEVEL = 6


class EncodingKind(enum.Enum):
    """The compression algorithms that are supported."""

    IDENTITY = "identity"
    GZIP = "gzip"
    ZLIB = "zlib"


def _header_get(headers: Mapping[str, str], name: str) -> str | None:
    """Look a header up by name, ignoring case."""
    if name in headers:
        return headers[name]
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


@dataclass(frozen=True, eq=False)
class CompressionEncoding:
    """An encoding and, for gzip and zlib, an optional compression level.

    Two encodings are equal when their algorithm is the same, whatever
    their levels are.
    """

    kind: EncodingKind
    level: int | None = None

    def __post_init__(self) -> None:
        if self.level is None:
            return
        if self.kind is EncodingKind.IDENTITY:
            raise ValueError("the identity encoding takes no compression level")
        if isinstance(self.level, bool) or not LEVEL_NONE <= self.level <= LEVEL_BEST:
            raise ValueError(
                f"compression level must be between {LEVEL_NONE} and {LEVEL_BEST}, "
                f"got {self.level!r}"
            )

    @classmethod
    def identity(cls) -> CompressionEncoding:
        return cls(EncodingKind.IDENTITY)

    @classmethod
    def gzip(cls, level: int | None = None) -> CompressionEncoding:
        return cls(EncodingKind.GZIP, level)

    @classmethod
    def zlib(cls, level: int | None = None) -> CompressionEncoding:
        return cls(EncodingKind.ZLIB, level)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompressionEncoding):
            return NotImplemented
        return self.kind is other.kind

    def __hash__(self) -> int:
        return hash(self.kind)

    @property
    def compresses(self) -> bool:
        """Whether this encoding actually compresses (gzip or zlib)."""
        return self.kind is not EncodingKind.IDENTITY

    def header_value(self) -> str:
        """The name of this encoding as used in headers."""
        return self.kind.value

    def accept_encoding_header_value(
        self, encodings: Sequence[CompressionEncoding]
    ) -> str | None:
        """The accept-encoding value for ``encodings``, or ``None`` for identity."""
        if self.compresses:
            return compose_encodings(encodings)
        return None

    @classmethod
    def from_accept_encoding_header(
        cls,
        headers: Mapping[str, str],
        config: Sequence[CompressionEncoding] | None,
    ) -> CompressionEncoding | None:
        """Pick the first encoding the peer accepts that ``config`` offers."""
        if config is None:
            return None
        value = _header_get(headers, ACCEPT_ENCODING_HEADER)
        if value is None:
            return None
        for name in (part.strip() for part in value.split(",")):
            if name == EncodingKind.GZIP.value:
                wanted = EncodingKind.GZIP
            elif name == EncodingKind.ZLIB.value:
                wanted = EncodingKind.ZLIB
            else:
                continue
            found = next((item for item in config if item.kind is wanted), None)
            if found is not None:
                return found
        return None

    @classmethod
    def from_encoding_header(
        cls,
        headers: Mapping[str, str],
        config: Sequence[CompressionEncoding] | None,
    ) -> CompressionEncoding | None:
        """Read the ``grpc-encoding`` header.

        Raises :class:`Status` (unimplemented) when the encoding is not one
        that ``config`` enables.
        """
        if config is None:
            return None
        value = _header_get(headers, ENCODING_HEADER)
        if value is None:
            return None
        if value == "gzip" and cls.gzip() in config:
            return cls.gzip()
        if value == "zlib" and cls.zlib() in config:
            return cls.zlib()
        if value == "identity":
            return None
        raise Status.unimplemented(
            f"Content is compressed with `{value}` which isn't supported"
        )

    def effective_level(self) -> int:
        """The configured level, or the default level when there is none."""
        if self.compresses and self.level is not None:
            return self.level
        return DEFAULT_LEVEL


def compose_encodings(encodings: Iterable[CompressionEncoding]) -> str:
    """Join the names of ``encodings`` with commas."""
    return ",".join(encoding.header_value() for encoding in encodings)


def compress(encoding: CompressionEncoding, data: bytes) -> bytes:
    """Compress ``data``.

    Only gzip and zlib encodings with a configured level produce output;
    any other encoding yields empty bytes.
    """
    if encoding.level is None:
        return b""
    if encoding.kind is EncodingKind.GZIP:
        return gzip.compress(bytes(data), compresslevel=encoding.level, mtime=0)
    if encoding.kind is EncodingKind.ZLIB:
        return zlib.compress(bytes(data), encoding.level)
    return b""


def decompress(encoding: CompressionEncoding, data: bytes) -> bytes:
    """Decompress ``data``; the identity encoding yields empty bytes.

    Raises :class:`OSError` when the data is not valid for the encoding.
    """
    try:
        if encoding.kind is EncodingKind.GZIP:
            return gzip.decompress(bytes(data))
        if encoding.kind is EncodingKind.ZLIB:
            return zlib.decompress(bytes(data))
    except (OSError, EOFError, zlib.error) as exc:
        raise OSError(str(exc)) from exc
    return b""