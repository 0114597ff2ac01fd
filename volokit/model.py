"""Data model of the code-generation configuration file."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_ENTRY_NAME = "default"
DEFAULT_FILENAME = "volo_gen.rs"


class IdlProtocol(enum.Enum):
    """The IDL language an entry is generated from."""

    THRIFT = "thrift"
    PROTOBUF = "protobuf"


def _expect_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"invalid {what}: expected a mapping, got {type(data).__name__}")
    return data


def _require(data: Mapping[str, Any], key: str, what: str) -> Any:
    if key not in data:
        raise ValueError(f"{what}: missing field `{key}`")
    return data[key]


def _expect_str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"invalid type for `{key}`: expected a string, got {value!r}")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    return None if value is None else _expect_str(value, key)


def _expect_list(value: Any, key: str) -> list[Any]:
    if not isinstance(value, list):
        raise ValueError(f"invalid type for `{key}`: expected a sequence, got {value!r}")
    return value


@dataclass
class GitSource:
    """An IDL fetched from a git repository at a pinned commit."""

    repo: str
    ref: str | None = None
    lock: str | None = None


@dataclass
class Idl:
    """One IDL file of an entry.

    ``source`` is ``None`` for a local file and a :class:`GitSource` otherwise.
    """

    source: GitSource | None = None
    path: Path = field(default_factory=Path)
    includes: list[Path] | None = None
    touch: list[str] = field(default_factory=list)

    def protocol(self) -> IdlProtocol:
        """Infer the protocol from the file extension."""
        suffix = self.path.suffix
        if suffix == ".thrift":
            return IdlProtocol.THRIFT
        if suffix == ".proto":
            return IdlProtocol.PROTOBUF
        raise ValueError(f"invalid file ext {str(self.path)!r}")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.source is None:
            data["source"] = "local"
        else:
            data["source"] = "git"
            data["repo"] = self.source.repo
            if self.source.ref is not None:
                data["ref"] = self.source.ref
            if self.source.lock is not None:
                data["lock"] = self.source.lock
        data["path"] = str(self.path)
        if self.includes is not None:
            data["includes"] = [str(p) for p in self.includes]
        if self.touch:
            data["touch"] = list(self.touch)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Idl:
        data = _expect_mapping(data, "idl")
        tag = _expect_str(_require(data, "source", "idl"), "source")
        if tag == "git":
            source: GitSource | None = GitSource(
                repo=_expect_str(_require(data, "repo", "idl"), "repo"),
                ref=_optional_str(data, "ref"),
                lock=_optional_str(data, "lock"),
            )
        elif tag == "local":
            source = None
        else:
            raise ValueError(f"unknown variant `{tag}`, expected `git` or `local`")

        path = Path(_expect_str(_require(data, "path", "idl"), "path"))

        raw_includes = data.get("includes")
        includes = (
            None
            if raw_includes is None
            else [Path(_expect_str(v, "includes")) for v in _expect_list(raw_includes, "includes")]
        )

        raw_touch = data.get("touch")
        touch = (
            []
            if raw_touch is None
            else [_expect_str(v, "touch") for v in _expect_list(raw_touch, "touch")]
        )
        return cls(source=source, path=path, includes=includes, touch=touch)


@dataclass
class Entry:
    """A group of IDLs generated into one output file."""

    protocol: IdlProtocol
    filename: Path
    idls: list[Idl] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocol": self.protocol.value,
            "filename": str(self.filename),
            "idls": [idl.to_dict() for idl in self.idls],
        }

    @classmethod
    def from_dict(cls, data: Any) -> Entry:
        data = _expect_mapping(data, "entry")
        raw_protocol = _expect_str(_require(data, "protocol", "entry"), "protocol")
        try:
            protocol = IdlProtocol(raw_protocol)
        except ValueError:
            raise ValueError(
                f"unknown variant `{raw_protocol}`, expected `thrift` or `protobuf`"
            ) from None
        filename = Path(_expect_str(_require(data, "filename", "entry"), "filename"))
        idls = [Idl.from_dict(v) for v in _expect_list(_require(data, "idls", "entry"), "idls")]
        return cls(protocol=protocol, filename=filename, idls=idls)


@dataclass
class Config:
    """The whole configuration: named entries."""

    entries: dict[str, Entry] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"entries": {name: entry.to_dict() for name, entry in self.entries.items()}}

    @classmethod
    def from_dict(cls, data: Any) -> Config:
        data = _expect_mapping(data, "config")
        raw_entries = _expect_mapping(_require(data, "entries", "config"), "entries")
        return cls(
            entries={str(name): Entry.from_dict(value) for name, value in raw_entries.items()}
        )