from pathlib import Path

import pytest

from volokit.model import (
    DEFAULT_ENTRY_NAME,
    DEFAULT_FILENAME,
    Config,
    Entry,
    GitSource,
    Idl,
    IdlProtocol,
)


def _sample_config() -> Config:
    git_idl = Idl(
        source=GitSource(repo="git@example.com:ns/repo.git", ref="main", lock="abc123"),
        path=Path("idl/hello.thrift"),
        includes=[Path("idl")],
        touch=["Hello"],
    )
    local_idl = Idl(path=Path("../idl/other.thrift"))
    return Config(
        entries={
            DEFAULT_ENTRY_NAME: Entry(
                protocol=IdlProtocol.THRIFT,
                filename=Path(DEFAULT_FILENAME),
                idls=[git_idl, local_idl],
            )
        }
    )


def test_protocol_from_extension():
    assert Idl(path=Path("a/b.thrift")).protocol() is IdlProtocol.THRIFT
    assert Idl(path=Path("a/b.proto")).protocol() is IdlProtocol.PROTOBUF


@pytest.mark.parametrize("name", ["a/b.txt", "noext", ".thrift"])
def test_protocol_invalid_extension(name):
    with pytest.raises(ValueError, match="invalid file ext"):
        Idl(path=Path(name)).protocol()


def test_default_idl_is_local():
    idl = Idl()
    assert idl.source is None
    assert idl.includes is None
    assert idl.touch == []
    assert idl.to_dict()["source"] == "local"


def test_local_idl_skips_optional_fields():
    data = Idl(path=Path("x.proto")).to_dict()
    assert set(data) == {"source", "path"}
    assert data["path"] == str(Path("x.proto"))


def test_git_idl_serialises_flattened_source():
    idl = Idl(source=GitSource(repo="r", lock="deadbeef"), path=Path("x.thrift"))
    data = idl.to_dict()
    assert data["source"] == "git"
    assert data["repo"] == "r"
    assert data["lock"] == "deadbeef"
    assert "ref" not in data


def test_config_round_trip():
    config = _sample_config()
    assert Config.from_dict(config.to_dict()) == config


def test_entry_protocol_serialised_as_name():
    data = _sample_config().to_dict()
    assert data["entries"][DEFAULT_ENTRY_NAME]["protocol"] == "thrift"
    assert data["entries"][DEFAULT_ENTRY_NAME]["filename"] == DEFAULT_FILENAME


def test_touch_defaults_to_empty():
    idl = Idl.from_dict({"source": "local", "path": "x.thrift"})
    assert idl.touch == []
    assert idl.includes is None


def test_null_includes_is_none():
    idl = Idl.from_dict({"source": "local", "path": "x.thrift", "includes": None})
    assert idl.includes is None


def test_missing_source_tag():
    with pytest.raises(ValueError, match="source"):
        Idl.from_dict({"path": "x.thrift"})


def test_unknown_source_tag():
    with pytest.raises(ValueError, match="unknown variant"):
        Idl.from_dict({"source": "svn", "path": "x.thrift"})


def test_git_source_requires_repo():
    with pytest.raises(ValueError, match="repo"):
        Idl.from_dict({"source": "git", "path": "x.thrift"})


def test_unknown_protocol():
    with pytest.raises(ValueError, match="unknown variant"):
        Entry.from_dict({"protocol": "avro", "filename": "f", "idls": []})


def test_config_requires_entries():
    with pytest.raises(ValueError, match="entries"):
        Config.from_dict({})


def test_config_rejects_non_mapping():
    with pytest.raises(ValueError):
        Config.from_dict(["entries"])


def test_new_config_is_empty():
    assert Config().entries == {}
    assert Config().to_dict() == {"entries": {}}