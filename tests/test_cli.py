from pathlib import Path

import pytest

from volokit.cli import Add, CommandError, Context, Update, build_parser, main
from volokit.model import Config, Entry, GitSource, Idl, IdlProtocol
from volokit.util import open_config_file, read_config_from_file


class Resolver:
    def __init__(self, commit="c0ffee"):
        self.commit = commit
        self.calls = []

    def __call__(self, repo, ref):
        self.calls.append((repo, ref))
        return self.commit


def load(path):
    with open_config_file(path) as f:
        return read_config_from_file(f)


def test_add_local_creates_entry():
    config = Config()
    Add(idl=Path("idl/hello.thrift")).apply(config, Context())
    entry = config.entries["default"]
    assert entry.protocol is IdlProtocol.THRIFT
    assert entry.filename == Path("volo_gen.rs")
    assert entry.idls == [Idl(source=None, path=Path("idl/hello.thrift"))]


def test_add_local_twice_keeps_one_idl():
    config = Config()
    cmd = Add(idl=Path("a.proto"))
    cmd.apply(config, Context())
    cmd.apply(config, Context())
    assert len(config.entries["default"].idls) == 1
    assert config.entries["default"].protocol is IdlProtocol.PROTOBUF


def test_add_second_idl_appends():
    config = Config()
    Add(idl=Path("a.thrift")).apply(config, Context())
    Add(idl=Path("b.thrift")).apply(config, Context())
    paths = [idl.path for idl in config.entries["default"].idls]
    assert paths == [Path("a.thrift"), Path("b.thrift")]


def test_add_filename_mismatch_in_entry():
    config = Config()
    Add(idl=Path("a.thrift")).apply(config, Context())
    with pytest.raises(CommandError, match="doesn't match"):
        Add(idl=Path("b.thrift"), filename="other.rs").apply(config, Context())


def test_add_filename_used_by_other_entry():
    config = Config()
    Add(idl=Path("a.thrift")).apply(config, Context(entry_name="first"))
    with pytest.raises(CommandError, match="already exists in entry 'first'"):
        Add(idl=Path("b.thrift")).apply(config, Context(entry_name="second"))


def test_add_invalid_extension():
    with pytest.raises(CommandError, match="invalid file ext"):
        Add(idl=Path("a.txt")).apply(Config(), Context())


def test_add_git_sets_lock_from_resolver():
    resolver = Resolver("abc123")
    config = Config()
    Add(idl=Path("x.thrift"), git="git@example.com:org/repo.git", resolve_commit=resolver).apply(
        config, Context()
    )
    source = config.entries["default"].idls[0].source
    assert source == GitSource(repo="git@example.com:org/repo.git", ref=None, lock="abc123")
    assert resolver.calls == [("git@example.com:org/repo.git", "HEAD")]


def test_add_git_existing_updates_ref_and_lock():
    repo = "git@example.com:org/repo.git"
    config = Config()
    Add(idl=Path("x.thrift"), git=repo, resolve_commit=Resolver("old")).apply(config, Context())
    Add(
        idl=Path("x.thrift"), git=repo, ref="main", resolve_commit=Resolver("new")
    ).apply(config, Context())
    idls = config.entries["default"].idls
    assert len(idls) == 1
    assert idls[0].source == GitSource(repo=repo, ref="main", lock="new")


def test_add_ref_requires_git():
    with pytest.raises(CommandError):
        Add(idl=Path("x.thrift"), ref="main")


def test_add_run_rejects_slash_in_filename(tmp_path):
    cx = Context(config_path=tmp_path / "volo.yml")
    with pytest.raises(CommandError, match="should not contain"):
        Add(idl=Path("a.thrift"), filename="dir/out.rs").run(cx)


def test_add_run_writes_config(tmp_path):
    cx = Context(entry_name="svc", config_path=tmp_path / "volo.yml")
    Add(idl=Path("a.thrift"), includes=[Path("inc")]).run(cx)
    config = load(cx.config_path)
    assert config.entries["svc"].idls[0].includes == [Path("inc")]
    assert config.entries["svc"].idls[0].path == Path("a.thrift")


def _git_config():
    return Config(
        entries={
            "default": Entry(
                protocol=IdlProtocol.THRIFT,
                filename=Path("volo_gen.rs"),
                idls=[
                    Idl(source=GitSource(repo="r1", ref="dev", lock="1"), path=Path("a.thrift")),
                    Idl(source=GitSource(repo="r2", lock="2"), path=Path("b.thrift")),
                    Idl(source=None, path=Path("c.thrift")),
                ],
            )
        }
    )


def test_update_missing_entry():
    with pytest.raises(CommandError, match="entry nope not found"):
        Update().apply(Config(), Context(entry_name="nope"))


def test_update_unknown_repo():
    with pytest.raises(CommandError, match="git repo r9 not exists in config"):
        Update(git=["r9"], resolve_commit=Resolver()).apply(_git_config(), Context())


def test_update_all_git_sources():
    config = _git_config()
    resolver = Resolver("fresh")
    Update(resolve_commit=resolver).apply(config, Context())
    locks = [idl.source.lock for idl in config.entries["default"].idls if idl.source]
    assert locks == ["fresh", "fresh"]
    assert resolver.calls == [("r1", "dev"), ("r2", "HEAD")]


def test_update_only_named_repo():
    config = _git_config()
    Update(git=["r2"], resolve_commit=Resolver("fresh")).apply(config, Context())
    idls = config.entries["default"].idls
    assert idls[0].source.lock == "1"
    assert idls[1].source.lock == "fresh"


def test_update_run_persists(tmp_path):
    path = tmp_path / "volo.yml"
    Add(idl=Path("a.thrift"), git="r1", resolve_commit=Resolver("1")).run(
        Context(config_path=path)
    )
    Update(resolve_commit=Resolver("2")).run(Context(config_path=path))
    assert load(path).entries["default"].idls[0].source.lock == "2"


def test_main_add_writes_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["idl", "add", "idl/hello.thrift"]) == 0
    config = load(tmp_path / "volo.yml")
    assert config.entries["default"].idls[0].path == Path("idl/hello.thrift")


@pytest.mark.parametrize(
    "argv",
    [
        ["-n", "other", "idl", "add", "a.proto"],
        ["idl", "-n", "other", "add", "a.proto"],
        ["idl", "add", "-n", "other", "a.proto"],
    ],
)
def test_main_entry_name(tmp_path, monkeypatch, argv):
    monkeypatch.chdir(tmp_path)
    assert main(argv) == 0
    config = load(tmp_path / "volo.yml")
    assert list(config.entries) == ["other"]
    assert config.entries["other"].protocol is IdlProtocol.PROTOBUF


def test_main_error_returns_one(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["idl", "add", "--filename", "a/b.rs", "x.thrift"]) == 1


def test_main_update_missing_entry_returns_one(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["idl", "update"]) == 1


def test_main_without_command_returns_two():
    assert main([]) == 2


def test_main_ref_without_git_is_usage_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as info:
        main(["idl", "add", "--ref", "main", "x.thrift"])
    assert info.value.code == 2


def test_parser_collects_includes():
    ns = build_parser().parse_args(["idl", "add", "-i", "a", "-i", "b", "x.thrift"])
    assert ns.includes == ["a", "b"]
    assert ns.filename == "volo_gen.rs"
    assert ns.entry_name == "default"