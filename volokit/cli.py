"""The ``volo`` command: manage the IDL entries of the configuration file."""

from __future__ import annotations

import argparse
import copy
import logging
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import yaml

from .model import DEFAULT_ENTRY_NAME, DEFAULT_FILENAME, Config, Entry, GitSource, Idl
from .util import DEFAULT_CONFIG_FILE, get_repo_latest_commit_id, with_config

VERSION = "0.1.0"
TRACE = 5

logger = logging.getLogger("volokit")

CommitResolver = Callable[[str, str], str]


class CommandError(Exception):
    """A command was given arguments that do not fit the configuration."""


@dataclass(frozen=True)
class Context:
    """What every command is run with."""

    entry_name: str = DEFAULT_ENTRY_NAME
    config_path: Path = Path(DEFAULT_CONFIG_FILE)


class CliCommand(Protocol):
    def run(self, cx: Context) -> None: ...


def _ref_or_head(ref: str | None) -> str:
    return "HEAD" if ref is None else ref


@dataclass
class Add:
    """Add an IDL to an entry, creating the entry when it does not exist."""

    idl: Path
    git: str | None = None
    ref: str | None = None
    includes: list[Path] | None = None
    filename: str = DEFAULT_FILENAME
    resolve_commit: CommitResolver = field(
        default=get_repo_latest_commit_id, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self.idl = Path(self.idl)
        if self.includes is not None:
            self.includes = [Path(p) for p in self.includes]
        if self.ref is not None and self.git is None:
            raise CommandError("the argument '--ref' requires '--git'")

    def _new_idl(self) -> Idl:
        includes = None if self.includes is None else list(self.includes)
        if self.git is None:
            return Idl(source=None, path=self.idl, includes=includes)
        lock = self.resolve_commit(self.git, _ref_or_head(self.ref))
        return Idl(
            source=GitSource(repo=self.git, ref=self.ref, lock=lock),
            path=self.idl,
            includes=includes,
        )

    def _merge_into(self, entry: Entry, new_idl: Idl) -> None:
        for idl in entry.idls:
            if idl.path != self.idl:
                continue
            source = idl.source
            if source is not None and self.git == source.repo:
                if self.ref is not None:
                    source.ref = self.ref
                    assert new_idl.source is not None
                    source.lock = new_idl.source.lock
                return
            if source is None and self.git is None:
                return
        entry.idls.append(copy.deepcopy(new_idl))

    def apply(self, config: Config, cx: Context) -> None:
        """Change ``config`` in place as the command asks."""
        new_idl = self._new_idl()
        target = Path(self.filename)
        found_entry = False

        for name, entry in config.entries.items():
            if name != cx.entry_name:
                if entry.filename == target:
                    raise CommandError(
                        f"The specified filename '{self.filename}' already exists "
                        f"in entry '{name}'!"
                    )
                continue

            found_entry = True
            if entry.filename != target:
                raise CommandError(
                    f"The specified filename '{self.filename}' doesn't match the current "
                    f"filename '{entry.filename}' in the entry '{name}'!"
                )
            self._merge_into(entry, new_idl)

        if not found_entry:
            try:
                protocol = new_idl.protocol()
            except ValueError as exc:
                raise CommandError(str(exc)) from None
            config.entries[cx.entry_name] = Entry(
                protocol=protocol, filename=target, idls=[new_idl]
            )

    def run(self, cx: Context) -> None:
        if "/" in self.filename or "\\" in self.filename:
            raise CommandError("filename should not contain '/' or '\\'")
        with_config(lambda config: self.apply(config, cx), cx.config_path)


@dataclass
class Update:
    """Move the lock of git-sourced IDLs to the latest commit of their ref."""

    git: list[str] = field(default_factory=list)
    resolve_commit: CommitResolver = field(
        default=get_repo_latest_commit_id, repr=False, compare=False
    )

    def apply(self, config: Config, cx: Context) -> None:
        entry = config.entries.get(cx.entry_name)
        if entry is None:
            raise CommandError(f"entry {cx.entry_name} not found")

        git_sources = [idl.source for idl in entry.idls if idl.source is not None]
        exists = {source.repo for source in git_sources}
        for repo in self.git:
            if repo not in exists:
                raise CommandError(f"git repo {repo} not exists in config")

        if self.git:
            targets = [
                next(source for source in git_sources if source.repo == repo)
                for repo in self.git
            ]
        else:
            targets = git_sources

        for source in targets:
            source.lock = self.resolve_commit(source.repo, _ref_or_head(source.ref))

    def run(self, cx: Context) -> None:
        with_config(lambda config: self.apply(config, cx), cx.config_path)


_GIT_HELP = (
    "Specify the git repo for idl. Should be in the format of "
    '"git@domain:path/repo.git".'
)
_REF_HELP = "Specify the git repo ref (commit/branch) for idl. Example: main / $TAG / $COMMIT_HASH"
_INCLUDES_HELP = (
    "Specify the include dirs for idl. If -g or --git is specified, then this should "
    "be the path in the specified git repo."
)
_IDL_HELP = (
    "Specify the path for idl. If -g or --git is specified, then this should be the "
    "path in the specified git repo."
)
_ENTRY_HELP = "The entry name, defaults to 'default'."


def _add_entry_name(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-n", "--entry-name", dest="entry_name", default=argparse.SUPPRESS, help=_ENTRY_HELP
    )


def _make_add(ns: argparse.Namespace) -> Add:
    includes = None if ns.includes is None else [Path(p) for p in ns.includes]
    return Add(
        idl=Path(ns.idl), git=ns.git, ref=ns.ref, includes=includes, filename=ns.filename
    )


def _make_update(ns: argparse.Namespace) -> Update:
    return Update(git=list(ns.git))


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser of the ``volo`` command."""
    parser = argparse.ArgumentParser(prog="volo", description="Manage IDL code generation.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Turn on the verbose mode."
    )
    parser.add_argument(
        "-n", "--entry-name", dest="entry_name", default=DEFAULT_ENTRY_NAME, help=_ENTRY_HELP
    )
    parser.set_defaults(help_parser=parser)
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    idl = commands.add_parser("idl", help="manage your idl", description="manage your idl")
    _add_entry_name(idl)
    idl.set_defaults(help_parser=idl)
    idl_commands = idl.add_subparsers(dest="idl_command", metavar="COMMAND")

    add = idl_commands.add_parser("add", help="add an idl to an entry")
    _add_entry_name(add)
    add.add_argument("-g", "--git", default=None, help=_GIT_HELP)
    add.add_argument("-r", "--ref", default=None, help=_REF_HELP)
    add.add_argument("-i", "--includes", action="append", default=None, help=_INCLUDES_HELP)
    add.add_argument(
        "-f",
        "--filename",
        default=DEFAULT_FILENAME,
        help=f"Specify the output filename, defaults to '{DEFAULT_FILENAME}'.",
    )
    add.add_argument("idl", help=_IDL_HELP)
    add.set_defaults(help_parser=add, make_command=_make_add)

    update = idl_commands.add_parser("update", help="update your idl by git repo")
    _add_entry_name(update)
    update.add_argument("git", nargs="*", help="git repos to update; all when none is given")
    update.set_defaults(help_parser=update, make_command=_make_update)

    return parser


def _configure_logging(verbose: int) -> None:
    logging.addLevelName(TRACE, "TRACE")
    level = {0: logging.INFO, 1: logging.DEBUG}.get(verbose, TRACE)
    logging.basicConfig(format="%(levelname)s %(message)s")
    logger.setLevel(level)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; return the process exit status."""
    parser = build_parser()
    ns = parser.parse_args(argv)
    _configure_logging(ns.verbose)

    make_command = getattr(ns, "make_command", None)
    if make_command is None:
        ns.help_parser.print_help(sys.stderr)
        return 2
    try:
        command: CliCommand = make_command(ns)
    except CommandError as exc:
        ns.help_parser.error(str(exc))

    logger.debug("Command parse result: %r", command)
    cx = Context(entry_name=ns.entry_name)
    try:
        command.run(cx)
    except (CommandError, LookupError, ValueError, OSError, yaml.YAMLError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())