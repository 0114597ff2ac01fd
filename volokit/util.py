"""Helpers for the configuration file and for fetching IDLs from git."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import IO, TypeVar

import yaml

from .model import Config

DEFAULT_CONFIG_FILE = "volo.yml"

R = TypeVar("R")


def default_dir() -> Path:
    """Directory where IDLs fetched from git are cached."""
    out_dir = os.environ.get("OUT_DIR")
    if out_dir is None:
        raise RuntimeError(
            "OUT_DIR is not set, maybe you are calling the build outside a build script?"
        )
    return Path(out_dir) / "idl"


def ensure_path(path: str | os.PathLike[str]) -> None:
    """Create a directory and all its parents."""
    Path(path).mkdir(parents=True, exist_ok=True)


def ensure_file(filename: str | os.PathLike[str]) -> IO[str]:
    """Open a file for reading and writing, creating it without truncation."""
    fd = os.open(os.fspath(filename), os.O_RDWR | os.O_CREAT, 0o666)
    return os.fdopen(fd, "r+", encoding="utf-8")


def open_config_file(conf_file_name: str | os.PathLike[str]) -> IO[str]:
    return ensure_file(conf_file_name)


def ensure_cache_path() -> None:
    ensure_path(default_dir())


def read_config_from_file(f: IO[str]) -> Config:
    """Parse the configuration; an empty file yields an empty configuration."""
    if os.fstat(f.fileno()).st_size == 0:
        return Config()
    f.seek(0)
    return Config.from_dict(yaml.safe_load(f.read()))


@dataclass
class Task:
    """A request to fetch files of a repository at a commit into a directory."""

    files: list[str]
    directory: Path
    repo: str
    lock: str


def download_files_from_git(task: Task) -> None:
    """Fetch the repository at the locked revision into the task's directory."""
    ensure_path(task.directory)
    git_archive(task.repo, task.lock, task.directory)


def git_archive(repo: str, revision: str, directory: str | os.PathLike[str]) -> None:
    """Check out ``revision`` of ``repo`` into ``directory`` with a shallow fetch."""
    commands = [
        ["git", "init"],
        ["git", "remote", "add", "origin", repo],
        ["git", "fetch", "origin", revision, "--depth=1"],
        ["git", "reset", "--hard", revision],
    ]
    for command in commands:
        subprocess.run(command, cwd=directory, check=False)


def _trim_end(text: str, suffix: str) -> str:
    while suffix and text.endswith(suffix):
        text = text[: -len(suffix)]
    return text


def _trim_start(text: str, prefix: str) -> str:
    while prefix and text.startswith(prefix):
        text = text[len(prefix):]
    return text


def get_git_path(git: str) -> Path:
    """Map a repository address to a relative cache path.

    Accepts ``user@domain:namespace/repo.git`` and
    ``https://domain/namespace/repo.git``; anything without a colon is
    taken as a local path.
    """
    trimmed = _trim_end(git, ".git")
    parts = trimmed.split(":")
    if len(parts) == 1:
        return Path(trimmed)
    if len(parts) == 2:
        if trimmed.startswith("https"):
            return Path(_trim_start(trimmed, "https://"))
        host_parts = parts[0].split("@")
        host = host_parts[0] if len(host_parts) == 1 else host_parts[1]
        return Path(f"{host}/{parts[1]}")
    raise ValueError(f"git format error: {git}")


def parse_commit_list(output: str, repo: str, ref: str) -> str:
    """Pick the single commit id out of ``git ls-remote`` output."""
    commits = [
        fields for fields in (line.split("\t") for line in output.split("\n")) if len(fields) == 2
    ]
    if not commits:
        raise LookupError(
            f"get latest commit of {repo}:{ref} failed, please check the {ref} of {repo}"
        )
    if len(commits) > 1:
        possibilities = "\n".join(name for _, name in commits)
        raise LookupError(
            f"get latest commit of {repo}:{ref} failed because of multiple refs, "
            f"please choose one of: \n{possibilities}"
        )
    return commits[0][0]


def get_repo_latest_commit_id(repo: str, ref: str) -> str:
    """Resolve ``ref`` in the remote ``repo`` to a commit id."""
    result = subprocess.run(["git", "ls-remote", repo, ref], capture_output=True, check=False)
    return parse_commit_list(result.stdout.decode("utf-8", errors="replace"), repo, ref)


def with_config(
    func: Callable[[Config], R], path: str | os.PathLike[str] = DEFAULT_CONFIG_FILE
) -> R:
    """Load the configuration, let ``func`` change it, and write it back."""
    with open_config_file(path) as f:
        config = read_config_from_file(f)
        result = func(config)
        f.seek(0)
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
        f.truncate()
    return result