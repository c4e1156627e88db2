"""Repository handles binding export entries to version-control clients."""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Callable
import re

import pygit2

from core.command_runner import CommandError, CommandRunner

from .config import ExportEntry, VcsKind
from .errors import ConnectionFailed, ExportFailed, InvalidRepository, UnknownRevision

PING_TIMEOUT = 60.0
SVN_SCHEMES = frozenset({"file", "http", "https", "svn", "svn+ssh"})

_SCHEME = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*)://")


class FetchMode(str, Enum):
    UPDATE = "update"
    CHECKOUT = "checkout"


class VcsClient:
    """Capabilities of one remote source and its local working copy.

    ``root`` is where a checkout lands; ``local_path`` is the directory the
    exported content lives in, which is ``root`` itself unless the client
    fetches a whole repository and exports a subdirectory of it.
    """

    def __init__(self, *, remote: str, root: Path, runner: CommandRunner, subpath: str = "") -> None:
        self.remote = remote
        self.root = root
        self.subpath = subpath.strip("/")
        self._runner = runner

    @property
    def local_path(self) -> Path:
        return self.root / self.subpath if self.subpath else self.root

    def is_reachable(self) -> bool:
        raise NotImplementedError

    def local_copy_exists(self) -> bool:
        raise NotImplementedError

    def update(self) -> None:
        raise NotImplementedError

    def checkout(self) -> None:
        raise NotImplementedError

    def current_revision(self) -> str:
        raise NotImplementedError


class SvnClient(VcsClient):
    """Subversion working copy driven through the ``svn`` command line."""

    def is_reachable(self) -> bool:
        result = self._runner.run(
            ["svn", "info", "--non-interactive", self.remote],
            check=False,
            timeout=PING_TIMEOUT,
        )
        return result.ok

    def local_copy_exists(self) -> bool:
        return (self.root / ".svn").is_dir()

    def update(self) -> None:
        self._runner.run(["svn", "update", "--non-interactive"], cwd=self.root)

    def checkout(self) -> None:
        self.root.parent.mkdir(parents=True, exist_ok=True)
        self._runner.run(["svn", "checkout", "--non-interactive", self.remote, str(self.root)])

    def current_revision(self) -> str:
        result = self._runner.run(
            ["svn", "info", "--non-interactive", "--show-item", "last-changed-revision"],
            cwd=self.root,
        )
        return result.stdout.strip()


class GitClient(VcsClient):
    """Git clone written through the ``git`` command line and read through pygit2."""

    def is_reachable(self) -> bool:
        result = self._runner.run(["git", "ls-remote", self.remote, "HEAD"], check=False, timeout=PING_TIMEOUT)
        return result.ok

    def local_copy_exists(self) -> bool:
        if not self.root.is_dir():
            return False
        # discovery walks up; only a repository rooted exactly here counts
        found = pygit2.discover_repository(str(self.root))
        return found is not None and Path(found).resolve() == (self.root / ".git").resolve()

    def update(self) -> None:
        self._runner.run(["git", "pull", "--ff-only"], cwd=self.root)

    def checkout(self) -> None:
        self.root.parent.mkdir(parents=True, exist_ok=True)
        self._runner.run(["git", "clone", self.remote, str(self.root)])

    def current_revision(self) -> str:
        repository = pygit2.Repository(str(self.root))
        return str(repository.head.target)


ClientFactory = Callable[[ExportEntry, Path, CommandRunner], VcsClient]


def _resolve(workspace: Path, path: str) -> Path:
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = workspace / candidate
    return candidate


def default_client_factory(entry: ExportEntry, workspace: Path, runner: CommandRunner) -> VcsClient:
    """Build the client for ``entry``; raises :class:`InvalidRepository` for malformed locators."""

    if not entry.repo.strip():
        raise InvalidRepository(entry.name, "empty repository locator")
    if not entry.local.strip():
        raise InvalidRepository(entry.name, "empty local working copy path")

    if entry.vcs is VcsKind.GIT:
        return GitClient(
            remote=entry.url,
            root=_resolve(workspace, entry.local),
            subpath=entry.path,
            runner=runner,
        )

    match = _SCHEME.match(entry.url)
    if not match or match.group(1).lower() not in SVN_SCHEMES:
        raise InvalidRepository(entry.url, "unsupported subversion URL")
    return SvnClient(remote=entry.url, root=_resolve(workspace, entry.working_copy), runner=runner)


class RepositoryHandle:
    """A named export entry bound to a live version-control client."""

    def __init__(self, entry: ExportEntry, client: VcsClient) -> None:
        self.entry = entry
        self.client = client

    @classmethod
    def create(
        cls,
        entry: ExportEntry,
        *,
        workspace: Path,
        runner: CommandRunner,
        factory: ClientFactory = default_client_factory,
    ) -> "RepositoryHandle":
        return cls(entry, factory(entry, workspace, runner))

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def remote(self) -> str:
        return self.client.remote

    @property
    def local_path(self) -> Path:
        return self.client.local_path

    @property
    def fetch_mode(self) -> FetchMode:
        if self.client.local_copy_exists():
            return FetchMode.UPDATE
        return FetchMode.CHECKOUT

    def check_connection(self) -> None:
        if not self.client.is_reachable():
            raise ConnectionFailed(self.remote)

    def fetch(self) -> FetchMode:
        mode = self.fetch_mode
        try:
            if mode is FetchMode.UPDATE:
                self.client.update()
            else:
                self.client.checkout()
        except (CommandError, OSError) as exc:
            raise ExportFailed(self.remote, str(exc)) from exc
        return mode

    def revision(self) -> str:
        try:
            revision = self.client.current_revision()
        except (CommandError, OSError, pygit2.GitError, KeyError, ValueError) as exc:
            raise UnknownRevision(str(self.local_path), str(exc)) from exc
        if not revision:
            raise UnknownRevision(str(self.local_path), "no revision reported")
        return revision


__all__ = [
    "ClientFactory",
    "FetchMode",
    "GitClient",
    "RepositoryHandle",
    "SvnClient",
    "VcsClient",
    "default_client_factory",
]
