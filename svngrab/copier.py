"""Recursive copy with symlink, conflict and ignore policies."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Set
import os
import re
import shutil
import stat

from .config import ConflictPolicy, SymlinkPolicy
from .errors import CopyFailed, InvalidIgnorePattern

SkipPredicate = Callable[[Path], bool]


@dataclass(slots=True)
class CopyOptions:
    on_symlink: SymlinkPolicy = SymlinkPolicy.SKIP
    on_dir_conflict: ConflictPolicy = ConflictPolicy.MERGE
    skip: SkipPredicate | None = None
    sync: bool = True
    preserve_times: bool = True


def compile_ignore_patterns(patterns: Iterable[str]) -> List[re.Pattern[str]]:
    compiled: List[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise InvalidIgnorePattern(pattern, str(exc)) from exc
    return compiled


def ignore_predicate(patterns: Iterable[str]) -> SkipPredicate:
    """Return a predicate matching any path in which one of ``patterns`` is found.

    Patterns are searched (not anchored) in the full source path. Raises
    :class:`InvalidIgnorePattern` for the first pattern that does not compile.
    """

    compiled = compile_ignore_patterns(patterns)

    def skip(path: Path) -> bool:
        text = str(path)
        return any(regex.search(text) for regex in compiled)

    return skip


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


class _TreeCopier:
    def __init__(self, options: CopyOptions) -> None:
        self.options = options
        self._active: Set[str] = set()

    def copy(self, src: Path, dst: Path) -> None:
        info = os.lstat(src)
        if stat.S_ISLNK(info.st_mode):
            self._copy_link(src, dst)
        elif stat.S_ISDIR(info.st_mode):
            self._copy_dir(src, dst)
        else:
            self._copy_file(src, dst)

    def _copy_link(self, src: Path, dst: Path) -> None:
        policy = self.options.on_symlink
        if policy is SymlinkPolicy.SKIP:
            return
        if policy is SymlinkPolicy.SHALLOW:
            target = os.readlink(src)
            dst.parent.mkdir(parents=True, exist_ok=True)
            if os.path.lexists(dst):
                _remove(dst)
            os.symlink(target, dst)
            return
        self.copy(src.resolve(strict=True), dst)

    def _copy_dir(self, src: Path, dst: Path) -> None:
        real = os.path.realpath(src)
        if real in self._active:
            raise CopyFailed(str(src), "symbolic link loop")

        if os.path.lexists(dst):
            if dst.is_dir() and not dst.is_symlink():
                if self.options.on_dir_conflict is ConflictPolicy.UNTOUCHABLE:
                    return
                if self.options.on_dir_conflict is ConflictPolicy.REPLACE:
                    shutil.rmtree(dst)
            else:
                _remove(dst)

        self._active.add(real)
        try:
            dst.mkdir(parents=True, exist_ok=True)
            skip = self.options.skip
            for name in sorted(os.listdir(src)):
                child = src / name
                if skip is not None and skip(child):
                    continue
                self.copy(child, dst / name)
        finally:
            self._active.discard(real)

        if self.options.preserve_times:
            shutil.copystat(src, dst)
        else:
            shutil.copymode(src, dst)

    def _copy_file(self, src: Path, dst: Path) -> None:
        dst.parent.mkdir(parents=True, exist_ok=True)
        if dst.is_symlink():
            dst.unlink()
        with src.open("rb") as reader, dst.open("wb") as writer:
            shutil.copyfileobj(reader, writer)
            if self.options.sync:
                writer.flush()
                os.fsync(writer.fileno())
        if self.options.preserve_times:
            shutil.copystat(src, dst)
        else:
            shutil.copymode(src, dst)


def copy_tree(src: Path | str, dst: Path | str, options: CopyOptions | None = None) -> None:
    """Copy ``src`` (file, directory or link) to ``dst``.

    Directories are walked in name order. Entries for which ``options.skip``
    returns true are left out together with everything below them. An
    existing destination directory is merged into, replaced, or left
    untouched according to ``options.on_dir_conflict``; existing files are
    overwritten. Filesystem failures are raised as :class:`CopyFailed`.
    """

    copier = _TreeCopier(options or CopyOptions())
    source = Path(src)
    try:
        copier.copy(source, Path(dst))
    except OSError as exc:
        raise CopyFailed(str(source), str(exc)) from exc


__all__ = ["CopyOptions", "SkipPredicate", "compile_ignore_patterns", "copy_tree", "ignore_predicate"]
