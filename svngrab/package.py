"""Assembly of package directories and archives from fetched working copies."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Mapping

from core.archive import ArchiveManager, normalize_output_path, resolve_format
from core.console import Console

from .config import CopyOperation, PackageRule
from .copier import CopyOptions, copy_tree, ignore_predicate
from .errors import ArchiveFailed, FileExists, InvalidCompressMethod
from .repository import RepositoryHandle
from .variables import VariableTable

Copier = Callable[[Path, Path, CopyOptions], None]


class PackageState(str, Enum):
    PENDING = "pending"
    SOURCES_RESOLVED = "sources-resolved"
    COPIED = "copied"
    COMPRESSED = "compressed"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class CopyStep:
    source: Path
    destination: Path
    operation: CopyOperation


@dataclass(slots=True)
class PackageJob:
    """Progress of one package rule through the pipeline."""

    rule: PackageRule
    destination: Path
    state: PackageState = PackageState.PENDING
    steps: List[CopyStep] = field(default_factory=list)
    archive: Path | None = None


def _resolve(base: Path, path: str) -> Path:
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return candidate
    return base / candidate


class PackageAssembler:
    """Copies include groups into package destinations and compresses them.

    Rules run strictly one after another; the first failure marks its job
    ``failed`` and propagates, leaving earlier output in place.
    """

    def __init__(
        self,
        *,
        console: Console,
        variables: VariableTable,
        handles: Mapping[str, RepositoryHandle],
        workspace: Path,
        archiver: ArchiveManager | None = None,
        copier: Copier = copy_tree,
    ) -> None:
        self._console = console
        self._variables = variables
        self._handles = handles
        self._workspace = workspace
        self._archiver = archiver or ArchiveManager(console)
        self._copier = copier
        self.jobs: List[PackageJob] = []

    def assemble_all(self, rules: Mapping[str, PackageRule]) -> List[PackageJob]:
        for destination in sorted(rules):
            self.assemble(rules[destination])
        return self.jobs

    def assemble(self, rule: PackageRule) -> PackageJob:
        destination = _resolve(self._workspace, self._variables.substitute(rule.destination))
        job = PackageJob(rule=rule, destination=destination)
        self.jobs.append(job)
        try:
            self._run(job)
        except BaseException:
            job.state = PackageState.FAILED
            raise
        return job

    def _run(self, job: PackageJob) -> None:
        sources = [(self.resolve_source(group.source), group) for group in job.rule.include]
        job.state = PackageState.SOURCES_RESOLVED
        for source_root, group in sources:
            for raw_operation in group.operations:
                if not raw_operation.is_active:
                    continue
                operation = raw_operation.substituted(self._variables)
                self._copy(job, source_root, operation)
        job.state = PackageState.COPIED

        if job.rule.compress.enabled:
            job.archive = self._compress(job)
            job.state = PackageState.COMPRESSED
        job.state = PackageState.DONE

    def resolve_source(self, name: str) -> Path:
        """Local working copy of export ``name``, or ``name`` itself as a path."""
        key = self._variables.substitute(name)
        handle = self._handles.get(key)
        if handle is not None:
            return handle.local_path
        return _resolve(self._workspace, key)

    def _copy(self, job: PackageJob, source_root: Path, operation: CopyOperation) -> None:
        source = _resolve(source_root, operation.source)
        destination = _resolve(job.destination, operation.destination)
        step = CopyStep(source=source, destination=destination, operation=operation)

        self._console.begin("copy", f"{source} -> {destination}")
        try:
            options = CopyOptions(
                on_symlink=operation.symlinks,
                on_dir_conflict=operation.conflict,
                skip=ignore_predicate(operation.ignore),
                sync=True,
                preserve_times=True,
            )
            self._copier(source, destination, options)
        except Exception as exc:
            self._console.finish("copy", exc)
            raise
        self._console.finish("copy")
        job.steps.append(step)

    def _compress(self, job: PackageJob) -> Path:
        directive = job.rule.compress
        output = _resolve(self._workspace, self._variables.substitute(directive.output))
        try:
            archive_format = resolve_format(directive.method)
        except ValueError:
            error = InvalidCompressMethod(directive.method)
            self._console.error("pack", str(error))
            raise error from None

        target = normalize_output_path(output, archive_format)
        self._console.begin("pack", f"{job.destination} -> {target}")
        try:
            self._archiver.create_archive(
                source_dir=job.destination,
                target_path=target,
                archive_format=archive_format,
                level=directive.level,
                overwrite=directive.overwrite,
            )
        except FileExistsError as exc:
            error = FileExists(str(target))
            self._console.finish("pack", error)
            raise error from exc
        except Exception as exc:
            error = ArchiveFailed(str(target), str(exc))
            self._console.finish("pack", error)
            raise error from exc
        self._console.finish("pack")
        return target


__all__ = ["CopyStep", "PackageAssembler", "PackageJob", "PackageState"]
