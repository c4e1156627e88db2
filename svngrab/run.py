"""End-to-end run: load, export, record, persist, assemble."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping

from core.archive import ArchiveManager
from core.command_runner import CommandRunner, SubprocessCommandRunner
from core.console import Console

from .config import Configuration
from .errors import AllUpToDate
from .export import ExportOrchestrator, ExportResult
from .package import PackageAssembler, PackageJob
from .repository import ClientFactory, default_client_factory
from .shell_env import ShellEnvironment
from .variables import VariableTable

INPUT_SECTION = "input variables"


@dataclass(slots=True)
class RunReport:
    config: Configuration
    exports: ExportResult
    packages: List[PackageJob] = field(default_factory=list)


def run(
    *,
    console: Console,
    config_path: Path | str,
    recorder: ShellEnvironment,
    update_only: bool = False,
    bindings: Mapping[str, str] | None = None,
    variables: VariableTable | None = None,
    workspace: Path | None = None,
    runner: CommandRunner | None = None,
    factory: ClientFactory = default_client_factory,
    archiver: ArchiveManager | None = None,
) -> RunReport:
    """Execute one complete run.

    The shell environment record is committed once every export has been
    fetched, then the configuration is rewritten with the new revisions.
    With ``update_only`` and no revision change, :class:`AllUpToDate` is
    raised at that point instead of assembling packages. ``recorder`` is
    closed before returning or raising.
    """

    variables = variables if variables is not None else VariableTable()
    workspace = workspace if workspace is not None else Path.cwd()
    runner = runner if runner is not None else SubprocessCommandRunner()
    path = Path(config_path)

    try:
        for name, value in (bindings or {}).items():
            variables.set(name, value)
            recorder.append(INPUT_SECTION, f"VAR_{name}", value)

        with console.step("conf", f"parsing configuration file: {path}"):
            config = Configuration.load(path)

        orchestrator = ExportOrchestrator(
            console=console,
            recorder=recorder,
            variables=variables,
            runner=runner,
            workspace=workspace,
            factory=factory,
        )
        exports = orchestrator.run(config)

        with console.step("envi", f"generating shell environment: {recorder.name}"):
            recorder.commit()

        with console.step("conf", f"writing repository revisions: {path}"):
            config.save()

        if update_only and not exports.dirty:
            up_to_date = AllUpToDate()
            console.error("conf", str(up_to_date))
            raise up_to_date

        assembler = PackageAssembler(
            console=console,
            variables=variables,
            handles=exports.handles,
            workspace=workspace,
            archiver=archiver,
        )
        jobs = assembler.assemble_all(config.packages)
        return RunReport(config=config, exports=exports, packages=jobs)
    finally:
        recorder.close()


__all__ = ["INPUT_SECTION", "RunReport", "run"]
