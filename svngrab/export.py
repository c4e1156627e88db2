"""Fetching of every configured export entry and revision bookkeeping."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple

from core.command_runner import CommandRunner
from core.console import Console

from .config import Configuration
from .errors import InvalidConfig
from .repository import ClientFactory, RepositoryHandle, default_client_factory
from .shell_env import ShellEnvironment
from .variables import VariableTable


@dataclass(slots=True)
class ExportResult:
    handles: Dict[str, RepositoryHandle] = field(default_factory=dict)
    revisions: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    """Previous and current revision per export name."""
    dirty: bool = False


class ExportOrchestrator:
    """Binds, checks and fetches export entries one at a time.

    Entries are processed in name order. Each one is fully handled (bind,
    connectivity check, fetch, revision query) before the next begins; the
    first failure aborts the run.
    """

    def __init__(
        self,
        *,
        console: Console,
        recorder: ShellEnvironment,
        variables: VariableTable,
        runner: CommandRunner,
        workspace: Path,
        factory: ClientFactory = default_client_factory,
    ) -> None:
        self._console = console
        self._recorder = recorder
        self._variables = variables
        self._runner = runner
        self._workspace = workspace
        self._factory = factory

    def run(self, config: Configuration) -> ExportResult:
        result = ExportResult()
        for key in config.export_names():
            self.export(config, key, result)
        return result

    def export(self, config: Configuration, key: str, result: ExportResult) -> RepositoryHandle:
        entry = config.exports[key].substituted(self._variables)
        name = entry.name
        if name in result.handles:
            error = InvalidConfig(name, "export name is not unique after variable substitution")
            self._console.error("repo", str(error))
            raise error

        prefix = f"REPO_{name}"
        self._recorder.append(name, f"{prefix}_URL", entry.url)
        self._recorder.append(name, f"{prefix}_LOCAL", entry.local)
        # placeholders keep each entry's keys grouped; overwritten after the fetch
        self._recorder.append(name, f"{prefix}_PREVREV", "")
        self._recorder.append(name, f"{prefix}_CURRREV", "")

        with self._console.step("repo", f"initializing repository: {name}"):
            handle = RepositoryHandle.create(
                entry,
                workspace=self._workspace,
                runner=self._runner,
                factory=self._factory,
            )

        with self._console.step("ping", f"checking repository status: {name}", result="online"):
            handle.check_connection()

        mode = handle.fetch_mode
        with self._console.step(mode.value, f"{handle.remote} -> {handle.local_path}") as step:
            handle.fetch()
            revision = handle.revision()
            step.text = revision

        previous = entry.last
        self._recorder.append(name, f"{prefix}_PREVREV", previous)
        self._recorder.append(name, f"{prefix}_CURRREV", revision)
        if config.record_revision(key, revision):
            result.dirty = True
        result.revisions[name] = (previous, revision)
        result.handles[name] = handle
        return handle


__all__ = ["ExportOrchestrator", "ExportResult"]
