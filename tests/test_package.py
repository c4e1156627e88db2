from __future__ import annotations

from pathlib import Path
import io
import tempfile
import unittest
import zipfile

from core.command_runner import CommandRunner
from core.console import Console
from svngrab.config import (
    CompressDirective,
    ConflictPolicy,
    CopyOperation,
    ExportEntry,
    IncludeGroup,
    PackageRule,
)
from svngrab.errors import FileExists, InvalidCompressMethod, InvalidIgnorePattern, PipelineError
from svngrab.package import PackageAssembler, PackageState
from svngrab.repository import RepositoryHandle, VcsClient
from svngrab.variables import VariableTable


class StaticClient(VcsClient):
    def local_copy_exists(self) -> bool:
        return True


class PackageAssemblerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.workspace = Path(self.temp_dir.name)
        wc = self.workspace / "wc" / "trunk"
        (wc / ".svn").mkdir(parents=True)
        (wc / "src").mkdir()
        (wc / "src" / "main.c").write_text("int main;")
        (wc / "src" / ".svn").mkdir()
        (self.workspace / "extra").mkdir()
        (self.workspace / "extra" / "NOTES").write_text("notes")

        entry = ExportEntry(name="Lib", repo="https://host/svn/lib", path="trunk", local="./wc")
        client = StaticClient(remote=entry.url, root=wc, runner=CommandRunner())
        self.handles = {"Lib": RepositoryHandle(entry, client)}
        self.variables = VariableTable()
        self.variables.set("VER", "1.0")
        self.output = io.StringIO()

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _assembler(self) -> PackageAssembler:
        return PackageAssembler(
            console=Console(stream=self.output),
            variables=self.variables,
            handles=self.handles,
            workspace=self.workspace,
        )

    def _rule(self, *, ignore=None, compress=None, destination="./pkg-$VER") -> PackageRule:
        return PackageRule(
            destination=destination,
            include=[
                IncludeGroup(
                    source="Lib",
                    operations=[
                        CopyOperation(source="src", destination="src", ignore=list(ignore or [r"\.svn$"])),
                        CopyOperation(source="", destination="skipped"),
                    ],
                ),
                IncludeGroup(
                    source="extra",
                    operations=[CopyOperation(source="NOTES", destination="doc/NOTES-$VER")],
                ),
            ],
            compress=compress or CompressDirective(),
        )

    def test_copies_from_exports_and_literal_paths(self) -> None:
        job = self._assembler().assemble(self._rule())
        package = self.workspace / "pkg-1.0"
        self.assertIs(job.state, PackageState.DONE)
        self.assertEqual(job.destination, package)
        self.assertEqual((package / "src" / "main.c").read_text(), "int main;")
        self.assertFalse((package / "src" / ".svn").exists())
        self.assertEqual((package / "doc" / "NOTES-1.0").read_text(), "notes")
        self.assertFalse((package / "skipped").exists())
        self.assertEqual(len(job.steps), 2)
        self.assertIsNone(job.archive)

    def test_compress_normalizes_extension(self) -> None:
        rule = self._rule(compress=CompressDirective(output="dist/pkg-$VER.tar", method="zip", overwrite=False))
        job = self._assembler().assemble(rule)
        self.assertEqual(job.archive, self.workspace / "dist" / "pkg-1.0.zip")
        with zipfile.ZipFile(job.archive) as archive:
            self.assertIn("pkg-1.0/src/main.c", archive.namelist())

        with self.assertRaises(FileExists) as ctx:
            self._assembler().assemble(rule)
        self.assertEqual(ctx.exception.exit_code, 14)
        self.assertIsInstance(ctx.exception, PipelineError)

    def test_invalid_compress_method(self) -> None:
        assembler = self._assembler()
        rule = self._rule(compress=CompressDirective(output="dist/pkg", method="rar"))
        with self.assertRaises(InvalidCompressMethod):
            assembler.assemble(rule)
        self.assertIs(assembler.jobs[-1].state, PackageState.FAILED)
        self.assertTrue((self.workspace / "pkg-1.0" / "src" / "main.c").exists())
        self.assertIn("invalid compress method: rar", self.output.getvalue())

    def test_invalid_ignore_pattern_stops_before_copying(self) -> None:
        assembler = self._assembler()
        with self.assertRaises(InvalidIgnorePattern):
            assembler.assemble(self._rule(ignore=["[bad"]))
        self.assertIs(assembler.jobs[-1].state, PackageState.FAILED)
        self.assertFalse((self.workspace / "pkg-1.0" / "src").exists())

    def test_sources_are_resolved_before_copying(self) -> None:
        states = []
        assembler = PackageAssembler(
            console=Console(stream=self.output),
            variables=self.variables,
            handles=self.handles,
            workspace=self.workspace,
            copier=lambda src, dst, options: states.append(assembler.jobs[-1].state),
        )
        job = assembler.assemble(self._rule())
        self.assertEqual(states, [PackageState.SOURCES_RESOLVED, PackageState.SOURCES_RESOLVED])
        self.assertIs(job.state, PackageState.DONE)

    def test_rules_run_in_destination_order(self) -> None:
        rules = {
            "./b": self._rule(destination="./b"),
            "./a": self._rule(destination="./a"),
        }
        jobs = self._assembler().assemble_all(rules)
        self.assertEqual([job.destination.name for job in jobs], ["a", "b"])

    def test_replace_policy_from_rule(self) -> None:
        stale = self.workspace / "pkg-1.0" / "src" / "stale.c"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")
        rule = self._rule()
        rule.include[0].operations[0].conflict = ConflictPolicy.REPLACE
        self._assembler().assemble(rule)
        self.assertFalse(stale.exists())


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
