from __future__ import annotations

from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock
import io
import os
import tempfile
import textwrap
import unittest

from svngrab import cli


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.workspace = Path(self.temp_dir.name)
        self.previous_cwd = os.getcwd()
        os.chdir(self.workspace)

    def tearDown(self) -> None:
        os.chdir(self.previous_cwd)
        self.temp_dir.cleanup()

    def _main(self, *argv: str) -> tuple[int, str, str]:
        out = io.StringIO()
        err = io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = cli.main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_help_lists_variables(self) -> None:
        code, _, err = self._main("-h")
        self.assertEqual(code, 0)
        self.assertIn("$DATETIME", err)
        self.assertIn("-x PATH", err)

    def test_unknown_option_is_usage_error(self) -> None:
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as ctx:
            cli.main(["--bogus"])
        self.assertEqual(ctx.exception.code, 1)

    def test_empty_config_path_is_usage_error(self) -> None:
        code, _, err = self._main("-f", "")
        self.assertEqual(code, 1)
        self.assertIn("no configuration file defined", err)

    def test_missing_default_config(self) -> None:
        code, _, err = self._main()
        self.assertEqual(code, 11)
        self.assertIn("configuration file not found", err)
        self.assertIn("usage:", err)

    def test_missing_directory(self) -> None:
        code, _, _ = self._main("-f", str(self.workspace / "nope" / "svngrab.yml"))
        self.assertEqual(code, 10)

    def test_invalid_configuration(self) -> None:
        (self.workspace / "svngrab.yml").write_text("export: [1, 2]\n")
        code, _, _ = self._main("-q")
        self.assertEqual(code, 15)

    def test_literal_package_with_environment_output(self) -> None:
        (self.workspace / "assets").mkdir()
        (self.workspace / "assets" / "logo.txt").write_text("logo")
        (self.workspace / "svngrab.yml").write_text(
            textwrap.dedent(
                """
                package:
                  ./out/$NAME:
                    include:
                      - assets:
                          - repo: logo.txt
                            package: logo.txt
                """
            )
        )
        code, out, err = self._main("-x", "-", "NAME=demo", "stray")
        self.assertEqual(code, 0, err)
        self.assertIn('VAR_NAME="demo"', out)
        self.assertIn("ignoring argument without '=': stray", err)
        self.assertEqual((self.workspace / "out" / "demo" / "logo.txt").read_text(), "logo")

    def test_unexpected_failure_is_reported(self) -> None:
        with mock.patch.object(cli, "run", side_effect=RuntimeError("disk on fire")):
            code, _, err = self._main()
        self.assertEqual(code, 99)
        self.assertIn(" ! [run] disk on fire", err)

    def test_update_only_without_exports(self) -> None:
        (self.workspace / "svngrab.yml").write_text("package: {}\n")
        code, _, _ = self._main("-u")
        self.assertEqual(code, 2)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
