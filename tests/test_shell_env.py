from __future__ import annotations

from contextlib import redirect_stdout
from pathlib import Path
import io
import tempfile
import unittest

from svngrab.shell_env import ShellEnvironment, quote_value, sanitize_key


class SanitizeKeyTests(unittest.TestCase):
    def test_uppercases_and_replaces_invalid_runs(self) -> None:
        self.assertEqual(sanitize_key("repo-my lib.url"), "REPO_MY_LIB_URL")
        self.assertEqual(sanitize_key("__a__b__"), "A_B")

    def test_idempotent(self) -> None:
        for key in ("repo-my lib.url", " x ", "A__B", "9lives", "ümlaut-key"):
            once = sanitize_key(key)
            self.assertEqual(sanitize_key(once), once)

    def test_key_without_identifier_characters_is_empty(self) -> None:
        self.assertEqual(sanitize_key("-- ."), "")


class ShellEnvironmentTests(unittest.TestCase):
    def test_overwrite_keeps_single_entry_in_place(self) -> None:
        env = ShellEnvironment(stream=io.StringIO())
        env.append("S", "k", "1")
        env.append("S", "other", "x")
        env.append("S", "K", "2")
        self.assertEqual(env.render(), '#\n# S\n#\nK="2"\nOTHER="x"\n')

    def test_sections_render_in_creation_order(self) -> None:
        env = ShellEnvironment()
        env.append("second", "b", "2")
        env.append("first", "a", "1")
        env.append("second", "c", "3")
        self.assertEqual(
            env.render(),
            '#\n# second\n#\nB="2"\nC="3"\n\n#\n# first\n#\nA="1"\n',
        )

    def test_empty_keys_are_dropped(self) -> None:
        env = ShellEnvironment()
        env.append("S", "---", "value")
        self.assertEqual(env.sections, [])

    def test_values_are_escaped(self) -> None:
        self.assertEqual(quote_value('a "b" $c `d` \\'), '"a \\"b\\" \\$c \\`d\\` \\\\"')

    def test_render_escapes_shell_expansions(self) -> None:
        env = ShellEnvironment()
        env.append("S", "path", "$HOME/`id`")
        self.assertEqual(env.render(), "#\n# S\n#\nPATH=\"\\$HOME/\\`id\\`\"\n")

    def test_commit_writes_once(self) -> None:
        stream = io.StringIO()
        env = ShellEnvironment(stream=stream)
        env.append("S", "k", "v")
        self.assertGreater(env.commit(), 0)
        env.append("S", "k", "changed")
        self.assertEqual(env.commit(), 0)
        self.assertTrue(env.committed)
        self.assertEqual(stream.getvalue(), '#\n# S\n#\nK="v"\n')

    def test_stdout_target(self) -> None:
        env = ShellEnvironment("-")
        env.append("S", "k", "v")
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            env.commit()
        self.assertEqual(buffer.getvalue(), '#\n# S\n#\nK="v"\n')

    def test_discard_target_writes_nothing(self) -> None:
        env = ShellEnvironment("")
        env.append("S", "k", "v")
        self.assertEqual(env.commit(), 0)
        self.assertEqual(env.name, "<discard>")

    def test_file_target_creates_parent_directories(self) -> None:
        with tempfile.TemporaryDirectory() as temp:
            target = Path(temp) / "out" / "env.sh"
            with ShellEnvironment(str(target)) as env:
                env.append("S", "k", "v")
                self.assertFalse(target.exists())
                env.commit()
            self.assertEqual(target.read_text(), '#\n# S\n#\nK="v"\n')


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
