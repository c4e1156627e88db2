"""Shell environment script describing what a run fetched.

Values are written double-quoted with `\\`, `"`, `$` and backtick escaped by a
backslash, so the script can be sourced safely. Records holding such characters
therefore differ from the unescaped legacy output.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, TextIO, Tuple
import re
import sys

_NON_IDENT = re.compile(r"[^A-Z0-9_]+")
_UNDERSCORES = re.compile(r"_+")
_SHELL_SPECIAL = re.compile(r'(["\\$`])')

DISCARD_TARGET = ""
STDOUT_TARGET = "-"
STDERR_TARGET = "+"


def sanitize_key(key: str) -> str:
    """Turn ``key`` into an uppercase ``[A-Z0-9_]`` shell identifier.

    Runs of other characters become one underscore, repeated underscores are
    collapsed and leading/trailing underscores trimmed. Idempotent; a key
    without any letter or digit sanitizes to the empty string.
    """

    key = _NON_IDENT.sub("_", key.strip().upper())
    key = _UNDERSCORES.sub("_", key)
    return key.strip("_")


def quote_value(value: str) -> str:
    return '"' + _SHELL_SPECIAL.sub(r"\\\1", value) + '"'


@dataclass(slots=True)
class ShellSection:
    name: str
    _values: Dict[str, str] = field(default_factory=dict)

    def set(self, key: str, value: str) -> None:
        # dict keeps first-insertion order when a key is overwritten
        self._values[key] = value

    def items(self) -> List[Tuple[str, str]]:
        return list(self._values.items())

    def __len__(self) -> int:
        return len(self._values)

    def render(self) -> str:
        return "".join(f"{key}={quote_value(value)}\n" for key, value in self._values.items())


class ShellEnvironment:
    """Sections of ``KEY="VALUE"`` pairs, written to a sink exactly once.

    ``target`` selects the sink: ``""`` discards, ``"-"`` writes to standard
    output, ``"+"`` to standard error, anything else names a file whose parent
    directories are created on commit.
    """

    def __init__(self, target: str = DISCARD_TARGET, *, stream: TextIO | None = None) -> None:
        self.target = target
        self._stream = stream
        self._owned: TextIO | None = None
        self._sections: List[ShellSection] = []
        self.committed = False

    @property
    def name(self) -> str:
        if self.target == DISCARD_TARGET:
            return "<discard>"
        if self.target == STDOUT_TARGET:
            return "<stdout>"
        if self.target == STDERR_TARGET:
            return "<stderr>"
        return self.target

    @property
    def sections(self) -> List[ShellSection]:
        return list(self._sections)

    def section(self, name: str) -> ShellSection | None:
        for section in self._sections:
            if section.name == name:
                return section
        return None

    def append(self, section_name: str, key: str, value: str) -> None:
        """Add or overwrite ``key`` in ``section_name``; keys that sanitize to nothing are dropped."""
        key = sanitize_key(key)
        if not key:
            return
        section = self.section(section_name)
        if section is None:
            section = ShellSection(section_name)
            self._sections.append(section)
        section.set(key, "" if value is None else str(value))

    def render(self) -> str:
        blocks = [f"#\n# {section.name}\n#\n{section.render()}" for section in self._sections]
        return "\n".join(blocks)

    def _writer(self) -> TextIO | None:
        if self._stream is not None:
            return self._stream
        if self.target == DISCARD_TARGET:
            return None
        if self.target == STDOUT_TARGET:
            return sys.stdout
        if self.target == STDERR_TARGET:
            return sys.stderr
        if self._owned is None:
            path = Path(self.target).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            self._owned = path.open("w", encoding="utf-8")
        return self._owned

    def commit(self) -> int:
        """Write the rendered record to the sink; later calls write nothing."""

        if self.committed:
            return 0
        text = self.render()
        writer = self._writer()
        self.committed = True
        if writer is None:
            return 0
        writer.write(text)
        writer.flush()
        return len(text)

    def close(self) -> None:
        if self._owned is not None:
            self._owned.close()
            self._owned = None

    def __enter__(self) -> "ShellEnvironment":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = [
    "DISCARD_TARGET",
    "STDERR_TARGET",
    "STDOUT_TARGET",
    "ShellEnvironment",
    "ShellSection",
    "quote_value",
    "sanitize_key",
]
