"""Run-scoped substitution variables."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Tuple
import re

TOKEN_PREFIX = "$"
DATETIME_FORMAT = "%Y%m%d-%H%M%S"


def token_for(name: str) -> str:
    return name if name.startswith(TOKEN_PREFIX) else TOKEN_PREFIX + name


class VariableTable:
    """Mapping of ``$TOKEN`` placeholders to replacement strings.

    Tokens are plain substrings, so ``$LIB`` also matches inside ``$LIBRARY``
    unless ``$LIBRARY`` is itself a bound token. All tokens are matched in a
    single left-to-right scan, longest token first; replacement values are
    never scanned again.
    """

    def __init__(self, *, now: datetime | None = None) -> None:
        self._values: Dict[str, str] = {}
        self._pattern: re.Pattern[str] | None = None
        stamp = (now or datetime.now()).strftime(DATETIME_FORMAT)
        self.set("$DATETIME", stamp)

    def set(self, token: str, value: str) -> None:
        token = token_for(token)
        if token == TOKEN_PREFIX:
            raise ValueError("Variable name cannot be empty")
        self._values[token] = "" if value is None else str(value)
        self._pattern = None

    def get(self, token: str, default: str | None = None) -> str | None:
        return self._values.get(token_for(token), default)

    def __contains__(self, token: object) -> bool:
        return isinstance(token, str) and token_for(token) in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def items(self) -> List[Tuple[str, str]]:
        return [(token, self._values[token]) for token in self]

    def _compiled(self) -> re.Pattern[str]:
        if self._pattern is None:
            ordered = sorted(self._values, key=lambda token: (-len(token), token))
            self._pattern = re.compile("|".join(re.escape(token) for token in ordered))
        return self._pattern

    def substitute(self, text: str) -> str:
        if not text or not self._values:
            return text
        return self._compiled().sub(lambda match: self._values[match.group(0)], text)

    def substitute_all(self, values: Iterable[str]) -> List[str]:
        return [self.substitute(value) for value in values]


def parse_assignments(argv: Iterable[str]) -> Tuple[Dict[str, str], List[str]]:
    """Split ``NAME=VALUE`` arguments from everything else.

    Only the first ``=`` separates name from value, so values may contain
    ``=``. Returns the bindings (keyed by bare name) and the leftover arguments.
    """

    bindings: Dict[str, str] = {}
    leftovers: List[str] = []
    for arg in argv:
        name, sep, value = arg.partition("=")
        if sep and name:
            bindings[name] = value
        else:
            leftovers.append(arg)
    return bindings, leftovers


__all__ = ["DATETIME_FORMAT", "TOKEN_PREFIX", "VariableTable", "parse_assignments", "token_for"]
