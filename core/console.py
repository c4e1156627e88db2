"""Line-oriented console output with configurable log level."""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, TextIO
import sys


@dataclass
class StepResult:
    """Mutable result text shown when a narrated step completes."""

    text: str = "ok"


class Console:
    """Console output handler narrating long-running steps.

    Levels: none < error < info < debug
    Default: 'info'

    A step is narrated as a line that is opened with :meth:`begin` and closed
    with :meth:`finish` once the step returns, for example::

         . [checkout] https://host/svn/lib/trunk -> /tmp/wc/trunk ... (r42)

    Failed steps close the open line and emit a ``!`` line with the error.
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "info": 2,
        "debug": 3,
    }

    def __init__(
        self,
        level: str = "info",
        *,
        stream: TextIO | None = None,
        error_stream: TextIO | None = None,
    ) -> None:
        self.level_name = level
        self.level = self.LEVELS.get(level, self.LEVELS["info"])
        self._stream = stream
        self._error_stream = error_stream
        self._open_line = False

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    @property
    def error_stream(self) -> TextIO:
        if self._error_stream is not None:
            return self._error_stream
        if self._stream is not None:
            return self._stream
        return sys.stderr

    def _enabled(self, level: str) -> bool:
        return self.level >= self.LEVELS[level]

    def _close_open_line(self) -> None:
        if self._open_line:
            print(file=self.stream, flush=True)
            self._open_line = False

    def begin(self, tag: str, message: str) -> None:
        """Open a narration line; the result is appended by :meth:`finish`."""
        if not self._enabled("info"):
            return
        self._close_open_line()
        print(f" . [{tag}] {message} ...", end="", file=self.stream, flush=True)
        self._open_line = True

    def finish(self, tag: str, error: BaseException | None = None, result: str = "ok") -> None:
        if self._open_line:
            suffix = f" ({result})" if error is None and result else ""
            print(suffix, file=self.stream, flush=True)
            self._open_line = False
        if error is not None:
            self.error(tag, str(error))

    @contextmanager
    def step(self, tag: str, message: str, result: str = "ok") -> Iterator[StepResult]:
        """Narrate the enclosed block as one line, closing it with the error if one escapes."""
        outcome = StepResult(result)
        self.begin(tag, message)
        try:
            yield outcome
        except BaseException as exc:
            self.finish(tag, exc)
            raise
        self.finish(tag, result=outcome.text)

    def info(self, tag: str, message: str) -> None:
        if self._enabled("info"):
            self._close_open_line()
            print(f" . [{tag}] {message}", file=self.stream)

    def error(self, tag: str, message: str) -> None:
        if self._enabled("error"):
            self._close_open_line()
            print(f" ! [{tag}] {message}", file=self.error_stream)

    def debug(self, tag: str, message: str) -> None:
        if self._enabled("debug"):
            self._close_open_line()
            print(f" - [{tag}] {message}", file=self.stream)


__all__ = ["Console", "StepResult"]
