"""Command line interface for svngrab."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Iterable, NoReturn
import sys
import textwrap

from core.console import Console

from .config import DEFAULT_CONFIG_NAME
from .errors import (
    EXIT_OK,
    EXIT_UNKNOWN,
    EXIT_USAGE,
    AllUpToDate,
    ConfigFileNotFound,
    InvalidPath,
    NotRegularFile,
    SvngrabError,
)
from .run import run
from .shell_env import ShellEnvironment
from .variables import parse_assignments

VARIABLES_HELP = textwrap.dedent(
    """\
    variables:
      Several elements of the configuration file support builtin and user-defined
      variables. Variable definitions are provided as command-line arguments of the
      form VAR=VAL. There should be no quotes surrounding VAL; however, if VAL
      contains spaces or other special characters, the entire argument may be
      enclosed with quotes, such as "VAR=V A L".

      With the variable definition VAR=VAL, the variable may be referenced in the
      configuration file as $VAR. A simple single-pass string substitution is
      performed to replace all occurrences of $VAR with VAL.

      The following builtin variables are always available, but may be overridden
      with definitions provided as command-line arguments:
        $DATETIME   # current local date-time ("YYYYMMDD-hhmmss")

    exit codes:
      0 success, 1 usage, 2 all working copies up-to-date (with -u),
      10-15 configuration, 20-23 repository, 100-103 packaging, 99 other
    """
)


class _Parser(ArgumentParser):
    """Argument parser whose usage errors exit with code 1, keeping 2 for -u."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        print(f"error: {message}", file=sys.stderr)
        raise SystemExit(EXIT_USAGE)


def _build_parser() -> ArgumentParser:
    parser = _Parser(
        prog="svngrab",
        usage="%(prog)s [options] [VAR=VAL ...]",
        description="Export version-controlled content and assemble it into packages",
        add_help=False,
    )
    parser.add_argument(
        "-f",
        dest="config",
        metavar="PATH",
        help=f"use configuration file at PATH (default: ./{DEFAULT_CONFIG_NAME})",
    )
    parser.add_argument("-h", dest="help", action="store_true", help="show the extended help")
    parser.add_argument("-q", dest="quiet", action="store_true", help="quiet, output as little as possible")
    parser.add_argument(
        "-u",
        dest="update_only",
        action="store_true",
        help="if all working copies are up-to-date, exit immediately (code 2)",
    )
    parser.add_argument(
        "-x",
        dest="export_env",
        default="",
        metavar="PATH",
        help='export results as shell environment script at PATH (or "-" stdout, "+" stderr)',
    )
    parser.add_argument("assignments", nargs="*", metavar="VAR=VAL", help="variable definitions")
    return parser


def _print_usage(parser: ArgumentParser, *, detailed: bool = False) -> None:
    parser.print_help(sys.stderr)
    if detailed:
        print(file=sys.stderr)
        print(VARIABLES_HELP, end="", file=sys.stderr)


def _execute(args: Namespace, parser: ArgumentParser, workspace: Path) -> int:
    config_provided = args.config is not None
    config_path = Path(args.config) if config_provided else workspace / DEFAULT_CONFIG_NAME
    if config_provided and not args.config.strip():
        print("error: no configuration file defined", file=sys.stderr)
        _print_usage(parser)
        return EXIT_USAGE

    console = Console("error" if args.quiet else "info")
    bindings, leftovers = parse_assignments(args.assignments)
    for leftover in leftovers:
        console.error("args", f"ignoring argument without '=': {leftover}")

    try:
        run(
            console=console,
            config_path=config_path,
            recorder=ShellEnvironment(args.export_env),
            update_only=args.update_only,
            bindings=bindings,
            workspace=workspace,
        )
    except AllUpToDate as exc:
        return exc.exit_code
    except (ConfigFileNotFound, InvalidPath, NotRegularFile) as exc:
        if not config_provided:
            _print_usage(parser)
        return exc.exit_code
    except SvngrabError as exc:
        return exc.exit_code
    except Exception as exc:
        console.error("run", str(exc))
        return EXIT_UNKNOWN
    return EXIT_OK


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else sys.argv[1:])
    if args.help:
        _print_usage(parser, detailed=True)
        return EXIT_OK
    return _execute(args, parser, Path.cwd())


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
