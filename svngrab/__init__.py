"""Export version-controlled content and assemble it into packages."""

from .config import Configuration, ConflictPolicy, SymlinkPolicy
from .errors import AllUpToDate, SvngrabError
from .run import RunReport, run
from .shell_env import ShellEnvironment
from .variables import VariableTable

__all__ = [
    "AllUpToDate",
    "Configuration",
    "ConflictPolicy",
    "RunReport",
    "ShellEnvironment",
    "SvngrabError",
    "SymlinkPolicy",
    "VariableTable",
    "run",
]
