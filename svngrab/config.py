"""Configuration model: export entries and package assembly rules."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence
import copy
import posixpath
import re
import stat

import yaml

from core.config_loader import dump_config_file, load_config_file, normalize_string_list

from .errors import ConfigFileNotFound, DirectoryNotFound, InvalidConfig, InvalidPath, NotRegularFile
from .variables import VariableTable

DEFAULT_CONFIG_NAME = "svngrab.yml"

# scheme prefix of a URL, up to and including the slashes
_URL_SCHEME = re.compile(r"^\s*[a-zA-Z][a-zA-Z0-9+.-]*://")


class ConflictPolicy(str, Enum):
    """What to do when a destination directory already exists."""

    MERGE = "merge"
    REPLACE = "replace"
    UNTOUCHABLE = "untouchable"

    @classmethod
    def parse(cls, value: Any) -> "ConflictPolicy":
        text = str(value or "").strip().lower()
        if text in {"skip", "ignore", "untouchable"}:
            return cls.UNTOUCHABLE
        if text == "replace":
            return cls.REPLACE
        return cls.MERGE


class SymlinkPolicy(str, Enum):
    """How symbolic links found in a source tree are copied."""

    DEEP = "deep"
    SHALLOW = "shallow"
    SKIP = "skip"

    @classmethod
    def parse(cls, value: Any) -> "SymlinkPolicy":
        text = str(value or "").strip().lower()
        if text == "deep":
            return cls.DEEP
        if text == "shallow":
            return cls.SHALLOW
        return cls.SKIP


class VcsKind(str, Enum):
    SVN = "svn"
    GIT = "git"


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _mapping(value: Any, *, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidConfig(field_name, "expected a mapping")
    return value


def _sequence(value: Any, *, field_name: str) -> Sequence[Any]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise InvalidConfig(field_name, "expected a list")
    return value


def join_url(repo: str, path: str) -> str:
    """Join a repository locator and a sub-path without collapsing ``scheme://``."""

    match = _URL_SCHEME.match(repo)
    if match:
        prefix = repo[match.start():match.end()].lstrip()
        rest = repo[match.end():]
    else:
        prefix, rest = "", repo
    joined = posixpath.join(rest, path.lstrip("/")) if path else rest
    if joined:
        joined = posixpath.normpath(joined)
        if joined == ".":
            joined = ""
    return prefix + joined


@dataclass(slots=True)
class ExportEntry:
    name: str
    repo: str
    path: str = ""
    local: str = ""
    last: str = ""
    vcs: VcsKind = VcsKind.SVN

    @classmethod
    def from_mapping(cls, name: str, data: Any) -> "ExportEntry":
        section = _mapping(data, field_name=f"export.{name}")
        raw_vcs = _text(section.get("vcs")).strip().lower() or VcsKind.SVN.value
        try:
            vcs = VcsKind(raw_vcs)
        except ValueError:
            raise InvalidConfig(f"export.{name}.vcs", f"unsupported version control system '{raw_vcs}'") from None
        return cls(
            name=str(name),
            repo=_text(section.get("repo")),
            path=_text(section.get("path")),
            local=_text(section.get("local")),
            last=_text(section.get("last")),
            vcs=vcs,
        )

    @property
    def url(self) -> str:
        """Remote locator of the exported subtree."""
        if self.vcs is VcsKind.GIT:
            return self.repo
        return join_url(self.repo, self.path)

    @property
    def working_copy(self) -> str:
        """Local directory holding the exported subtree."""
        if not self.path:
            return self.local
        return str(Path(self.local) / self.path.lstrip("/"))

    def substituted(self, variables: VariableTable) -> "ExportEntry":
        return replace(
            self,
            name=variables.substitute(self.name),
            repo=variables.substitute(self.repo),
            path=variables.substitute(self.path),
            local=variables.substitute(self.local),
        )


@dataclass(slots=True)
class CopyOperation:
    source: str
    destination: str
    conflict: ConflictPolicy = ConflictPolicy.MERGE
    symlinks: SymlinkPolicy = SymlinkPolicy.SKIP
    ignore: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Any, *, field_name: str) -> "CopyOperation":
        section = _mapping(data, field_name=field_name)
        if "copy" in section:
            field_name = f"{field_name}.copy"
            section = _mapping(section.get("copy"), field_name=field_name)
        try:
            ignore = normalize_string_list(section.get("ignore"), field_name=f"{field_name}.ignore")
        except TypeError as exc:
            raise InvalidConfig(f"{field_name}.ignore", str(exc)) from None
        return cls(
            source=_text(section.get("repo")),
            destination=_text(section.get("package")),
            conflict=ConflictPolicy.parse(section.get("conflict")),
            symlinks=SymlinkPolicy.parse(section.get("symlinks")),
            ignore=ignore,
        )

    @property
    def is_active(self) -> bool:
        return bool(self.source) and bool(self.destination)

    def substituted(self, variables: VariableTable) -> "CopyOperation":
        return replace(
            self,
            source=variables.substitute(self.source),
            destination=variables.substitute(self.destination),
            ignore=variables.substitute_all(self.ignore),
        )


@dataclass(slots=True)
class IncludeGroup:
    """Copy operations drawing from one export entry or literal path."""

    source: str
    operations: List[CopyOperation] = field(default_factory=list)


@dataclass(slots=True)
class CompressDirective:
    output: str = ""
    overwrite: bool = False
    method: str = ""
    level: int | None = None

    @classmethod
    def from_mapping(cls, data: Any, *, field_name: str) -> "CompressDirective":
        section = _mapping(data, field_name=field_name)
        level = section.get("level")
        if level is not None:
            if isinstance(level, bool):
                raise InvalidConfig(f"{field_name}.level", "expected an integer")
            try:
                level = int(level)
            except (TypeError, ValueError):
                raise InvalidConfig(f"{field_name}.level", "expected an integer") from None
        return cls(
            output=_text(section.get("output")),
            overwrite=bool(section.get("overwrite", False)),
            method=_text(section.get("method")),
            level=level,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.output)


@dataclass(slots=True)
class PackageRule:
    destination: str
    include: List[IncludeGroup] = field(default_factory=list)
    compress: CompressDirective = field(default_factory=CompressDirective)

    @classmethod
    def from_mapping(cls, destination: str, data: Any) -> "PackageRule":
        prefix = f"package.{destination}"
        section = _mapping(data, field_name=prefix)
        groups: List[IncludeGroup] = []
        for index, item in enumerate(_sequence(section.get("include"), field_name=f"{prefix}.include")):
            item_name = f"{prefix}.include[{index}]"
            for source, operations in _mapping(item, field_name=item_name).items():
                group_name = f"{item_name}.{source}"
                groups.append(
                    IncludeGroup(
                        source=str(source),
                        operations=[
                            CopyOperation.from_mapping(op, field_name=f"{group_name}[{op_index}]")
                            for op_index, op in enumerate(_sequence(operations, field_name=group_name))
                        ],
                    )
                )
        return cls(
            destination=str(destination),
            include=groups,
            compress=CompressDirective.from_mapping(section.get("compress"), field_name=f"{prefix}.compress"),
        )


@dataclass(slots=True)
class Configuration:
    """Parsed configuration file.

    ``raw`` keeps the decoded document untouched (unsubstituted), so
    :meth:`save` writes back exactly what was read plus updated revisions.
    """

    path: Path
    exports: Dict[str, ExportEntry] = field(default_factory=dict)
    packages: Dict[str, PackageRule] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, path: Path) -> "Configuration":
        exports = {
            str(name): ExportEntry.from_mapping(str(name), entry)
            for name, entry in _mapping(data.get("export"), field_name="export").items()
        }
        packages = {
            str(destination): PackageRule.from_mapping(str(destination), rule)
            for destination, rule in _mapping(data.get("package"), field_name="package").items()
        }
        raw = copy.deepcopy(dict(data))
        # names are strings in both views
        for section in ("export", "package"):
            if isinstance(raw.get(section), Mapping):
                raw[section] = {str(key): value for key, value in raw[section].items()}
        return cls(path=path, exports=exports, packages=packages, raw=raw)

    @classmethod
    def load(cls, path: Path | str) -> "Configuration":
        path = Path(path)
        directory = path.parent
        if not directory.exists():
            raise DirectoryNotFound(str(directory))
        if not directory.is_dir():
            raise InvalidPath(str(directory))
        if not path.exists():
            raise ConfigFileNotFound(str(path))
        if not stat.S_ISREG(path.stat().st_mode):
            raise NotRegularFile(str(path))

        try:
            data = load_config_file(path)
        except (yaml.YAMLError, TypeError, ValueError) as exc:
            raise InvalidConfig(str(path), str(exc)) from exc
        return cls.from_mapping(data, path=path)

    def export_names(self) -> List[str]:
        return sorted(self.exports)

    def record_revision(self, name: str, revision: str) -> bool:
        """Store ``revision`` as the last known revision of export ``name``.

        Returns ``True`` when it differs from the previously stored value.
        """

        entry = self.exports[name]
        changed = entry.last != revision
        entry.last = revision
        section = self.raw.setdefault("export", {})
        raw_entry = section.get(name)
        if not isinstance(raw_entry, dict):
            raw_entry = {}
            section[name] = raw_entry
        raw_entry["last"] = revision
        return changed

    def save(self) -> None:
        dump_config_file(self.path, self.raw)


__all__ = [
    "CompressDirective",
    "Configuration",
    "ConflictPolicy",
    "CopyOperation",
    "DEFAULT_CONFIG_NAME",
    "ExportEntry",
    "IncludeGroup",
    "PackageRule",
    "SymlinkPolicy",
    "VcsKind",
    "join_url",
]
