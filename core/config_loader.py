"""Shared helpers for loading and persisting configuration mappings."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence, TextIO
import json

import yaml


ConfigLoader = Callable[[TextIO], Any]
ConfigDumper = Callable[[Mapping[str, Any], TextIO], None]


def _dump_yaml(data: Mapping[str, Any], stream: TextIO) -> None:
    yaml.safe_dump(dict(data), stream, default_flow_style=False, sort_keys=False, allow_unicode=True)


def _dump_json(data: Mapping[str, Any], stream: TextIO) -> None:
    json.dump(data, stream, indent=2)
    stream.write("\n")


FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".json": lambda stream: json.load(stream),
    ".yaml": lambda stream: yaml.safe_load(stream),
    ".yml": lambda stream: yaml.safe_load(stream),
}
"""Mapping of file suffixes to loader callables."""

FILE_DUMPERS: Dict[str, ConfigDumper] = {
    ".json": _dump_json,
    ".yaml": _dump_yaml,
    ".yml": _dump_yaml,
}
"""Mapping of file suffixes to dumper callables; every loadable suffix can be written back."""


def _supported() -> str:
    return ", ".join(sorted(FILE_LOADERS)) or "<none>"


def load_config_file(path: Path) -> Dict[str, Any]:
    """Load and decode a configuration mapping from ``path``.

    An empty document decodes to an empty mapping.
    """

    suffix = path.suffix.lower()
    loader = FILE_LOADERS.get(suffix)
    if loader is None:
        raise ValueError(f"Unsupported configuration file extension: {suffix or '<none>'}. Supported: {_supported()}")

    with path.open("r", encoding="utf-8") as handle:
        data = loader(handle)

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"Configuration file '{path}' must contain a mapping at the root")
    return dict(data)


def dump_config_file(path: Path, data: Mapping[str, Any]) -> None:
    """Encode ``data`` into ``path`` using the format implied by its suffix.

    The file is rewritten in place so an existing file keeps its permission bits.
    """

    suffix = path.suffix.lower()
    dumper = FILE_DUMPERS.get(suffix)
    if dumper is None:
        raise ValueError(f"Unsupported configuration file extension: {suffix or '<none>'}. Supported: {_supported()}")

    with path.open("w", encoding="utf-8") as handle:
        dumper(data, handle)


def normalize_string_list(value: Any, *, field_name: str | None = None) -> List[str]:
    """Coerce ``value`` into a list of strings, dropping empty entries.

    Entries are not stripped: leading or trailing whitespace can be significant
    (regular expressions, for instance).
    """

    if value is None:
        return []

    if isinstance(value, (str, bytes)):
        text = str(value)
        return [text] if text else []

    if isinstance(value, Sequence):
        items: List[str] = []
        for item in value:
            if isinstance(item, (int, float)) and not isinstance(item, bool):
                item = str(item)
            if not isinstance(item, (str, bytes)):
                label = f"{field_name} " if field_name else ""
                raise TypeError(f"{label}entries must be strings")
            text = str(item)
            if text:
                items.append(text)
        return items

    label = f"{field_name} " if field_name else ""
    raise TypeError(f"{label}must be a string or sequence of strings")


__all__ = [
    "ConfigDumper",
    "ConfigLoader",
    "FILE_DUMPERS",
    "FILE_LOADERS",
    "dump_config_file",
    "load_config_file",
    "normalize_string_list",
]
