"""Archive creation utilities reusable across tools."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple
import os
import tarfile
import tempfile
import zipfile

import zstandard as zstd

from .console import Console


@dataclass(frozen=True, slots=True)
class ArchiveFormat:
    """A supported archive layout and its naming rules."""

    name: str
    extensions: Tuple[str, ...]
    min_level: int
    max_level: int
    default_level: int | None = None

    @property
    def extension(self) -> str:
        """Canonical extension appended when an output name lacks a valid one."""
        return self.extensions[0]

    def clamp_level(self, level: int | None) -> int | None:
        if level is None:
            return self.default_level
        return max(self.min_level, min(self.max_level, int(level)))


ZIP = ArchiveFormat("zip", (".zip",), 0, 9)
GZTAR = ArchiveFormat("gztar", (".tar.gz", ".tgz"), 0, 9, default_level=9)
BZTAR = ArchiveFormat("bztar", (".tar.bz2", ".tbz2", ".tbz"), 1, 9, default_level=9)
XZTAR = ArchiveFormat("xztar", (".tar.xz", ".txz"), 0, 9)
ZSTTAR = ArchiveFormat("zst", (".tar.zst", ".tzst"), 1, 22, default_level=3)

_FORMAT_ALIASES: Dict[str, ArchiveFormat] = {
    "zip": ZIP,
    "gz": GZTAR,
    "tgz": GZTAR,
    "targz": GZTAR,
    "tar.gz": GZTAR,
    "gztar": GZTAR,
    "bz2": BZTAR,
    "tbz": BZTAR,
    "tbz2": BZTAR,
    "tarbz2": BZTAR,
    "tar.bz2": BZTAR,
    "bztar": BZTAR,
    "xz": XZTAR,
    "txz": XZTAR,
    "tarxz": XZTAR,
    "tar.xz": XZTAR,
    "xztar": XZTAR,
    "zst": ZSTTAR,
    "tzst": ZSTTAR,
    "tarzst": ZSTTAR,
    "tar.zst": ZSTTAR,
}


def resolve_format(method: str) -> ArchiveFormat:
    """Return the archive format named by ``method``.

    Matching is case-insensitive and tolerates a leading dot (``".tgz"``).
    Raises :class:`ValueError` for unknown methods.
    """

    normalized = (method or "").strip().lower().lstrip(".")
    try:
        return _FORMAT_ALIASES[normalized]
    except KeyError:
        raise ValueError(f"Unsupported archive method '{method}'") from None


def has_valid_extension(path: Path | str, archive_format: ArchiveFormat) -> bool:
    name = Path(path).name.lower()
    return any(name.endswith(ext) for ext in archive_format.extensions)


def normalize_output_path(path: Path | str, archive_format: ArchiveFormat) -> Path:
    """Give ``path`` the canonical extension of ``archive_format`` when it lacks a valid one.

    Only the last suffix is replaced: ``out.tar`` becomes ``out.tar.gz`` for
    gzip, ``out.zip`` becomes ``out.tar.bz2`` for bzip2.
    """

    target = Path(path)
    if has_valid_extension(target, archive_format):
        return target
    stem = target.name[: -len(target.suffix)] if target.suffix else target.name
    return target.with_name(stem + archive_format.extension)


class ArchiveManager:
    """Create compressed archives from directories.

    The archived directory becomes the single top-level folder of the archive.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console

    def create_archive(
        self,
        *,
        source_dir: Path | str,
        target_path: Path | str,
        archive_format: ArchiveFormat | str,
        level: int | None = None,
        overwrite: bool = True,
    ) -> Path:
        """Archive ``source_dir`` into ``target_path``.

        Parameters
        ----------
        source_dir:
            Directory to archive.
        target_path:
            Exact path (including filename) for the archive. The name is used
            verbatim; see :func:`normalize_output_path`.
        archive_format:
            An :class:`ArchiveFormat` or a method alias such as ``"zip"``.
        level:
            Compression level, clamped into the format's range. ``None`` selects
            the format default.
        overwrite:
            When ``False`` and the target already exists, a :class:`FileExistsError`
            is raised instead of replacing the file.
        """

        source = Path(source_dir).expanduser()
        target = Path(target_path).expanduser()
        if isinstance(archive_format, str):
            archive_format = resolve_format(archive_format)

        if not source.is_dir():
            raise FileNotFoundError(f"Archive source directory '{source}' does not exist")
        if target.exists() and not overwrite:
            raise FileExistsError(f"Archive target '{target}' already exists")

        target.parent.mkdir(parents=True, exist_ok=True)
        effective_level = archive_format.clamp_level(level)
        if self._console is not None:
            self._console.debug("pack", f"{archive_format.name} level={effective_level} {source} -> {target}")

        with tempfile.NamedTemporaryFile(dir=target.parent, prefix=".", suffix=".partial", delete=False) as handle:
            temp_path = Path(handle.name)

        try:
            if archive_format is ZIP:
                self._make_zip_archive(temp_path, source, effective_level)
            elif archive_format is ZSTTAR:
                self._make_zst_archive(temp_path, source, effective_level)
            else:
                self._make_tar_archive(temp_path, source, archive_format, effective_level)
            os.replace(temp_path, target)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

        return target

    @staticmethod
    def _make_zip_archive(target: Path, source: Path, level: int | None) -> None:
        root = source.parent
        with zipfile.ZipFile(
            target,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=level,
            allowZip64=True,
            strict_timestamps=False,
        ) as archive:
            for dirpath, dirnames, filenames in os.walk(source, topdown=True):
                dirnames.sort()
                filenames.sort()
                current = Path(dirpath)
                archive.write(current, current.relative_to(root).as_posix() + "/")
                for filename in filenames:
                    file_path = current / filename
                    archive.write(file_path, file_path.relative_to(root).as_posix())

    @staticmethod
    def _make_tar_archive(target: Path, source: Path, archive_format: ArchiveFormat, level: int | None) -> None:
        kwargs: Dict[str, Any] = {"format": tarfile.PAX_FORMAT}
        if archive_format is GZTAR:
            mode = "w:gz"
            kwargs["compresslevel"] = level
        elif archive_format is BZTAR:
            mode = "w:bz2"
            kwargs["compresslevel"] = level
        elif archive_format is XZTAR:
            mode = "w:xz"
            if level is not None:
                kwargs["preset"] = level
        else:
            raise RuntimeError(f"Unsupported archive format '{archive_format.name}'")

        with tarfile.open(target, mode=mode, **kwargs) as tar:
            tar.add(source, arcname=source.name)

    @staticmethod
    def _make_zst_archive(target: Path, source: Path, level: int | None) -> None:
        compressor = zstd.ZstdCompressor(level=level if level is not None else 3, write_checksum=True)
        with target.open("wb") as raw:
            with compressor.stream_writer(raw, closefd=False) as writer:
                with tarfile.open(fileobj=writer, mode="w|", format=tarfile.PAX_FORMAT) as tar:
                    tar.add(source, arcname=source.name)


__all__ = [
    "ArchiveFormat",
    "ArchiveManager",
    "BZTAR",
    "GZTAR",
    "XZTAR",
    "ZIP",
    "ZSTTAR",
    "has_valid_extension",
    "normalize_output_path",
    "resolve_format",
]
