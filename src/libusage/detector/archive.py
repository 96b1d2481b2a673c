from __future__ import annotations

import zipfile
import zlib
from pathlib import Path
from typing import Iterator

from loguru import logger

from .config import CLASS_SUFFIX


class ArchiveReadError(Exception):
    kind = "ArchiveReadError"


def iter_class_entries(path: str | Path) -> Iterator[tuple[str, bytes]]:
    """
    Yield (entry name, raw bytes) for each ``.class`` entry of a jar/zip, one entry at a time.
    A bare ``.class`` file is treated as a single-entry archive.
    """
    path = Path(path)
    if path.suffix == CLASS_SUFFIX:
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ArchiveReadError(f"cannot read {path}: {e}") from e
        yield path.name, data
        return

    try:
        zf = zipfile.ZipFile(path)
    except (OSError, zipfile.BadZipFile) as e:
        raise ArchiveReadError(f"cannot open {path}: {e}") from e
    with zf:
        for info in zf.infolist():
            if info.is_dir() or not info.filename.endswith(CLASS_SUFFIX):
                continue
            try:
                data = zf.read(info)
            except (OSError, EOFError, RuntimeError, zipfile.BadZipFile, zlib.error) as e:
                raise ArchiveReadError(f"cannot read {info.filename} in {path}: {e}") from e
            logger.debug(f"Read {info.filename} ({len(data)} bytes) from {path.name}")
            yield info.filename, data


def list_archives(directory: str | Path, extensions: tuple[str, ...]) -> list[Path]:
    """Direct children of ``directory`` with one of ``extensions``, sorted; others are logged and skipped."""
    directory = Path(directory)
    try:
        children = sorted(directory.iterdir())
    except OSError as e:
        raise ArchiveReadError(f"cannot list {directory}: {e}") from e
    selected = []
    for child in children:
        if child.is_file() and child.suffix.lower().lstrip(".") in extensions:
            selected.append(child)
        else:
            logger.info(f"Skipping file {child}")
    return selected
