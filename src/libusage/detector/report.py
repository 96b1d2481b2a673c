from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from loguru import logger

from .findings import MatchResult


def package_label(prefix: str) -> str:
    """``Lcom/acme`` -> ``com.acme``."""
    return prefix[1:].replace("/", ".") if prefix.startswith("L") else prefix.replace("/", ".")


def report_path(output: str | Path, archive: str | Path, prefix: str, report_format: str = "log") -> Path:
    """``<output>/<archive file name>_<package>.<log|csv>``, e.g. ``out/app.jar_com.acme.log``."""
    return Path(output) / f"{Path(archive).name}_{package_label(prefix)}.{report_format}"


def write_report(results: Iterable[MatchResult], path: str | Path, report_format: str = "log") -> bool:
    """
    Write results to ``path``; returns False (after logging) when the file cannot be written.
    Names that are not valid Unicode (lone surrogates from the class file) are written escaped.
    """
    path = Path(path)
    try:
        with open(path, "w", encoding="utf-8", errors="backslashreplace", newline="") as f:
            match report_format:
                case "log":
                    for r in results:
                        f.write(f"{r}\n")
                case "csv":
                    writer = csv.writer(f)
                    writer.writerow(["caller", "callee"])
                    for r in results:
                        writer.writerow([r.caller, r.callee])
                case _:
                    raise ValueError(f"unknown report format {report_format!r}")
    except OSError as e:
        logger.error(f"Cannot write to file {path}: {e}")
        return False
    logger.info(f"Results dumped to {path.resolve()}")
    return True
