from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path

CLASS_SUFFIX = ".class"
DEFAULT_EXTENSIONS = ("jar",)
REPORT_FORMATS = ("log", "csv")
MODES = ("ordered", "unordered")


@dataclass(slots=True)
class DetectorConfig:
    """
    Options of one detector run.
    ``mode`` picks the aggregator: "ordered" keeps every call grouped by
    caller class, "unordered" is the legacy set of unique pairs.
    """
    package: str = ""
    application: str | None = None
    directory: str | None = None
    output: str | None = None
    report_format: str = "log"
    mode: str = "ordered"
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    include_fields: bool = False
    debug: bool = False

    def __post_init__(self):
        if self.report_format not in REPORT_FORMATS:
            raise ValueError(f"unknown report format {self.report_format!r}, expected one of {REPORT_FORMATS}")
        if self.mode not in MODES:
            raise ValueError(f"unknown mode {self.mode!r}, expected one of {MODES}")
        self.extensions = tuple(e.lower().lstrip(".") for e in self.extensions)

    @classmethod
    def from_json(cls, path: str | Path) -> "DetectorConfig":
        """Load a config from a JSON object whose keys are field names."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"{path}: unknown config keys {unknown}")
        kwargs = dict(data)
        if "extensions" in kwargs:
            kwargs["extensions"] = tuple(kwargs["extensions"])
        return cls(**kwargs)
