from __future__ import annotations

from pathlib import Path
from typing import Iterable

from loguru import logger

from libusage.classfile import ClassFile

from .aggregator import ResultAggregator
from .archive import ArchiveReadError, iter_class_entries
from .core import AnalysisTool, decode_class, decode_method
from .diagnostics import Diagnostics
from .findings import FAILED, MATCHED, ArchiveOutcome, Failure, MatchResult


class PackageMatchScanner:
    """
    Main scan loop:
    - pulls (entry, bytes) pairs out of an archive
    - decodes each class, then each method, at its own boundary
    - hands every decoded method to the registered tools
    - records failures in the Diagnostics sink and moves on to the next unit
    """

    def __init__(self, tools: Iterable[AnalysisTool], diagnostics: Diagnostics | None = None):
        self.tools = list(tools)
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    def scan_class(self, cls: ClassFile) -> list[MatchResult]:
        results: list[MatchResult] = []
        for method in cls.methods:
            ops = decode_method(method)
            if isinstance(ops, Failure):
                self.diagnostics.record(ops)
                continue
            for tool in self.tools:
                results.extend(tool.analyze(method, ops))
        logger.debug(f"{cls.java_name}: {len(cls.methods)} methods, {len(results)} matches")
        return results

    def scan_classes(self, classes: Iterable[ClassFile], aggregator: ResultAggregator) -> ResultAggregator:
        for cls in classes:
            aggregator.extend(self.scan_class(cls))
        return aggregator

    def scan_entries(self, entries: Iterable[tuple[str, bytes]], aggregator: ResultAggregator) -> int:
        """Decode and scan each entry; returns the number of classes decoded."""
        decoded = 0
        for entry, data in entries:
            cls = decode_class(entry, data)
            if isinstance(cls, Failure):
                self.diagnostics.record(cls)
                continue
            decoded += 1
            aggregator.extend(self.scan_class(cls))
        return decoded

    def scan_archive(self, path: str | Path, aggregator: ResultAggregator) -> ArchiveOutcome:
        outcome = ArchiveOutcome(str(path))
        before = len(self.diagnostics)
        try:
            outcome.classes = self.scan_entries(iter_class_entries(path), aggregator)
        except ArchiveReadError as e:
            self.diagnostics.record(Failure("archive", str(path), e.kind, str(e)))
            outcome.status = FAILED
            outcome.error = str(e)
        outcome.failures = len(self.diagnostics) - before
        outcome.results = list(aggregator)
        if outcome.status != FAILED and outcome.results:
            outcome.status = MATCHED
        return outcome
