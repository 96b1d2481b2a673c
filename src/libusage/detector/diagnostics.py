from __future__ import annotations

from collections import Counter

from loguru import logger

from .findings import Failure


class Diagnostics:
    """Records every decode failure of a run; recording never interrupts the scan."""

    def __init__(self):
        self.failures: list[Failure] = []

    def record(self, failure: Failure) -> None:
        self.failures.append(failure)
        logger.warning(f"Skipping {failure}")

    def triples(self) -> list[tuple[str, str, str]]:
        """(unit kind, unit identity, error kind) of every failure, in order."""
        return [(f.unit_kind, f.unit, f.kind) for f in self.failures]

    def by_kind(self) -> Counter:
        return Counter(f.kind for f in self.failures)

    def __len__(self) -> int:
        return len(self.failures)
