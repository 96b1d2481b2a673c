from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Iterator

from .findings import MatchResult


class ResultAggregator(ABC):
    """
    Collects MatchResults for one archive.
    The scanner calls:
       - add(result)
       - extend(results)   (per-class partial results)
    The report stage iterates the aggregator.
    """

    @abstractmethod
    def add(self, result: MatchResult) -> None:
        ...

    def extend(self, results: Iterable[MatchResult]) -> None:
        for r in results:
            self.add(r)

    @abstractmethod
    def __iter__(self) -> Iterator[MatchResult]:
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...


class UniqueSetAggregator(ResultAggregator):
    """
    Legacy mode → set
    Exact duplicate (caller, callee) pairs collapse; iteration order is unspecified.
    """

    def __init__(self):
        self._results: set[MatchResult] = set()

    def add(self, result: MatchResult) -> None:
        self._results.add(result)

    def __iter__(self) -> Iterator[MatchResult]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)


class ByClassAggregator(ResultAggregator):
    """
    Ordered mode → caller class name, then discovery order
    Nothing is deduplicated.
    """

    def __init__(self):
        self._by_class: dict[str, list[MatchResult]] = {}

    def add(self, result: MatchResult) -> None:
        self._by_class.setdefault(result.caller_class, []).append(result)

    def __iter__(self) -> Iterator[MatchResult]:
        for name in sorted(self._by_class):
            yield from self._by_class[name]

    def __len__(self) -> int:
        return sum(len(v) for v in self._by_class.values())


def make_aggregator(mode: str) -> ResultAggregator:
    match mode:
        case "ordered":
            return ByClassAggregator()
        case "unordered":
            return UniqueSetAggregator()
        case _:
            raise ValueError(f"unknown aggregation mode {mode!r}")
