from __future__ import annotations

from dataclasses import dataclass, field

from libusage.classfile import MemberReference, MethodInfo


@dataclass(frozen=True, slots=True)
class MatchResult:
    """
    One call site: ``caller`` invokes ``callee``.
    Holds formatted strings only, so the decoded class can be dropped afterwards.
    """
    caller_class: str
    caller: str
    callee: str

    @staticmethod
    def from_call(method: MethodInfo, ref: MemberReference) -> "MatchResult":
        return MatchResult(
            caller_class=method.owner.java_name,
            caller=method.identity,
            callee=str(ref),
        )

    def __str__(self) -> str:
        return f"{self.caller} -> {self.callee}"


@dataclass(frozen=True, slots=True)
class Failure:
    """A unit (archive, class or method) that could not be decoded."""
    unit_kind: str
    unit: str
    kind: str
    message: str = ""

    def __str__(self) -> str:
        return f"{self.unit_kind} {self.unit}: {self.kind} {self.message}".rstrip()


MATCHED = "matched"
NO_MATCH = "no-match"
FAILED = "failed"


@dataclass(slots=True)
class ArchiveOutcome:
    path: str
    status: str = NO_MATCH
    results: list[MatchResult] = field(default_factory=list)
    classes: int = 0
    failures: int = 0
    error: str | None = None
    report: str | None = None

    def __str__(self) -> str:
        detail = self.error or f"{len(self.results)} calls, {self.classes} classes, {self.failures} failures"
        return f"{self.status}\t{self.path}\t{detail}"
