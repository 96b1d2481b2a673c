from __future__ import annotations

from typing import Iterable, Protocol

from libusage.classfile import ClassFile, ClassFileError, Instruction, MethodInfo, parse_class

from .findings import Failure, MatchResult


class AnalysisTool(Protocol):
    name: str

    def analyze(self, method: MethodInfo, ops: list[Instruction]) -> Iterable[MatchResult]: ...


def decode_class(entry: str, data: bytes) -> ClassFile | Failure:
    """Class boundary: a decoded class, or the Failure that skips it."""
    try:
        return parse_class(data)
    except ClassFileError as e:
        return Failure("class", entry, e.kind, str(e))


def decode_method(method: MethodInfo) -> list[Instruction] | Failure:
    """Method boundary: the method's instructions (empty without Code), or the Failure that skips it."""
    try:
        return method.instructions()
    except ClassFileError as e:
        return Failure("method", method.identity, e.kind, str(e))
