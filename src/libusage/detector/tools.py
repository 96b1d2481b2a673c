from __future__ import annotations

from libusage.classfile import FieldAccess, Instruction, Invoke, MethodInfo

from .findings import MatchResult


class PackageCallTool:
    """Reports every call-family instruction whose owner signature starts with ``prefix``."""

    name = "calls"

    def __init__(self, prefix: str):
        self.prefix = prefix

    def analyze(self, method: MethodInfo, ops: list[Instruction]):
        findings = []
        for op in ops:
            if isinstance(op, Invoke) and op.reference.owner_signature.startswith(self.prefix):
                findings.append(MatchResult.from_call(method, op.reference))
        return findings


class FieldAccessTool:
    """Same prefix test for get/put of fields."""

    name = "fields"

    def __init__(self, prefix: str):
        self.prefix = prefix

    def analyze(self, method: MethodInfo, ops: list[Instruction]):
        return [
            MatchResult.from_call(method, op.reference)
            for op in ops
            if isinstance(op, FieldAccess) and op.reference.owner_signature.startswith(self.prefix)
        ]
