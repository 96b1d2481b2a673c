"""
Instruction stream decoder.

Turns the raw bytes of a Code attribute into a list of instructions. Only the
call family (and, on request, field access) carries a resolved operand;
everything else is kept as opcode + address + length so that the cursor stays
in step with the real instruction boundaries, switch padding and ``wide``
prefixes included.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .constant_pool import (
    ConstantPool,
    FieldrefInfo,
    InterfaceMethodrefInfo,
    MemberReference,
    MethodrefInfo,
)
from .errors import MalformedBytecode, MalformedConstantPool
from .opcodes import (
    FIELD_OPCODES,
    INVOKE_OPCODES,
    OPERAND_SIZES,
    WIDENABLE,
    Opcode,
    switch_padding,
)
from .reader import ByteReader

# invokedynamic call sites have no owning class in the pool; they are
# recorded against java/lang/Object like BCEL's getReferenceType does.
DYNAMIC_OWNER = "java/lang/Object"


@dataclass(frozen=True, slots=True)
class Instruction:
    opcode: Opcode
    address: int
    length: int

    def __str__(self) -> str:
        return f"{self.address}: {self.opcode.name.lower()}"


@dataclass(frozen=True, slots=True)
class Invoke(Instruction):
    reference: MemberReference

    def __str__(self) -> str:
        return f"{self.address}: {self.opcode.name.lower()} {self.reference}"


@dataclass(frozen=True, slots=True)
class InvokeVirtual(Invoke):
    pass


@dataclass(frozen=True, slots=True)
class InvokeSpecial(Invoke):
    pass


@dataclass(frozen=True, slots=True)
class InvokeStatic(Invoke):
    pass


@dataclass(frozen=True, slots=True)
class InvokeInterface(Invoke):
    count: int


@dataclass(frozen=True, slots=True)
class InvokeDynamic(Invoke):
    bootstrap_method_index: int


@dataclass(frozen=True, slots=True)
class FieldAccess(Instruction):
    reference: MemberReference

    @property
    def static(self) -> bool:
        return self.opcode in (Opcode.GETSTATIC, Opcode.PUTSTATIC)

    def __str__(self) -> str:
        return f"{self.address}: {self.opcode.name.lower()} {self.reference}"


_INVOKE_KINDS = {
    Opcode.INVOKEVIRTUAL: InvokeVirtual,
    Opcode.INVOKESPECIAL: InvokeSpecial,
    Opcode.INVOKESTATIC: InvokeStatic,
}

_METHOD_REFS = (MethodrefInfo, InterfaceMethodrefInfo)


def decode_instructions(code: bytes, pool: ConstantPool) -> list[Instruction]:
    """Decode a whole code array; raises ``MalformedBytecode`` on any inconsistency."""
    reader = ByteReader(code, error=MalformedBytecode)
    ops: list[Instruction] = []
    while reader.remaining:
        ops.append(_decode_one(reader, pool))
    return ops


def invocations(ops: Iterable[Instruction]) -> Iterable[Invoke]:
    return (op for op in ops if isinstance(op, Invoke))


def _decode_one(reader: ByteReader, pool: ConstantPool) -> Instruction:
    address = reader.offset
    raw = reader.u1()
    try:
        op = Opcode(raw)
    except ValueError:
        raise MalformedBytecode(f"unknown opcode 0x{raw:02x} at {address}") from None

    if op in INVOKE_OPCODES or op in FIELD_OPCODES:
        return _decode_reference(reader, pool, op, address)

    match op:
        case Opcode.TABLESWITCH:
            reader.skip(switch_padding(address))
            reader.skip(4)  # default
            low, high = reader.s4(), reader.s4()
            if high < low:
                raise MalformedBytecode(f"tableswitch at {address}: high {high} < low {low}")
            reader.skip(4 * (high - low + 1))
        case Opcode.LOOKUPSWITCH:
            reader.skip(switch_padding(address))
            reader.skip(4)  # default
            npairs = reader.s4()
            if npairs < 0:
                raise MalformedBytecode(f"lookupswitch at {address}: negative pair count {npairs}")
            reader.skip(8 * npairs)
        case Opcode.WIDE:
            inner = reader.u1()
            if inner not in WIDENABLE:
                raise MalformedBytecode(f"wide at {address} modifies opcode 0x{inner:02x}")
            reader.skip(4 if inner == Opcode.IINC else 2)
        case _:
            reader.skip(OPERAND_SIZES.get(op, 0))

    return Instruction(op, address, reader.offset - address)


def _decode_reference(reader: ByteReader, pool: ConstantPool, op: Opcode, address: int) -> Instruction:
    index = reader.u2()
    count = 0
    if op == Opcode.INVOKEINTERFACE:
        count, zero = reader.u1(), reader.u1()
        if count == 0:
            raise MalformedBytecode(f"invokeinterface at {address} has argument count 0")
        if zero != 0:
            raise MalformedBytecode(f"invokeinterface at {address} has non-zero padding {zero}")
    elif op == Opcode.INVOKEDYNAMIC:
        zero = reader.u2()
        if zero != 0:
            raise MalformedBytecode(f"invokedynamic at {address} has non-zero padding {zero}")
    length = reader.offset - address

    try:
        if op == Opcode.INVOKEDYNAMIC:
            bootstrap, name, descriptor = pool.invoke_dynamic(index)
            ref = MemberReference(DYNAMIC_OWNER, name, descriptor)
            return InvokeDynamic(op, address, length, ref, bootstrap)
        if op in FIELD_OPCODES:
            return FieldAccess(op, address, length, pool.member_reference(index, FieldrefInfo))
        if op == Opcode.INVOKEINTERFACE:
            ref = pool.member_reference(index, InterfaceMethodrefInfo)
            return InvokeInterface(op, address, length, ref, count)
        ref = pool.member_reference(index, _METHOD_REFS)
        return _INVOKE_KINDS[op](op, address, length, ref)
    except MalformedConstantPool as e:
        raise MalformedBytecode(f"{op.name.lower()} at {address}: {e}") from e
