"""
Class file decoder.

Layout (all big-endian)::

    u4 magic, u2 minor, u2 major, u2 cp_count, cp_info[cp_count-1],
    u2 access, u2 this, u2 super, u2 n_ifaces, u2[n_ifaces],
    u2 n_fields, field_info[], u2 n_methods, method_info[],
    u2 n_attrs, attribute_info[]

Fields and class attributes are only skipped. For every method the raw bytes
of its ``Code`` attribute are captured; instructions are decoded on first use.
A Code attribute whose own body is inconsistent fails only its method.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntFlag
from typing import Optional

from .bytecode import Instruction, decode_instructions
from .constant_pool import ConstantPool
from .errors import (
    MalformedBytecode,
    MalformedClassFile,
    NotAClassFile,
    UnsupportedClassVersion,
)
from .reader import ByteReader

MAGIC = 0xCAFEBABE
MIN_MAJOR_VERSION = 45  # JDK 1.0.2


class AccessFlags(IntFlag):
    PUBLIC = 0x0001
    PRIVATE = 0x0002
    PROTECTED = 0x0004
    STATIC = 0x0008
    FINAL = 0x0010
    SUPER = 0x0020
    SYNCHRONIZED = 0x0020
    VOLATILE = 0x0040
    BRIDGE = 0x0040
    TRANSIENT = 0x0080
    VARARGS = 0x0080
    NATIVE = 0x0100
    INTERFACE = 0x0200
    ABSTRACT = 0x0400
    STRICT = 0x0800
    SYNTHETIC = 0x1000
    ANNOTATION = 0x2000
    ENUM = 0x4000
    MODULE = 0x8000


@dataclass(slots=True)
class Code:
    max_stack: int
    max_locals: int
    code: bytes
    exception_table_length: int = 0
    defect: Optional[str] = None
    _ops: Optional[list[Instruction]] = field(default=None, repr=False, compare=False)

    @classmethod
    def broken(cls, defect: str) -> "Code":
        """A Code attribute whose body could not be laid out; decoding it raises."""
        return cls(0, 0, b"", defect=defect)

    def instructions(self, pool: ConstantPool) -> list[Instruction]:
        """Decoded instructions, computed once and cached."""
        if self.defect is not None:
            raise MalformedBytecode(self.defect)
        if self._ops is None:
            self._ops = decode_instructions(self.code, pool)
        return self._ops


@dataclass(slots=True)
class MethodInfo:
    access_flags: AccessFlags
    name: str
    descriptor: str
    code: Optional[Code] = None
    owner: Optional["ClassFile"] = field(default=None, repr=False, compare=False)

    @property
    def identity(self) -> str:
        """``com.acme.Foo.bar(I)V`` style name of this method."""
        owner = self.owner.java_name if self.owner is not None else "?"
        return f"{owner}.{self.name}{self.descriptor}"

    def instructions(self) -> list[Instruction]:
        if self.code is None:
            return []
        if self.owner is None:
            raise ValueError(f"method {self.name}{self.descriptor} is not attached to a ClassFile")
        return self.code.instructions(self.owner.constant_pool)

    def __str__(self):
        return self.identity


@dataclass(slots=True)
class ClassFile:
    minor_version: int
    major_version: int
    constant_pool: ConstantPool
    access_flags: AccessFlags
    name: str
    super_name: Optional[str]
    interfaces: list[str]
    methods: list[MethodInfo] = field(default_factory=list)

    @property
    def java_name(self) -> str:
        return self.name.replace("/", ".")

    def __str__(self):
        return self.java_name


def parse_class(data: bytes) -> ClassFile:
    """Decode one class file; raises a ``ClassFileError`` subclass on failure."""
    reader = ByteReader(data)
    if len(data) < 4 or reader.u4() != MAGIC:
        raise NotAClassFile(f"bad magic {bytes(data[:4]).hex()!r}")
    minor, major = reader.u2(), reader.u2()
    if major < MIN_MAJOR_VERSION:
        raise UnsupportedClassVersion(f"class file version {major}.{minor} predates {MIN_MAJOR_VERSION}.0")

    pool = ConstantPool.parse(reader, reader.u2())

    access = AccessFlags(reader.u2())
    name = pool.class_name(reader.u2())
    super_index = reader.u2()
    super_name = pool.class_name(super_index) if super_index else None
    interfaces = [pool.class_name(reader.u2()) for _ in range(reader.u2())]

    for _ in range(reader.u2()):
        reader.skip(6)  # access, name, descriptor
        _skip_attributes(reader)

    cls = ClassFile(minor, major, pool, access, name, super_name, interfaces)
    for _ in range(reader.u2()):
        method = _parse_method(reader, pool)
        method.owner = cls
        cls.methods.append(method)

    _skip_attributes(reader)
    return cls


def _skip_attributes(reader: ByteReader) -> None:
    for _ in range(reader.u2()):
        reader.skip(2)
        reader.skip(reader.u4())


def _parse_method(reader: ByteReader, pool: ConstantPool) -> MethodInfo:
    access = AccessFlags(reader.u2())
    name = pool.utf8(reader.u2())
    descriptor = pool.utf8(reader.u2())
    code = None
    for _ in range(reader.u2()):
        attr_name = pool.utf8(reader.u2())
        length = reader.u4()
        body = reader.read(length)
        if attr_name == "Code":
            if code is not None:
                raise MalformedClassFile(f"method {name}{descriptor} has two Code attributes")
            try:
                code = _parse_code(body, f"{name}{descriptor}")
            except MalformedBytecode as e:
                # attribute_length already kept the class cursor aligned
                code = Code.broken(str(e))
    return MethodInfo(access, name, descriptor, code)


def _parse_code(body: bytes, where: str) -> Code:
    reader = ByteReader(body, error=MalformedBytecode)
    max_stack, max_locals = reader.u2(), reader.u2()
    code_length = reader.u4()
    if code_length > reader.remaining:
        raise MalformedBytecode(
            f"{where}: code length {code_length} exceeds Code attribute ({reader.remaining} left)"
        )
    code = reader.read(code_length)
    handlers = reader.u2()
    reader.skip(8 * handlers)
    _skip_attributes(reader)
    return Code(max_stack, max_locals, code, handlers)
