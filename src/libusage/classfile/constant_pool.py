"""
Constant pool of a compiled class.

The pool is a 1-indexed table of tagged entries. Entries reference each other
by index (a Methodref points at a Class and a NameAndType, which in turn point
at Utf8 entries); the pool owns every entry and resolution is a plain lookup.
8-byte constants (Long, Double) take two slots; the second slot is reserved
and reading it is an error.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union

from .errors import MalformedConstantPool
from .reader import ByteReader


class ConstantTag(IntEnum):
    UTF8 = 1
    INTEGER = 3
    FLOAT = 4
    LONG = 5
    DOUBLE = 6
    CLASS = 7
    STRING = 8
    FIELDREF = 9
    METHODREF = 10
    INTERFACE_METHODREF = 11
    NAME_AND_TYPE = 12
    METHOD_HANDLE = 15
    METHOD_TYPE = 16
    DYNAMIC = 17
    INVOKE_DYNAMIC = 18
    MODULE = 19
    PACKAGE = 20


@dataclass(frozen=True, slots=True)
class Utf8Info:
    value: str


@dataclass(frozen=True, slots=True)
class IntegerInfo:
    value: int


@dataclass(frozen=True, slots=True)
class FloatInfo:
    value: float


@dataclass(frozen=True, slots=True)
class LongInfo:
    value: int


@dataclass(frozen=True, slots=True)
class DoubleInfo:
    value: float


@dataclass(frozen=True, slots=True)
class ClassInfo:
    name_index: int


@dataclass(frozen=True, slots=True)
class StringInfo:
    string_index: int


@dataclass(frozen=True, slots=True)
class FieldrefInfo:
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True, slots=True)
class MethodrefInfo:
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True, slots=True)
class InterfaceMethodrefInfo:
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True, slots=True)
class NameAndTypeInfo:
    name_index: int
    descriptor_index: int


@dataclass(frozen=True, slots=True)
class MethodHandleInfo:
    reference_kind: int
    reference_index: int


@dataclass(frozen=True, slots=True)
class MethodTypeInfo:
    descriptor_index: int


@dataclass(frozen=True, slots=True)
class DynamicInfo:
    bootstrap_method_attr_index: int
    name_and_type_index: int


@dataclass(frozen=True, slots=True)
class InvokeDynamicInfo:
    bootstrap_method_attr_index: int
    name_and_type_index: int


@dataclass(frozen=True, slots=True)
class ModuleInfo:
    name_index: int


@dataclass(frozen=True, slots=True)
class PackageInfo:
    name_index: int


ConstantPoolEntry = Union[
    Utf8Info,
    IntegerInfo,
    FloatInfo,
    LongInfo,
    DoubleInfo,
    ClassInfo,
    StringInfo,
    FieldrefInfo,
    MethodrefInfo,
    InterfaceMethodrefInfo,
    NameAndTypeInfo,
    MethodHandleInfo,
    MethodTypeInfo,
    DynamicInfo,
    InvokeDynamicInfo,
    ModuleInfo,
    PackageInfo,
]

MemberRefInfo = (FieldrefInfo, MethodrefInfo, InterfaceMethodrefInfo)


@dataclass(frozen=True, slots=True)
class MemberReference:
    """A resolved (owner, name, descriptor) triple; ``owner`` is an internal name such as ``com/acme/Util``."""

    owner: str
    name: str
    descriptor: str

    @property
    def owner_signature(self) -> str:
        return type_signature(self.owner)

    def __str__(self) -> str:
        return f"{self.owner.replace('/', '.')}.{self.name}{self.descriptor}"


def type_signature(internal_name: str) -> str:
    """``com/acme/Util`` -> ``Lcom/acme/Util;``; array names are already descriptors."""
    if internal_name.startswith("["):
        return internal_name
    return f"L{internal_name};"


def decode_modified_utf8(raw: bytes) -> str:
    """Decode the class-file flavour of UTF-8 (``C0 80`` for NUL, surrogate pairs for supplementary chars)."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        pass
    try:
        text = raw.replace(b"\xc0\x80", b"\x00").decode("utf-8", "surrogatepass")
        return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")
    except UnicodeError as e:
        raise MalformedConstantPool(f"invalid modified UTF-8: {raw[:32]!r}") from e


_SIMPLE_LAYOUTS: dict[int, tuple[str, type]] = {
    ConstantTag.CLASS: (">H", ClassInfo),
    ConstantTag.STRING: (">H", StringInfo),
    ConstantTag.FIELDREF: (">HH", FieldrefInfo),
    ConstantTag.METHODREF: (">HH", MethodrefInfo),
    ConstantTag.INTERFACE_METHODREF: (">HH", InterfaceMethodrefInfo),
    ConstantTag.NAME_AND_TYPE: (">HH", NameAndTypeInfo),
    ConstantTag.METHOD_HANDLE: (">BH", MethodHandleInfo),
    ConstantTag.METHOD_TYPE: (">H", MethodTypeInfo),
    ConstantTag.DYNAMIC: (">HH", DynamicInfo),
    ConstantTag.INVOKE_DYNAMIC: (">HH", InvokeDynamicInfo),
    ConstantTag.MODULE: (">H", ModuleInfo),
    ConstantTag.PACKAGE: (">H", PackageInfo),
    ConstantTag.INTEGER: (">i", IntegerInfo),
    ConstantTag.FLOAT: (">f", FloatInfo),
    ConstantTag.LONG: (">q", LongInfo),
    ConstantTag.DOUBLE: (">d", DoubleInfo),
}


class ConstantPool:
    """Random-access table of decoded entries; slot 0 and the slot after a Long/Double hold ``None``."""

    def __init__(self, entries: list[Optional[ConstantPoolEntry]]):
        self._entries = entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def count(self) -> int:
        """The ``constant_pool_count`` as declared in the class file."""
        return len(self._entries)

    @classmethod
    def parse(cls, reader: ByteReader, count: int) -> "ConstantPool":
        """Decode ``count - 1`` slots starting at the reader's cursor."""
        if count < 1:
            raise MalformedConstantPool(f"constant pool count {count} is smaller than 1")
        error, reader.error = reader.error, MalformedConstantPool
        try:
            entries: list[Optional[ConstantPoolEntry]] = [None]
            while len(entries) < count:
                index = len(entries)
                entry = cls._parse_entry(reader, index)
                entries.append(entry)
                if isinstance(entry, (LongInfo, DoubleInfo)):
                    if len(entries) >= count:
                        raise MalformedConstantPool(
                            f"8-byte constant at #{index} has no room for its second slot"
                        )
                    entries.append(None)
        finally:
            reader.error = error
        return cls(entries)

    @staticmethod
    def _parse_entry(reader: ByteReader, index: int) -> ConstantPoolEntry:
        tag = reader.u1()
        if tag == ConstantTag.UTF8:
            length = reader.u2()
            return Utf8Info(decode_modified_utf8(reader.read(length)))
        try:
            fmt, kind = _SIMPLE_LAYOUTS[tag]
        except KeyError:
            raise MalformedConstantPool(f"unknown constant tag {tag} at #{index}") from None
        raw = reader.read(struct.calcsize(fmt))
        return kind(*struct.unpack(fmt, raw))

    def __getitem__(self, index: int) -> ConstantPoolEntry:
        if not 0 < index < len(self._entries):
            raise MalformedConstantPool(
                f"index #{index} out of range 1..{len(self._entries) - 1}"
            )
        entry = self._entries[index]
        if entry is None:
            raise MalformedConstantPool(f"index #{index} is the reserved half of an 8-byte constant")
        return entry

    def get(self, index: int, kind):
        """Entry at ``index``, which must be an instance of ``kind`` (a type or tuple of types)."""
        entry = self[index]
        if not isinstance(entry, kind):
            expected = kind.__name__ if isinstance(kind, type) else "/".join(k.__name__ for k in kind)
            raise MalformedConstantPool(
                f"#{index} is {type(entry).__name__}, expected {expected}"
            )
        return entry

    def utf8(self, index: int) -> str:
        return self.get(index, Utf8Info).value

    def class_name(self, index: int) -> str:
        """Internal name of a Class entry, e.g. ``com/acme/Util`` or ``[Ljava/lang/String;``."""
        return self.utf8(self.get(index, ClassInfo).name_index)

    def class_signature(self, index: int) -> str:
        return type_signature(self.class_name(index))

    def name_and_type(self, index: int) -> tuple[str, str]:
        nat = self.get(index, NameAndTypeInfo)
        return self.utf8(nat.name_index), self.utf8(nat.descriptor_index)

    def member_reference(self, index: int, kind=MemberRefInfo) -> MemberReference:
        """Resolve a Fieldref, Methodref or InterfaceMethodref (narrowed by ``kind``)."""
        ref = self.get(index, kind)
        owner = self.class_name(ref.class_index)
        name, descriptor = self.name_and_type(ref.name_and_type_index)
        if not owner or not name or not descriptor:
            raise MalformedConstantPool(f"member reference #{index} has an empty component")
        return MemberReference(owner, name, descriptor)

    def invoke_dynamic(self, index: int) -> tuple[int, str, str]:
        """(bootstrap method index, name, descriptor) of an InvokeDynamic entry."""
        indy = self.get(index, InvokeDynamicInfo)
        name, descriptor = self.name_and_type(indy.name_and_type_index)
        return indy.bootstrap_method_attr_index, name, descriptor
