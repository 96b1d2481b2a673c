import struct

import pytest
from hypothesis import given, settings, strategies

from classfile_builder import ClassBuilder, invoke, op
from libusage.classfile import (
    AccessFlags,
    ClassFileError,
    Code,
    InvokeStatic,
    MalformedBytecode,
    MalformedClassFile,
    MethodInfo,
    NotAClassFile,
    UnsupportedClassVersion,
    parse_class,
)
from libusage.classfile.opcodes import Opcode


def sample_class() -> bytes:
    b = ClassBuilder("com/example/App")
    b.interfaces.append("java/lang/Runnable")
    b.add_field("count", "I").add_field("name", "Ljava/lang/String;")
    run = b.cp.add_methodref("com/acme/Util", "run", "()V")
    b.add_method("run", "()V", invoke(Opcode.INVOKESTATIC, run) + op(Opcode.RETURN))
    b.add_method("shape", "()I", None, access=0x0401)
    b.add_method("<init>", "()V", op(Opcode.RETURN))
    return b.build()


def test_decodes_header_and_methods_in_order():
    cls = parse_class(sample_class())

    assert cls.name == "com/example/App"
    assert cls.java_name == "com.example.App"
    assert cls.super_name == "java/lang/Object"
    assert cls.interfaces == ["java/lang/Runnable"]
    assert cls.major_version == 52
    assert [m.name for m in cls.methods] == ["run", "shape", "<init>"]
    assert all(m.owner is cls for m in cls.methods)


def test_abstract_method_has_no_code():
    shape = parse_class(sample_class()).methods[1]
    assert shape.code is None
    assert AccessFlags.ABSTRACT in shape.access_flags
    assert shape.instructions() == []


def test_code_is_captured_and_decoded_on_demand():
    run = parse_class(sample_class()).methods[0]
    assert run.code.code == bytes([Opcode.INVOKESTATIC, 0, run.code.code[2], Opcode.RETURN])
    assert run.code.exception_table_length == 1

    ops = run.instructions()
    assert isinstance(ops[0], InvokeStatic)
    assert str(ops[0].reference) == "com.acme.Util.run()V"
    assert run.instructions() is ops
    assert run.identity == "com.example.App.run()V"


def test_java_lang_object_has_no_superclass():
    cls = parse_class(ClassBuilder("java/lang/Object", super_name=None).build())
    assert cls.super_name is None
    assert cls.methods == []


def test_bad_bytecode_does_not_fail_the_class():
    b = ClassBuilder("com/example/Broken")
    b.add_method("broken", "()V", bytes([Opcode.SIPUSH, 1]))
    cls = parse_class(b.build())

    with pytest.raises(MalformedBytecode):
        cls.methods[0].instructions()


def test_not_a_class_file():
    with pytest.raises(NotAClassFile):
        parse_class(b"PK\x03\x04rest-of-a-zip")
    with pytest.raises(NotAClassFile):
        parse_class(b"\xca\xfe")


def test_unsupported_version():
    with pytest.raises(UnsupportedClassVersion):
        parse_class(ClassBuilder("Old", major=44).build())


def test_newer_versions_are_accepted():
    assert parse_class(ClassBuilder("New", major=75).build()).major_version == 75


def test_method_count_running_past_the_buffer():
    data = ClassBuilder("Empty").build()
    # methods_count is followed by the class attribute table (u2 count + SourceFile).
    methods_count_at = len(data) - 2 - 8 - 2
    assert data[methods_count_at : methods_count_at + 2] == b"\x00\x00"
    with pytest.raises(MalformedClassFile):
        parse_class(data[:methods_count_at] + b"\x00\x05")


def lying_code_length(b: ClassBuilder, new_length: int) -> bytes:
    data = bytearray(b.build())
    # Code body: max_stack, max_locals, code_length(=1), return opcode
    marker = bytes([0, 4, 0, 4, 0, 0, 0, 1, Opcode.RETURN])
    at = data.index(marker)
    data[at + 4 : at + 8] = struct.pack(">I", new_length)
    return bytes(data)


def test_code_length_longer_than_attribute_fails_only_that_method():
    b = ClassBuilder("com/example/Lying")
    b.add_method("m", "()V", op(Opcode.RETURN))
    b.add_method("n", "()V", op(Opcode.NOP) + op(Opcode.RETURN))

    cls = parse_class(lying_code_length(b, 0x1000))

    assert [m.name for m in cls.methods] == ["m", "n"]
    with pytest.raises(MalformedBytecode, match="code length"):
        cls.methods[0].instructions()
    assert len(cls.methods[1].instructions()) == 2


def test_truncated_exception_table_fails_only_that_method():
    b = ClassBuilder("com/example/Lying")
    b.add_method("m", "()V", op(Opcode.RETURN))
    b.add_method("n", "()V", op(Opcode.NOP) + op(Opcode.RETURN))

    # the last two bytes of the attribute are read as a handler count of 1 with no entry behind it
    cls = parse_class(lying_code_length(b, 23))

    with pytest.raises(MalformedBytecode):
        cls.methods[0].instructions()
    assert cls.methods[0].code.defect is not None
    assert cls.methods[1].code.defect is None


def test_detached_method_with_code():
    method = MethodInfo(AccessFlags.PUBLIC, "m", "()V", Code(1, 1, bytes([Opcode.RETURN])))
    with pytest.raises(ValueError, match="not attached"):
        method.instructions()


@settings(max_examples=60)
@given(strategies.data())
def test_every_truncation_is_rejected(data):
    raw = sample_class()
    cut = data.draw(strategies.integers(min_value=0, max_value=len(raw) - 1))
    with pytest.raises(ClassFileError):
        parse_class(raw[:cut])
