import struct

from classfile_builder import ClassBuilder, invoke, invokedynamic, op
from libusage.classfile import Opcode, parse_class
from libusage.detector.aggregator import ByClassAggregator, UniqueSetAggregator
from libusage.detector.core import decode_class, decode_method
from libusage.detector.diagnostics import Diagnostics
from libusage.detector.findings import Failure, MatchResult
from libusage.detector.scanner import PackageMatchScanner
from libusage.detector.tools import FieldAccessTool, PackageCallTool


def app_class(*extra_targets: tuple[str, str, str]) -> bytes:
    b = ClassBuilder("com/example/App")
    util = b.cp.add_methodref("com/acme/Util", "run", "()V")
    to_string = b.cp.add_methodref("java/lang/Object", "toString", "()Ljava/lang/String;")
    code = (
        invoke(Opcode.INVOKESTATIC, util)
        + op(Opcode.ALOAD_0)
        + invoke(Opcode.INVOKEVIRTUAL, to_string)
        + op(Opcode.POP)
    )
    for owner, name, desc in extra_targets:
        code += invoke(Opcode.INVOKESTATIC, b.cp.add_methodref(owner, name, desc))
    b.add_method("main", "([Ljava/lang/String;)V", code + op(Opcode.RETURN), access=0x0009)
    return b.build()


def scan(data: bytes, prefix: str, *tools):
    scanner = PackageMatchScanner(tools or [PackageCallTool(prefix)])
    return scanner.scan_class(parse_class(data)), scanner.diagnostics


def test_only_calls_into_the_namespace_match():
    results, diagnostics = scan(app_class(), "Lcom/acme/")

    assert results == [
        MatchResult("com.example.App", "com.example.App.main([Ljava/lang/String;)V", "com.acme.Util.run()V")
    ]
    assert len(diagnostics) == 0


def test_prefix_without_trailing_slash_also_matches_sibling_packages():
    data = app_class(("com/acmeplus/Foo", "go", "()V"))

    loose, _ = scan(data, "Lcom/acme")
    strict, _ = scan(data, "Lcom/acme/")

    assert [r.callee for r in loose] == ["com.acme.Util.run()V", "com.acmeplus.Foo.go()V"]
    assert [r.callee for r in strict] == ["com.acme.Util.run()V"]


def test_class_without_methods():
    results, diagnostics = scan(ClassBuilder("com/example/Nothing").build(), "Lcom/acme/")
    assert results == []
    assert len(diagnostics) == 0


def test_truncated_code_skips_only_that_method():
    b = ClassBuilder("com/example/Mixed")
    util = b.cp.add_methodref("com/acme/Util", "run", "()V")
    b.add_method("broken", "()V", invoke(Opcode.INVOKESTATIC, util)[:2])
    b.add_method("fine", "()V", invoke(Opcode.INVOKESTATIC, util) + op(Opcode.RETURN))

    results, diagnostics = scan(b.build(), "Lcom/acme/")

    assert [r.caller for r in results] == ["com.example.Mixed.fine()V"]
    assert diagnostics.triples() == [("method", "com.example.Mixed.broken()V", "MalformedBytecode")]


def test_field_access_needs_the_field_tool():
    b = ClassBuilder("com/example/Reader")
    flag = b.cp.add_fieldref("com/acme/Config", "FLAG", "Z")
    b.add_method("read", "()Z", invoke(Opcode.GETSTATIC, flag) + op(Opcode.IRETURN))
    data = b.build()

    calls_only, _ = scan(data, "Lcom/acme/")
    with_fields, _ = scan(data, "Lcom/acme/", PackageCallTool("Lcom/acme/"), FieldAccessTool("Lcom/acme/"))

    assert calls_only == []
    assert [r.callee for r in with_fields] == ["com.acme.Config.FLAGZ"]


def test_invokedynamic_is_matched_on_its_recorded_owner():
    b = ClassBuilder("com/example/Lambda")
    indy = b.cp.add_invoke_dynamic(0, "get", "()Ljava/util/function/Supplier;")
    b.add_method("make", "()Ljava/util/function/Supplier;", invokedynamic(indy) + op(Opcode.ARETURN))
    data = b.build()

    assert scan(data, "Lcom/acme/")[0] == []
    (result,), _ = scan(data, "Ljava/lang/")
    assert result.callee == "java.lang.Object.get()Ljava/util/function/Supplier;"


def test_unreadable_entries_are_recorded_and_skipped():
    diagnostics = Diagnostics()
    scanner = PackageMatchScanner([PackageCallTool("Lcom/acme/")], diagnostics)
    aggregator = ByClassAggregator()
    entries = [
        ("com/example/Junk.class", b"not a class"),
        ("com/example/App.class", app_class()),
        ("com/example/Old.class", ClassBuilder("com/example/Old", major=40).build()),
    ]

    decoded = scanner.scan_entries(entries, aggregator)

    assert decoded == 1
    assert len(aggregator) == 1
    assert diagnostics.triples() == [
        ("class", "com/example/Junk.class", "NotAClassFile"),
        ("class", "com/example/Old.class", "UnsupportedClassVersion"),
    ]
    assert diagnostics.by_kind()["NotAClassFile"] == 1


def test_unit_boundaries_return_failures_instead_of_raising():
    failure = decode_class("x.class", b"\x00")
    assert isinstance(failure, Failure)
    assert failure.unit_kind == "class" and failure.kind == "NotAClassFile"

    b = ClassBuilder("com/example/Bad")
    b.add_method("m", "()V", bytes([0xFE]))
    method = parse_class(b.build()).methods[0]
    failure = decode_method(method)
    assert isinstance(failure, Failure)
    assert str(failure).startswith("method com.example.Bad.m()V: MalformedBytecode")


def test_inconsistent_code_attribute_skips_only_that_method():
    b = ClassBuilder("com/example/Mixed")
    util = b.cp.add_methodref("com/acme/Util", "run", "()V")
    b.add_method("broken", "()V", op(Opcode.RETURN))
    b.add_method("fine", "()V", invoke(Opcode.INVOKESTATIC, util) + op(Opcode.RETURN))
    data = bytearray(b.build())
    at = data.index(bytes([0, 4, 0, 4, 0, 0, 0, 1, Opcode.RETURN]))
    data[at + 4 : at + 8] = struct.pack(">I", 200)

    diagnostics = Diagnostics()
    scanner = PackageMatchScanner([PackageCallTool("Lcom/acme/")], diagnostics)
    aggregator = ByClassAggregator()

    assert scanner.scan_entries([("Mixed.class", bytes(data))], aggregator) == 1
    assert [r.caller for r in aggregator] == ["com.example.Mixed.fine()V"]
    assert diagnostics.triples() == [("method", "com.example.Mixed.broken()V", "MalformedBytecode")]


def test_scan_classes_fills_the_aggregator():
    scanner = PackageMatchScanner([PackageCallTool("Lcom/acme/")])
    classes = [parse_class(app_class()), parse_class(ClassBuilder("com/example/Nothing").build())]

    aggregator = scanner.scan_classes(classes, UniqueSetAggregator())

    assert isinstance(aggregator, UniqueSetAggregator)
    assert [r.callee for r in aggregator] == ["com.acme.Util.run()V"]
