from .bytecode import (
    FieldAccess,
    Instruction,
    Invoke,
    InvokeDynamic,
    InvokeInterface,
    InvokeSpecial,
    InvokeStatic,
    InvokeVirtual,
    decode_instructions,
)
from .classfile import AccessFlags, ClassFile, Code, MethodInfo, parse_class
from .constant_pool import ConstantPool, ConstantTag, MemberReference
from .errors import (
    ClassFileError,
    MalformedBytecode,
    MalformedClassFile,
    MalformedConstantPool,
    NotAClassFile,
    UnsupportedClassVersion,
)
from .opcodes import Opcode
