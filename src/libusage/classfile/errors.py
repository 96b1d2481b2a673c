from __future__ import annotations


class ClassFileError(Exception):
    """Base class of every decode failure raised by this package."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class NotAClassFile(ClassFileError):
    pass


class UnsupportedClassVersion(ClassFileError):
    pass


class MalformedClassFile(ClassFileError):
    pass


class MalformedConstantPool(ClassFileError):
    pass


class MalformedBytecode(ClassFileError):
    pass
