"""
Class file reader - decodes the header of compiled JVM classes.

Only the part of the format needed to build an inheritance index is
read: constant pool, access flags, this class, super class and the
directly implemented interfaces. Fields, methods and attributes that
follow are ignored.
"""

import struct
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from changetest.domain.exceptions import ClassFileFormatError

MAGIC = 0xCAFEBABE

ACC_PUBLIC = 0x0001
ACC_FINAL = 0x0010
ACC_INTERFACE = 0x0200
ACC_ABSTRACT = 0x0400
ACC_SYNTHETIC = 0x1000
ACC_ANNOTATION = 0x2000
ACC_ENUM = 0x4000
ACC_MODULE = 0x8000

CONSTANT_UTF8 = 1
CONSTANT_CLASS = 7

# Payload size in bytes of every fixed-size constant pool entry
_FIXED_SIZES = {
    3: 4,  # Integer
    4: 4,  # Float
    5: 8,  # Long
    6: 8,  # Double
    7: 2,  # Class
    8: 2,  # String
    9: 4,  # Fieldref
    10: 4,  # Methodref
    11: 4,  # InterfaceMethodref
    12: 4,  # NameAndType
    15: 3,  # MethodHandle
    16: 2,  # MethodType
    17: 4,  # Dynamic
    18: 4,  # InvokeDynamic
    19: 2,  # Module
    20: 2,  # Package
}

# Long and Double take two constant pool slots
_WIDE_TAGS = (5, 6)


@dataclass(frozen=True)
class ClassInfo:
    """
    Header of one class file.

    Names are binary names with "/" separators as stored in the file
    (e.g. basic/project/FooTest, basic/project/Outer$Inner).
    """

    name: str
    super_name: Optional[str]
    access_flags: int
    interfaces: Tuple[str, ...] = ()
    major_version: int = 0

    @property
    def is_interface(self) -> bool:
        return bool(self.access_flags & ACC_INTERFACE)

    @property
    def is_abstract(self) -> bool:
        """Interfaces are implicitly abstract."""
        return bool(self.access_flags & (ACC_ABSTRACT | ACC_INTERFACE))

    @property
    def is_module(self) -> bool:
        return bool(self.access_flags & ACC_MODULE)

    @property
    def dotted_name(self) -> str:
        return self.name.replace("/", ".")

    @property
    def dotted_super_name(self) -> Optional[str]:
        return self.super_name.replace("/", ".") if self.super_name else None


class _Reader:
    """Big-endian cursor over class file bytes."""

    def __init__(self, data: bytes, origin: str):
        self.data = data
        self.origin = origin
        self.offset = 0

    def take(self, size: int) -> bytes:
        end = self.offset + size
        if end > len(self.data):
            raise ClassFileFormatError(
                f"Truncated class file: {self.origin}",
                details={"offset": self.offset, "size": len(self.data)},
            )
        chunk = self.data[self.offset : end]
        self.offset = end
        return chunk

    def u1(self) -> int:
        return self.take(1)[0]

    def u2(self) -> int:
        return struct.unpack(">H", self.take(2))[0]

    def u4(self) -> int:
        return struct.unpack(">I", self.take(4))[0]


def _decode_utf8(raw: bytes) -> str:
    """
    Decode a CONSTANT_Utf8 payload.

    Modified UTF-8 differs from UTF-8 only for NUL and supplementary
    characters, neither of which appear in class names in practice.
    """
    return raw.replace(b"\xc0\x80", b"\x00").decode("utf-8", errors="replace")


def parse_class_file(data: bytes, origin: str = "<bytes>") -> ClassInfo:
    """
    Decode a class file header.

    Args:
        data: Raw class file bytes
        origin: Path or archive entry, used in error messages

    Returns:
        ClassInfo for the class

    Raises:
        ClassFileFormatError: If the bytes are not a valid class file
    """
    reader = _Reader(data, origin)

    if reader.u4() != MAGIC:
        raise ClassFileFormatError(f"Not a class file (bad magic): {origin}")

    reader.u2()  # minor version
    major_version = reader.u2()

    constant_pool_count = reader.u2()
    utf8: Dict[int, str] = {}
    classes: Dict[int, int] = {}

    index = 1
    while index < constant_pool_count:
        tag = reader.u1()

        if tag == CONSTANT_UTF8:
            length = reader.u2()
            utf8[index] = _decode_utf8(reader.take(length))
        elif tag == CONSTANT_CLASS:
            classes[index] = reader.u2()
        elif tag in _FIXED_SIZES:
            reader.take(_FIXED_SIZES[tag])
        else:
            raise ClassFileFormatError(
                f"Unknown constant pool tag {tag} at entry {index}: {origin}"
            )

        index += 2 if tag in _WIDE_TAGS else 1

    def class_name(cp_index: int) -> str:
        name_index = classes.get(cp_index)
        if name_index is None or name_index not in utf8:
            raise ClassFileFormatError(
                f"Invalid class reference #{cp_index}: {origin}"
            )
        return utf8[name_index]

    access_flags = reader.u2()
    this_class = reader.u2()
    super_class = reader.u2()

    interfaces_count = reader.u2()
    interfaces = tuple(class_name(reader.u2()) for _ in range(interfaces_count))

    return ClassInfo(
        name=class_name(this_class),
        super_name=class_name(super_class) if super_class else None,
        access_flags=access_flags,
        interfaces=interfaces,
        major_version=major_version,
    )
