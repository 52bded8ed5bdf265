"""
A Field is "fundamental" datatype from the format point of view, something directly
packable/unpackable without need for relayouting.
"""
import copy
import logging
import struct
from enum import Enum
from typing import Dict

from .enum import Compliant
from .meta import FieldBase, Endianess
from .properties import Dependency, ChunkPhase
from .exceptions import (
    E57Exception,
    UnpackException,
    TruncatedStreamError,
)


def read_exactly(stream, size):
    '''Read "size" bytes or raise TruncatedStreamError'''
    offset = stream.tell()
    data = stream.read(size)
    if len(data) != size:
        raise TruncatedStreamError(size, len(data), offset=offset)

    return data


class Field(FieldBase):
    """Base class to subclass from"""

    def __init__(self, name=None, father=None, default=None, offset=None,
                 endianess=Endianess.LITTLE_ENDIAN, compliant=Compliant.INHERIT):
        super().__init__()
        self._phase = ChunkPhase.INIT
        self.logger = logging.getLogger(__name__)
        self.name = name
        self.father = father
        self.default = default
        self.offset = offset
        self.endianess = endianess
        self.compliant = compliant

        self.init()

    def init(self):
        self.value = self.value_from_default()

    def value_from_default(self):
        return copy.copy(self.default)

    def __str__(self):
        return str(self.value)

    def get_dependencies(self) -> Dict[str, Dependency]:
        """Return the dictionary containing as key the attribute holding the dependency"""
        instance_dict = self.__dict__
        return {_k: _v for _k, _v in instance_dict.items() if isinstance(_v, Dependency)}

    def is_compliant(self, level):
        '''Returns True if this field or one of its fathers (through INHERIT) requires "level"'''
        instance = self
        while instance is not None:
            if instance.compliant & level:
                return True
            if not instance.compliant & Compliant.INHERIT:
                break

            instance = instance.father

        return False

    def _get_value(self):
        return self._value

    def _set_value(self, value) -> None:
        self._value = value

    value = property(
        fget=lambda self: self._get_value(),
        fset=lambda self, value: self._set_value(value))

    def _get_size(self):
        raise NotImplementedError(f"method {self.__class__.__name__}._get_size() not implemented")

    size = property(
        fget=lambda self: self._get_size(),
    )

    def _get_raw(self) -> bytes:
        raise NotImplementedError(f"method {self.__class__.__name__}._get_raw() not implemented")

    def _set_raw(self, value) -> None:
        raise NotImplementedError(f"method {self.__class__.__name__}._set_raw() not implemented")

    raw = property(
        fget=lambda self: self._get_raw(),
        fset=lambda self, value: self._set_raw(value),
    )

    def relayout(self, offset=0):
        self.logger.debug("relayouting %s", self.__class__.__name__)
        self.offset = offset

        return self.size

    def _update_value(self):
        '''This is used to update the binary value before packing'''
        pass

    def pack(self, stream=None, relayout=True):
        '''The pack-ing action needs to take into consideration the fact that we need
        to eventually update fields that depends on other fields

        This operation is not idempotent!
        '''
        if relayout:
            self.relayout()

        self._update_value()

        raw = self.raw
        if stream is not None:
            stream.write(raw)

        return raw

    def unpack(self, stream):
        raise NotImplementedError('you need to implement this in the subclass')


class StructField(Field):
    """
    Simplest of the fields: mimic the behaviour of the struct module packing/unpacking
    integers to/from bytes.

    The main advantage is the possibility to indicate via the "enum" argument some subclass
    of enum.Enum so to have directly a representation of the integer value of the field itself.
    """

    def __init__(self, format, default=0, enum=None, **kw):
        self.format = format
        self.enum = enum
        super().__init__(default=default, **kw)

    def __repr__(self):
        if self.enum and isinstance(self.value, Enum):
            return f'<{self.__class__.__name__}({self.value!r})>'

        return '<%s(%s)>' % (self.__class__.__name__, hex(self.value))

    def __str__(self):
        width = self.size * 2  # we want to be as large as possible
        formatter = '0x%%0%dx' % width
        return formatter % (self.value.value if isinstance(self.value, Enum) else self.value,)

    def value_from_default(self):
        if not self.enum or isinstance(self.default, self.enum):
            return self.default

        return self.enum(self.default)

    def get_format(self):
        return '%s%s' % ('<' if self.endianess == Endianess.LITTLE_ENDIAN else '>', self.format)

    def _get_size(self):
        return struct.calcsize(self.get_format())

    def _get_raw(self) -> bytes:
        value = self.value.value if isinstance(self.value, Enum) else self.value
        return struct.pack(self.get_format(), value)

    def _set_raw(self, raw: bytes) -> None:
        self.value = self._unpack(raw)

    def _unpack_struct(self, raw: bytes) -> int:
        try:
            unpacked_value = struct.unpack(self.get_format(), raw)[0]
        except struct.error as e:
            self.logger.error(e)
            raise UnpackException(str(e)) from e

        return unpacked_value

    def _unpack_enum(self, value: int):
        try:
            return self.enum(value)
        except ValueError as e:
            if self.is_compliant(Compliant.ENUM):
                raise UnpackException(f'{self.enum.__name__} has no element with value 0x{value:x}') from e

            self.logger.warning(f'enum {self.enum!r} doesn\'t have element with value 0x{value:x} in it')

        return value

    def _unpack(self, raw):
        value = self._unpack_struct(raw)
        if self.enum:
            value = self._unpack_enum(value)

        return value

    def unpack(self, stream):
        self.value = self._unpack(read_exactly(stream, self.size))


class StringField(Field):
    """Represent a contiguous chunk of bytes.

    The length can be fixed or depend on another field via Dependency."""

    def __init__(self, n=None, **kw):
        if n is None and 'default' not in kw:
            raise ValueError(f"StringField must have 'n' or 'default' indicated!")

        self.n = n if n is not None else len(kw['default'])

        super().__init__(**kw)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, repr(self.value))

    def __len__(self):
        return len(self.value)

    @property
    def length(self):
        if isinstance(self.n, Dependency):
            return self.n.resolve(self)

        return self.n

    def value_from_default(self):
        if self.default:
            return self.default

        return b'' if isinstance(self.n, Dependency) else b'\x00' * self.n

    def _get_size(self):
        return len(self.value)

    def _set_value(self, value) -> None:
        """The StringField has the size as a parameter and we must follow that indication
        unless it's a Dependency."""
        if not isinstance(self.n, Dependency) and len(value) != self.n:
            raise ValueError(f'you are trying to set a value with the wrong size (that is {self.n} bytes)')

        super()._set_value(bytes(value))

    def _get_raw(self):
        return self.value

    def _set_raw(self, raw):
        self.value = raw

    def unpack(self, stream):
        self.value = read_exactly(stream, self.length)


class ArrayField(Field):
    '''Un/Pack an array of fields.

    The number of elements is given by the parameter named "n", an integer or
    a Dependency on a sibling field.

    This class must behave like a list in python.
    '''

    def __init__(self, field, n=0, **kw):
        if not isinstance(n, (int, Dependency)):
            raise ValueError('n is \'%s\' must be of the right type' % n.__class__.__name__)

        self.field = field
        self.n = n

        super().__init__(**kw)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.value!r})>'

    def __getitem__(self, item):
        return self.value[item]

    def __len__(self):
        return len(self.value)

    def __iter__(self):
        return iter(self.value)

    @property
    def count(self):
        if isinstance(self.n, Dependency):
            return self.n.resolve(self)

        return self.n

    def init(self):
        n = self.n if isinstance(self.n, int) else 0
        self.value = [self.instance_element() for _ in range(n)]
        self.relayout(offset=self.offset or 0)

    def clear(self):
        self.value.clear()

    def append(self, element):
        element.father = self
        self.value.append(element)

    def _get_raw(self):
        return b''.join(element.raw for element in self.value)

    def _get_size(self):
        return sum(element.size for element in self.value)

    def relayout(self, offset=0):
        self.offset = offset
        size = 0
        for element in self.value:
            size += element.relayout(offset=offset + size)

        return size

    def pack(self, stream=None, relayout=True):
        if relayout:
            self.relayout()

        return b''.join(element.pack(stream=stream, relayout=False) for element in self.value)

    def instance_element(self):
        return self.field.create(father=self)  # pass the father so that we don't lose the hierarchy

    def unpack_element(self, index, stream):
        element = self.instance_element()
        offset = stream.tell()
        try:
            element.unpack(stream)
        except E57Exception as e:
            e.chain.append(f'[{index}]')
            raise
        element.offset = offset

        return element

    def unpack(self, stream):
        self.value = []

        for index in range(self.count):
            self.value.append(self.unpack_element(index, stream))
