from enum import Enum, auto


class ErrorKind(Enum):
    '''Coarse classification of the failures, useful when you are not
    interested in the exact exception class.'''
    STRUCTURAL = auto()
    INTEGRITY  = auto()
    SCHEMA     = auto()
    SECTION    = auto()
    CODEC      = auto()


class E57Exception(Exception):
    '''Base class to extend in order to throw exception in e57struct.

    The "chain" argument represents the layers that caused the exception:
    each layer that lets the exception slip through appends its own name, so
    that the path of the failing element can be reconstructed afterwards.

    The "offset" argument, when known, is the physical offset into the file
    where the problem was found.
    '''
    kind = None

    def __init__(self, *args, chain=None, offset=None):
        self.chain = chain if chain is not None else []
        self.offset = offset
        super().__init__(*args)

    @property
    def path(self) -> str:
        path = ''
        for component in reversed(self.chain):
            # indexes stick to the name of their container
            if path and not component.startswith('['):
                path += '/'
            path += component

        return path

    def __str__(self):
        msg = super().__str__()
        if self.chain:
            msg = f'{msg} (at {self.path})'
        if self.offset is not None:
            msg = f'{msg} [offset 0x{self.offset:x}]'

        return msg


class UnpackException(E57Exception):
    kind = ErrorKind.STRUCTURAL


class StructuralError(E57Exception):
    kind = ErrorKind.STRUCTURAL


class BadSignatureError(StructuralError):

    def __init__(self, signature, **kwargs):
        self.signature = signature
        super().__init__(f'bad signature {signature!r}', **kwargs)


class UnsupportedVersionError(StructuralError):

    def __init__(self, major, minor, **kwargs):
        self.major = major
        self.minor = minor
        super().__init__(f'unsupported version {major}.{minor}', **kwargs)


class UnsupportedPageSizeError(StructuralError):

    def __init__(self, page_size, **kwargs):
        self.page_size = page_size
        super().__init__(f'unsupported page size {page_size}', **kwargs)


class TruncatedStreamError(StructuralError, UnpackException):
    '''The stream ended before the requested amount of data could be read.'''

    def __init__(self, expected, actual, **kwargs):
        self.expected = expected
        self.actual = actual
        super().__init__(f'expected {expected} bytes, only {actual} available', **kwargs)


class FileLengthMismatchError(StructuralError):

    def __init__(self, declared, actual, **kwargs):
        self.declared = declared
        self.actual = actual
        super().__init__(f'header declares {declared} bytes but the stream has {actual}', **kwargs)


class IntegrityError(E57Exception):
    kind = ErrorKind.INTEGRITY


class InvalidFileSizeError(IntegrityError):

    def __init__(self, size, **kwargs):
        self.size = size
        super().__init__(f'file size {size} is not a multiple of the page size', **kwargs)


class ChecksumMismatchError(IntegrityError):

    def __init__(self, offset, expected, actual, **kwargs):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f'page checksum is 0x{expected:08x} but the payload gives 0x{actual:08x}',
            offset=offset, **kwargs)


class SchemaError(E57Exception):
    kind = ErrorKind.SCHEMA


class SchemaMismatchError(SchemaError):

    def __init__(self, expected, actual, **kwargs):
        self.expected = expected
        self.actual = actual
        super().__init__(f'expected {expected!r}, found {actual!r}', **kwargs)


class MissingRequiredElementError(SchemaError):

    def __init__(self, name, **kwargs):
        self.name = name
        super().__init__(f'element \'{name}\' is required', **kwargs)


class UnknownElementTypeError(SchemaError):

    def __init__(self, type, **kwargs):
        self.type = type
        super().__init__(f'unknown element type {type!r}', **kwargs)


class ConstraintViolationError(SchemaError):
    '''Also used for out of range fields of the binary sections.'''

    def __init__(self, field, constraint, actual_value, **kwargs):
        self.field = field
        self.constraint = constraint
        self.actual_value = actual_value
        super().__init__(f'{field} must be {constraint}, it is {actual_value!r}', **kwargs)


class SectionError(E57Exception):
    kind = ErrorKind.SECTION


class ReservedFieldNonZeroError(SectionError):

    def __init__(self, field, value, **kwargs):
        self.field = field
        self.value = value
        super().__init__(f'reserved field {field} must be zero, it is {value!r}', **kwargs)


class CodecError(E57Exception):
    kind = ErrorKind.CODEC


class OutOfBoundsError(CodecError):

    def __init__(self, start, count, length, **kwargs):
        self.start = start
        self.count = count
        self.length = length
        super().__init__(f'bits [{start}, {start + count}) exceed the {length} bits available', **kwargs)


class UnsupportedBitWidthError(CodecError):

    def __init__(self, bits, **kwargs):
        self.bits = bits
        super().__init__(f'unsupported bit width {bits!r}', **kwargs)
