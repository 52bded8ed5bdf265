'''
# Pages

An E57 file is a sequence of pages of 1024 bytes: the first 1020 bytes are
payload, the last 4 bytes are the CRC-32C of the payload stored big endian.

This gives two ways of addressing the content of a file

 - physical offsets count all the bytes of the file, CRCs included
 - logical offsets count only the payload, as if the CRCs were removed

Almost all the offsets stored in the file are physical, the lengths are logical.
'''
import logging

import numpy as np

from ..core import Chunk
from ..meta import Endianess
from .. import fields
from ..common.crc import CRCField
from ..exceptions import (
    InvalidFileSizeError,
    ChecksumMismatchError,
    TruncatedStreamError,
)


logger = logging.getLogger(__name__)


PAGE_SIZE = 1024
CRC_SIZE = 4
PAYLOAD_SIZE = PAGE_SIZE - CRC_SIZE


class Page(Chunk):
    payload = fields.StringField(PAYLOAD_SIZE)
    crc     = CRCField(['payload'], endianess=Endianess.BIG_ENDIAN)


def physical_to_logical(physical: int) -> int:
    if physical < 0:
        raise ValueError(f'offset must be non negative, it is {physical}')

    return physical - CRC_SIZE * (physical // PAGE_SIZE)


def logical_to_physical(logical: int) -> int:
    '''A logical offset multiple of 1020 is the start of the payload of a new page.'''
    if logical < 0:
        raise ValueError(f'offset must be non negative, it is {logical}')

    return logical + CRC_SIZE * (logical // PAYLOAD_SIZE)


class PhysicalOffset(int):
    '''Offset counting the CRC trailers: it can't point inside one of them.'''

    def __new__(cls, value):
        value = int(value)
        if value < 0:
            raise ValueError(f'physical offset must be non negative, it is {value}')
        if value % PAGE_SIZE >= PAYLOAD_SIZE:
            raise ValueError(f'physical offset 0x{value:x} points inside a CRC')

        return super().__new__(cls, value)

    def __repr__(self):
        return f'{self.__class__.__name__}(0x{int(self):x})'

    def to_logical(self) -> "LogicalOffset":
        return LogicalOffset(physical_to_logical(self))

    def __add__(self, other):
        '''Adding a number of payload bytes gives the physical offset after them'''
        if isinstance(other, PhysicalOffset):
            raise TypeError('two physical offsets cannot be added')

        return (self.to_logical() + other).to_physical()

    __radd__ = __add__


class LogicalOffset(int):

    def __new__(cls, value):
        value = int(value)
        if value < 0:
            raise ValueError(f'logical offset must be non negative, it is {value}')

        return super().__new__(cls, value)

    def __repr__(self):
        return f'{self.__class__.__name__}(0x{int(self):x})'

    def to_physical(self) -> PhysicalOffset:
        return PhysicalOffset(logical_to_physical(self))

    def __add__(self, other):
        if isinstance(other, PhysicalOffset):
            raise TypeError('a physical offset cannot be added to a logical one')

        return LogicalOffset(int(self) + int(other))

    __radd__ = __add__


def read_logical_bytes(stream, start_physical: int, count_logical: int) -> bytes:
    '''Read "count_logical" bytes of payload starting from the physical offset
    "start_physical", skipping the CRC at the end of each page.

    If the start falls into a CRC we move to the payload of the next page.'''
    if count_logical < 0:
        raise ValueError(f'count must be non negative, it is {count_logical}')

    position = int(start_physical)
    if position % PAGE_SIZE >= PAYLOAD_SIZE:
        position += PAGE_SIZE - position % PAGE_SIZE

    logger.debug('reading %d logical bytes from physical offset 0x%x' % (count_logical, position))

    data = []
    remaining = count_logical
    while remaining > 0:
        stream.seek(position)
        chunk_size = min(PAYLOAD_SIZE - position % PAGE_SIZE, remaining)
        chunk = stream.read(chunk_size)
        if len(chunk) != chunk_size:
            raise TruncatedStreamError(
                count_logical, count_logical - remaining + len(chunk), offset=position + len(chunk))

        data.append(chunk)
        remaining -= chunk_size
        position += chunk_size + CRC_SIZE

    return b''.join(data)


def read_logical_ushorts(stream, start_physical: int, count: int):
    '''Read "count" little endian unsigned shorts'''
    data = read_logical_bytes(stream, start_physical, count * 2)

    return np.frombuffer(data, dtype='<u2').astype(np.uint16) if count else np.zeros(0, dtype=np.uint16)


def iter_pages(stream, total_length: int):
    '''Yield (offset, Page) for each page, the stream length must be a multiple of the page size'''
    if total_length % PAGE_SIZE != 0:
        raise InvalidFileSizeError(total_length)

    for offset in range(0, total_length, PAGE_SIZE):
        stream.seek(offset)
        page = Page()
        try:
            page.unpack(stream)
        except TruncatedStreamError as e:
            e.chain.append(f'page@0x{offset:x}')
            raise

        yield offset, page


def verify_checksums(stream, total_length: int) -> int:
    '''Check the CRC of every page, stopping at the first one that doesn't match.

    Returns the number of pages checked.'''
    count = 0
    for offset, page in iter_pages(stream, total_length):
        computed = page.crc.calculate()
        if computed != page.crc.value:
            raise ChecksumMismatchError(offset, page.crc.value, computed)
        count += 1

    logger.debug('verified %d pages' % count)

    return count


def paginate(payload: bytes) -> bytes:
    '''Split a payload in pages, the last one padded with zeros, each with its CRC.

    Useful to build files: the result of read_logical_bytes(paginate(x), 0, len(x))
    is x itself.'''
    pages = []
    for start in range(0, max(len(payload), 1), PAYLOAD_SIZE):
        page = Page()
        page.payload = payload[start:start + PAYLOAD_SIZE].ljust(PAYLOAD_SIZE, b'\x00')
        pages.append(page.pack())

    return b''.join(pages)
