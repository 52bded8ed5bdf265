'''
# Bit packing

Sequences of unsigned integers of fixed bit width stored contiguously,
without respect for byte boundaries. The values are laid out least significant
bit first: the first value starts at bit 0 of byte 0, the second one starts right
after the last bit of the first one and so on.

For example three values of 4 bits (0x1, 0x2, 0x3) are stored as

    byte 0: 0x21
    byte 1: 0x03

The storage behind BitBuffer is a bitstring.BitArray containing the bytes in
reversed order: in this way the little-endian integer formed by the buffer reads
as a normal MSB-first bit string and the bit number k lives at index
(length - 1 - k).
'''
import logging
from typing import NamedTuple

import numpy as np
from bitstring import BitArray, Bits

from ..exceptions import OutOfBoundsError, UnsupportedBitWidthError


logger = logging.getLogger(__name__)


MAX_BITS = 64


def bit_count_in_bytes(n_bits: int) -> int:
    return (n_bits + 7) // 8


def dtype_for(bits: int):
    '''The smallest unsigned integer type able to contain values of "bits" bits'''
    check_bits(bits)

    if bits <= 8:
        return np.uint8
    if bits <= 16:
        return np.uint16
    if bits <= 32:
        return np.uint32

    return np.uint64


def check_bits(bits, maximum=MAX_BITS):
    if not isinstance(bits, (int, np.integer)) or isinstance(bits, bool) or not 1 <= bits <= maximum:
        raise UnsupportedBitWidthError(bits)


class BitCursor(NamedTuple):
    '''Position of the next write inside a BitBuffer'''
    byte: int = 0
    bit: int = 0

    @classmethod
    def from_position(cls, position: int) -> "BitCursor":
        return cls(position // 8, position % 8)

    @property
    def position(self) -> int:
        return self.byte * 8 + self.bit


class BitBuffer(object):
    '''Bit addressable storage with a declared length in bits.

    Sequential writes go through push_bits() that moves the cursor forward,
    reads are random access and don't touch the cursor.'''

    def __init__(self, length_in_bits: int, data: bytes = None):
        if length_in_bits < 0:
            raise ValueError(f'length must be non negative, it is {length_in_bits}')

        self.length_in_bits = length_in_bits
        n_bytes = bit_count_in_bytes(length_in_bits)

        if data is None:
            self._bits = BitArray(bytes(n_bytes))
        else:
            if len(data) < n_bytes:
                raise ValueError(f'{len(data)} bytes are not enough for {length_in_bits} bits')
            self._bits = BitArray(bytes(data[:n_bytes])[::-1])

        self.cursor = BitCursor()

    @classmethod
    def wrap(cls, buffer: bytes, length_in_bits: int = None) -> "BitBuffer":
        '''Use an already existing buffer as storage, by default all its bits are available'''
        if length_in_bits is None:
            length_in_bits = len(buffer) * 8

        return cls(length_in_bits, data=buffer)

    def __len__(self):
        return self.length_in_bits

    def __repr__(self):
        return f'<{self.__class__.__name__}(length={self.length_in_bits}, cursor={self.cursor})>'

    @property
    def buffer(self) -> bytes:
        return self._bits.tobytes()[::-1]

    def _check_range(self, start: int, count: int):
        if start < 0 or start + count > self.length_in_bits:
            raise OutOfBoundsError(start, count, self.length_in_bits)

    def _slice(self, start: int, count: int):
        total = len(self._bits)
        return slice(total - start - count, total - start)

    def push_bits(self, value: int, bit_count: int) -> BitCursor:
        '''Append the low "bit_count" bits of "value" at the cursor position.

        The write is validated before touching the storage, so a failing push
        leaves both storage and cursor as they were.'''
        check_bits(bit_count)

        start = self.cursor.position
        self._check_range(start, bit_count)

        value = int(value) & ((1 << bit_count) - 1)
        self._bits[self._slice(start, bit_count)] = Bits(value.to_bytes(bit_count_in_bytes(bit_count), 'big'))[-bit_count:]

        self.cursor = BitCursor.from_position(start + bit_count)

        return self.cursor

    def get_ulong(self, start: int, bit_count: int) -> int:
        check_bits(bit_count)
        self._check_range(start, bit_count)

        return self._bits[self._slice(start, bit_count)].uint

    def get_uint(self, start: int, bit_count: int) -> int:
        check_bits(bit_count, maximum=32)

        return self.get_ulong(start, bit_count)

    def read_uints(self, bits: int, count: int):
        '''Read "count" consecutive values of "bits" bits starting from bit 0'''
        return np.array(
            [self.get_ulong(index * bits, bits) for index in range(count)],
            dtype=dtype_for(bits),
        )


def count_values(buffer: bytes, bits: int) -> int:
    return (len(buffer) * 8) // bits


def _grouped(buffer: bytes, group: int, dtype):
    '''Returns the buffer as a matrix of "group" columns, zero padded at the end'''
    data = np.frombuffer(buffer, dtype=np.uint8)
    padding = (-len(data)) % group
    if padding:
        data = np.concatenate([data, np.zeros(padding, dtype=np.uint8)])

    return data.reshape(-1, group).astype(dtype)


def _unpack_sub_byte(buffer: bytes, bits: int):
    data = np.frombuffer(buffer, dtype=np.uint8)
    per_byte = 8 // bits
    mask = (1 << bits) - 1

    result = np.empty((len(data), per_byte), dtype=np.uint8)
    for index in range(per_byte):
        result[:, index] = (data >> (index * bits)) & mask

    return result.reshape(-1)


def _unpack_2(buffer: bytes):
    return _unpack_sub_byte(buffer, 2)


def _unpack_4(buffer: bytes):
    return _unpack_sub_byte(buffer, 4)


def _unpack_8(buffer: bytes):
    return np.frombuffer(buffer, dtype=np.uint8).copy()


def _unpack_12(buffer: bytes):
    b = _grouped(buffer, 3, np.uint16)
    result = np.empty((len(b), 2), dtype=np.uint16)
    result[:, 0] = b[:, 0] | ((b[:, 1] & 0x0f) << 8)
    result[:, 1] = (b[:, 1] >> 4) | (b[:, 2] << 4)

    return result.reshape(-1)


def _unpack_20(buffer: bytes):
    b = _grouped(buffer, 5, np.uint32)
    result = np.empty((len(b), 2), dtype=np.uint32)
    result[:, 0] = b[:, 0] | (b[:, 1] << 8) | ((b[:, 2] & 0x0f) << 16)
    result[:, 1] = (b[:, 2] >> 4) | (b[:, 3] << 4) | (b[:, 4] << 12)

    return result.reshape(-1)


def _unpack_24(buffer: bytes):
    b = _grouped(buffer, 3, np.uint32)

    return b[:, 0] | (b[:, 1] << 8) | (b[:, 2] << 16)


def _unpack_aligned(dtype):
    def _unpack(buffer: bytes):
        size = np.dtype(dtype).itemsize
        usable = len(buffer) - len(buffer) % size

        return np.frombuffer(buffer[:usable], dtype=np.dtype(dtype).newbyteorder('<')).astype(dtype)

    return _unpack


OPTIMIZED = {
    2: _unpack_2,
    4: _unpack_4,
    8: _unpack_8,
    12: _unpack_12,
    16: _unpack_aligned(np.uint16),
    20: _unpack_20,
    24: _unpack_24,
    32: _unpack_aligned(np.uint32),
    64: _unpack_aligned(np.uint64),
}


def unpack_generic(buffer: bytes, bits: int):
    '''Unpack going through BitBuffer, it works for any width'''
    check_bits(bits)

    return BitBuffer.wrap(buffer).read_uints(bits, count_values(buffer, bits))


def unpack_optimized(buffer: bytes, bits: int):
    '''Unpack with one of the specialized routines, only for the widths in OPTIMIZED'''
    if bits not in OPTIMIZED:
        raise UnsupportedBitWidthError(bits)

    count = count_values(buffer, bits)
    if not count:
        return np.zeros(0, dtype=dtype_for(bits))

    return OPTIMIZED[bits](bytes(buffer))[:count].astype(dtype_for(bits), copy=False)


def unpack(buffer: bytes, bits: int):
    '''Returns a numpy array with the floor(len(buffer) * 8 / bits) values contained
    into the buffer.'''
    check_bits(bits)

    if bits in OPTIMIZED:
        return unpack_optimized(buffer, bits)

    return unpack_generic(buffer, bits)


def pack(values, bits: int) -> bytes:
    '''The inverse of unpack(): only the low "bits" bits of each value are stored.'''
    check_bits(bits)

    values = list(values)
    bit_buffer = BitBuffer(len(values) * bits)
    for value in values:
        bit_buffer.push_bits(value, bits)

    return bit_buffer.buffer


class BitPacker(object):
    '''Stateful unpacker for a stream of values split across several buffers.

    The bits left over at the end of a buffer (not enough to complete a value)
    are kept and prepended to the next buffer.'''

    def __init__(self, bits: int):
        check_bits(bits)
        self.bits = bits
        self._rest = 0
        self._rest_bit_count = 0

    def __repr__(self):
        return f'<{self.__class__.__name__}(bits={self.bits}, pending={self._rest_bit_count})>'

    @property
    def pending_bits(self) -> int:
        return self._rest_bit_count

    def unpack(self, buffer: bytes):
        if not self._rest_bit_count:
            data = bytes(buffer)
            total_bits = len(data) * 8
        else:
            total_bits = self._rest_bit_count + len(buffer) * 8
            combined = self._rest | (int.from_bytes(buffer, 'little') << self._rest_bit_count)
            data = combined.to_bytes(bit_count_in_bytes(total_bits), 'little')

        count = total_bits // self.bits
        values = unpack(data, self.bits)[:count]

        used = count * self.bits
        self._rest_bit_count = total_bits - used
        self._rest = (int.from_bytes(data, 'little') >> used) if self._rest_bit_count else 0

        logger.debug('unpacked %d values of %d bits, %d bits left' % (count, self.bits, self._rest_bit_count))

        return values
