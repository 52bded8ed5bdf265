'''
# Points decoding

The records of a CompressedVector are stored by column: each field of the
prototype has its own byte stream, split in chunks across the data packets.
With the bitPackCodec every stream is a sequence of values of fixed width:

 - Float fields are stored as little endian IEEE 754 (32 or 64 bits)
 - Integer and ScaledInteger fields are stored as (value - minimum) using
   the least number of bits able to represent [minimum, maximum]
'''
import logging

import numpy as np

from ..common.bitpack import BitPacker
from ..streams import Stream
from ..exceptions import ConstraintViolationError, UnsupportedBitWidthError
from .enum import PacketType, DEFAULT_COMPLIANCE
from .paging import physical_to_logical, logical_to_physical, read_logical_bytes
from .sections import (
    parse_cv_header,
    parse_data_packet,
    parse_index_packet_header,
    peek_packet_type,
    read_chunk,
    IgnoredPacketHeader,
)
from . import elements


logger = logging.getLogger(__name__)


INT64_MIN = -(1 << 63)


def bits_for(element) -> int:
    '''The number of bits used by the bitPackCodec for a field of the prototype.

    Integer fields without bounds use the full 64 bits range.'''
    if isinstance(element, elements.Float):
        return 64 if element.is_double else 32

    if isinstance(element, (elements.Integer, elements.ScaledInteger)):
        if element.minimum is None or element.maximum is None:
            return 64

        # ceil(log2(span)) without going through floats
        return (element.maximum - element.minimum).bit_length()

    raise UnsupportedBitWidthError(element.element_type.value)


def iter_data_packets(stream, compressed_vector, compliant=DEFAULT_COMPLIANCE):
    '''Yield (DataPacket, [bytes of each byte stream]) for each data packet of the section.

    Index and ignored packets are skipped.'''
    stream = stream if isinstance(stream, Stream) else Stream(stream)

    header = compressed_vector.header
    if header is None:
        header = parse_cv_header(stream, compressed_vector.file_offset, compliant=compliant)

    if not header.data_start_offset.value:
        raise ConstraintViolationError(
            'dataStartOffset', 'non zero', 0, offset=compressed_vector.file_offset)

    remaining = header.section_length.value - header.size
    position = physical_to_logical(header.data_start_offset.value)

    while remaining > 0:
        physical = logical_to_physical(position)
        packet_type = peek_packet_type(stream, physical)

        if packet_type == PacketType.DATA:
            packet = parse_data_packet(stream, physical, compliant=compliant)

            start = position + packet.size
            buffers = []
            for length in packet.lengths:
                buffers.append(read_logical_bytes(stream, logical_to_physical(start), length))
                start += length

            yield packet, buffers
        elif packet_type == PacketType.INDEX:
            packet = parse_index_packet_header(stream, physical, compliant=compliant)
        else:
            packet = read_chunk(IgnoredPacketHeader, stream, physical, compliant=compliant)

        logger.debug('%s packet at 0x%x of %d bytes' % (packet_type.name, physical, packet.packet_length))

        position += packet.packet_length
        remaining -= packet.packet_length


class FieldDecoder(object):
    '''Accumulate the chunks of the byte stream of a single field'''

    def __init__(self, element):
        self.element = element
        self.bits = bits_for(element)
        self._chunks = []
        self._bit_packer = None

        if self.bits and not isinstance(element, elements.Float):
            self._bit_packer = BitPacker(self.bits)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.element.name}, bits={self.bits})>'

    def feed(self, buffer: bytes):
        if self._bit_packer is not None:
            self._chunks.append(self._bit_packer.unpack(buffer))
        else:
            self._chunks.append(buffer)

    def _raw(self):
        if isinstance(self.element, elements.Float):
            data = b''.join(self._chunks)
            dtype = np.float64 if self.element.is_double else np.float32
            usable = len(data) - len(data) % np.dtype(dtype).itemsize

            return np.frombuffer(data[:usable], dtype=np.dtype(dtype).newbyteorder('<')).astype(dtype)

        if not self._chunks:
            return np.zeros(0, dtype=np.uint64)

        return np.concatenate(self._chunks).astype(np.uint64)

    def values(self, record_count: int):
        '''The first "record_count" values of the field'''
        if not self.bits:
            # a single possible value, nothing is stored
            minimum = self.element.minimum
            if isinstance(self.element, elements.ScaledInteger):
                return np.full(record_count, minimum * self.element.scale + self.element.offset)

            return np.full(record_count, minimum, dtype=np.int64)

        raw = self._raw()
        if len(raw) < record_count:
            raise ConstraintViolationError(self.element.name, f'with {record_count} values', len(raw))

        raw = raw[:record_count]
        if isinstance(self.element, elements.Float):
            return raw

        minimum = INT64_MIN if self.element.minimum is None else self.element.minimum
        # wraps modulo 2^64, that is two's complement
        values = (raw + np.uint64(minimum % (1 << 64))).view(np.int64)

        if isinstance(self.element, elements.ScaledInteger):
            return values.astype(np.float64) * self.element.scale + self.element.offset

        return values


def read_fields(stream, compressed_vector, compliant=DEFAULT_COMPLIANCE):
    '''Decode all the records of the CompressedVector.

    Returns a dictionary with a numpy array of "record_count" values for each
    field of the prototype.'''
    stream = stream if isinstance(stream, Stream) else Stream(stream)

    for codec in compressed_vector.codecs:
        if codec.bit_pack_codec is None:
            raise ConstraintViolationError('codecs', 'bitPackCodec', codec)

    decoders = [FieldDecoder(_) for _ in compressed_vector.prototype]

    for packet, buffers in iter_data_packets(stream, compressed_vector, compliant=compliant):
        if len(buffers) != len(decoders):
            raise ConstraintViolationError(
                'bytestreamCount', f'equal to {len(decoders)}', len(buffers))

        for decoder, buffer in zip(decoders, buffers):
            decoder.feed(buffer)

    record_count = compressed_vector.record_count
    logger.debug(f'decoding {record_count} records of {compressed_vector.name}')

    return {_.element.name: _.values(record_count) for _ in decoders}
