'''
# Binary sections

The binary data referenced by the XML lives in sections: each one starts with
a header whose first byte identifies the kind of section.

A CompressedVector section is made of

 1. a 32 bytes header
 2. starting at "data_start_offset" a sequence of data packets, each one
    containing a chunk of every byte stream (one byte stream for each field
    of the prototype)
 3. optionally, starting at "index_start_offset", index packets pointing to
    the data packets

All the offsets are physical, all the lengths are logical: every read goes through
read_logical_bytes() so the page CRCs are skipped transparently.
'''
import logging

from ..core import Chunk
from .. import fields
from ..enum import Compliant
from ..properties import Dependency
from ..exceptions import (
    E57Exception,
    ConstraintViolationError,
    ReservedFieldNonZeroError,
)
from .enum import SectionId, PacketType, DEFAULT_COMPLIANCE
from .paging import PhysicalOffset, read_logical_bytes


logger = logging.getLogger(__name__)


MAX_INDEX_ENTRIES = 2048
MAX_INDEX_LEVEL = 5


def raw_value(field):
    '''The integer behind a field, also when it's represented by an enum'''
    value = field.value
    return value.value if isinstance(value, (SectionId, PacketType)) else value


def check_reserved(name, value):
    if (any(value) if isinstance(value, bytes) else value):
        raise ReservedFieldNonZeroError(name, value)


class CompressedVectorHeader(Chunk):
    section_id         = fields.StructField('B', enum=SectionId, default=SectionId.COMPRESSED_VECTOR)
    reserved           = fields.StringField(7)
    section_length     = fields.StructField('Q')
    data_start_offset  = fields.StructField('Q')
    index_start_offset = fields.StructField('Q')

    def validate(self):
        if self.section_id.value != SectionId.COMPRESSED_VECTOR:
            raise ConstraintViolationError('sectionId', 'equal to 1', raw_value(self.section_id))

        check_reserved('reserved', self.reserved.value)


class BlobSectionHeader(Chunk):
    section_id             = fields.StructField('B', enum=SectionId, default=SectionId.BLOB)
    reserved               = fields.StringField(7)
    section_logical_length = fields.StructField('Q')

    def validate(self):
        if self.section_id.value != SectionId.BLOB:
            raise ConstraintViolationError('sectionId', 'equal to 0', raw_value(self.section_id))

        check_reserved('reserved', self.reserved.value)


class DataPacketHeader(Chunk):
    '''Bit 0 of "packet_flags" signals a compressor restart, the others are zero.'''
    packet_type          = fields.StructField('B', enum=PacketType, default=PacketType.DATA)
    packet_flags         = fields.StructField('B')
    packet_length_minus1 = fields.StructField('H')
    byte_stream_count    = fields.StructField('H')

    @property
    def packet_length(self):
        return self.packet_length_minus1.value + 1

    @property
    def compressor_restart(self):
        return bool(self.packet_flags.value & 0x01)

    def validate(self):
        if self.packet_type.value != PacketType.DATA:
            raise ConstraintViolationError('packetType', 'equal to 1', raw_value(self.packet_type))

        if self.packet_flags.value > 1:
            raise ConstraintViolationError('packetFlags', 'in [0, 1]', self.packet_flags.value)


class DataPacket(DataPacketHeader):
    byte_stream_buffer_lengths = fields.ArrayField(fields.StructField('H'), n=Dependency('.byte_stream_count'))

    @property
    def lengths(self):
        return [_.value for _ in self.byte_stream_buffer_lengths]


class IndexPacketHeader(Chunk):
    packet_type          = fields.StructField('B', enum=PacketType, default=PacketType.INDEX)
    reserved1            = fields.StructField('B')
    packet_length_minus1 = fields.StructField('H')
    entry_count          = fields.StructField('H', default=1)
    index_level          = fields.StructField('B')
    reserved2            = fields.StringField(9)

    @property
    def packet_length(self):
        return self.packet_length_minus1.value + 1

    def validate(self):
        if self.packet_type.value != PacketType.INDEX:
            raise ConstraintViolationError('packetType', 'equal to 0', raw_value(self.packet_type))

        check_reserved('reserved1', self.reserved1.value)

        entry_count = self.entry_count.value
        index_level = self.index_level.value
        if self.is_compliant(Compliant.RANGE):
            if not 1 <= entry_count <= MAX_INDEX_ENTRIES:
                raise ConstraintViolationError('entryCount', f'in [1, {MAX_INDEX_ENTRIES}]', entry_count)
            if not 0 <= index_level <= MAX_INDEX_LEVEL:
                raise ConstraintViolationError('indexLevel', f'in [0, {MAX_INDEX_LEVEL}]', index_level)
        elif not 1 <= entry_count <= MAX_INDEX_ENTRIES or index_level > MAX_INDEX_LEVEL:
            self.logger.warning(
                f'index packet out of range (entryCount={entry_count}, indexLevel={index_level}), ignoring')

        check_reserved('reserved2', self.reserved2.value)


class IgnoredPacketHeader(Chunk):
    packet_type          = fields.StructField('B', enum=PacketType, default=PacketType.IGNORED)
    reserved1            = fields.StructField('B')
    packet_length_minus1 = fields.StructField('H')

    @property
    def packet_length(self):
        return self.packet_length_minus1.value + 1

    def validate(self):
        if self.packet_type.value != PacketType.IGNORED:
            raise ConstraintViolationError('packetType', 'equal to 2', raw_value(self.packet_type))


class IndexPacketAddressEntry(Chunk):
    chunk_record_index = fields.StructField('Q')
    packet_offset      = fields.StructField('Q')


class IndexPacket(IndexPacketHeader):
    entries = fields.ArrayField(IndexPacketAddressEntry(), n=Dependency('.entry_count'))


def read_chunk(chunk_cls, stream, physical_offset, size=None, compliant=DEFAULT_COMPLIANCE):
    '''Read the logical bytes for the chunk and unpack it.

    Errors coming from the unpacking are located at the physical offset of the chunk.'''
    size = chunk_cls().size if size is None else size
    data = read_logical_bytes(stream, physical_offset, size)

    try:
        chunk = chunk_cls(data, compliant=compliant)
    except E57Exception as e:
        e.offset = int(physical_offset)
        e.chain.append(chunk_cls.__name__)
        raise

    logger.debug('%s at 0x%x: %r' % (chunk_cls.__name__, physical_offset, chunk))

    return chunk


def parse_cv_header(stream, physical_offset, compliant=DEFAULT_COMPLIANCE) -> CompressedVectorHeader:
    return read_chunk(CompressedVectorHeader, stream, physical_offset, compliant=compliant)


def parse_blob_header(stream, physical_offset, compliant=DEFAULT_COMPLIANCE) -> BlobSectionHeader:
    return read_chunk(BlobSectionHeader, stream, physical_offset, compliant=compliant)


def parse_data_packet_header(stream, physical_offset, compliant=DEFAULT_COMPLIANCE) -> DataPacketHeader:
    return read_chunk(DataPacketHeader, stream, physical_offset, compliant=compliant)


def parse_data_packet(stream, physical_offset, compliant=DEFAULT_COMPLIANCE) -> DataPacket:
    '''The header together with the lengths of the byte streams'''
    header = parse_data_packet_header(stream, physical_offset, compliant=compliant)
    size = header.size + 2 * header.byte_stream_count.value

    return read_chunk(DataPacket, stream, physical_offset, size=size, compliant=compliant)


def parse_index_packet_header(stream, physical_offset, compliant=DEFAULT_COMPLIANCE) -> IndexPacketHeader:
    return read_chunk(IndexPacketHeader, stream, physical_offset, compliant=compliant)


def parse_index_packet_entry(stream, physical_offset) -> IndexPacketAddressEntry:
    return read_chunk(IndexPacketAddressEntry, stream, physical_offset)


def parse_index_packet(stream, physical_offset, compliant=DEFAULT_COMPLIANCE) -> IndexPacket:
    '''The header together with its address entries'''
    header = parse_index_packet_header(stream, physical_offset, compliant=compliant)
    size = header.size + IndexPacketAddressEntry().size * header.entry_count.value

    return read_chunk(IndexPacket, stream, physical_offset, size=size, compliant=compliant)


def peek_packet_type(stream, physical_offset) -> PacketType:
    value = read_logical_bytes(stream, physical_offset, 1)[0]
    try:
        return PacketType(value)
    except ValueError:
        raise ConstraintViolationError('packetType', 'in [0, 2]', value, offset=int(physical_offset))


def read_blob(stream, blob) -> bytes:
    '''The raw content of a Blob section, no interpretation of the data is done'''
    header = parse_blob_header(stream, blob.file_offset)
    start = PhysicalOffset(blob.file_offset) + header.size

    return read_logical_bytes(stream, start, blob.length)
