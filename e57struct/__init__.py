"""
# e57struct: binary formats described as classes, applied to ASTM E57.

A format is described declaring Chunks: classes whose attributes are the
fields in the order they appear in the binary data

    class DataPacketHeader(Chunk):
        packet_type          = fields.StructField('B', enum=PacketType)
        packet_flags         = fields.StructField('B')
        packet_length_minus1 = fields.StructField('H')
        byte_stream_count    = fields.StructField('H')

Two operations are defined for a chunk and its sub components:

 1. unpack(): read the binary data from the current position of the stream
    and build a high-level representation of it; every field remembers
    the offset it was read from. If the chunk defines validate() it's
    called at the end and raises the appropriate exception.

 2. pack(): encode the high-level representation into binary data.

The size of a field can depend on the value of another one, see Dependency.

An instance can be in one of the following states

 1. INIT
 2. RELAYOUTING
 3. PACKING
 4. UNPACKING
 5. DONE

The E57 specific part lives into the e57 subpackage, parse() is the entry point.
"""
from .e57 import parse, try_parse, ParseResult, FileHeader


__all__ = [
    'parse',
    'try_parse',
    'ParseResult',
    'FileHeader',
]
