'''
# ASTM E57 3D imaging data file

    +--------------------+  physical offset 0
    | header (48 bytes)  |
    +--------------------+
    | binary sections    |  Blob and CompressedVector sections
    | ...                |
    +--------------------+  xml_offset
    | XML section        |  xml_length logical bytes
    +--------------------+  file_length

Everything after the first byte is split in pages with a CRC trailer, see paging.py.

Usage:

    from e57struct.e57 import parse

    header = parse('scan.e57', verify_checksums=True)
    for data3d in header.e57_root.data3d:
        print(data3d.guid, data3d.points.record_count)
'''
import logging
from dataclasses import dataclass
from typing import Optional

from ..core import Chunk
from .. import fields
from ..streams import Stream
from ..exceptions import (
    E57Exception,
    BadSignatureError,
    UnsupportedVersionError,
    UnsupportedPageSizeError,
    FileLengthMismatchError,
    SchemaMismatchError,
)
from .enum import DEFAULT_COMPLIANCE
from .paging import PAGE_SIZE, read_logical_bytes, verify_checksums as check_pages
from .schema import parse_root


logger = logging.getLogger(__name__)


SIGNATURE = b'ASTM-E57'
VERSION = (1, 0)


class FileHeader(Chunk):
    signature     = fields.StringField(8, default=SIGNATURE)
    version_major = fields.StructField('I', default=VERSION[0])
    version_minor = fields.StructField('I', default=VERSION[1])
    file_length   = fields.StructField('Q')
    xml_offset    = fields.StructField('Q')
    xml_length    = fields.StructField('Q')
    page_size     = fields.StructField('Q', default=PAGE_SIZE)

    def __init__(self, *args, **kwargs):
        # filled by parse()
        self.raw_xml = None
        self.e57_root = None

        super().__init__(*args, **kwargs)

    def validate(self):
        if self.signature.value != SIGNATURE:
            raise BadSignatureError(self.signature.value)

        version = (self.version_major.value, self.version_minor.value)
        if version != VERSION:
            raise UnsupportedVersionError(*version)

        if self.page_size.value != PAGE_SIZE:
            raise UnsupportedPageSizeError(self.page_size.value)


def parse_header(stream, compliant=DEFAULT_COMPLIANCE) -> FileHeader:
    stream.seek(0)

    try:
        return FileHeader(stream, compliant=compliant)
    except E57Exception as e:
        e.chain.append('FileHeader')
        if e.offset is None:
            e.offset = 0
        raise


def parse(source, compliant=DEFAULT_COMPLIANCE, verify_checksums=False, check_file_length=True) -> FileHeader:
    '''Read the header and the XML section of an E57 file.

    "source" can be a path, the content of the file or a file-like object
    opened in binary mode. The returned header has two more attributes

     - raw_xml: the text of the XML section
     - e57_root: the E57Root record built from it
    '''
    stream = source if isinstance(source, Stream) else Stream(source)

    header = parse_header(stream, compliant=compliant)
    logger.debug(repr(header))

    size = stream.size()
    if check_file_length and header.file_length.value != size:
        raise FileLengthMismatchError(header.file_length.value, size)

    if verify_checksums:
        check_pages(stream, size)

    xml_offset = header.xml_offset.value
    xml = read_logical_bytes(stream, xml_offset, header.xml_length.value)

    try:
        header.raw_xml = xml.decode('utf-8')
    except UnicodeDecodeError as e:
        raise SchemaMismatchError('UTF-8 text', str(e), offset=xml_offset)

    header.e57_root = parse_root(header.raw_xml, stream, compliant=compliant)

    return header


@dataclass(frozen=True)
class ParseResult:
    '''Outcome of try_parse(): either the header or the error that stopped the parsing'''
    header: Optional[FileHeader] = None
    error: Optional[E57Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self):
        return self.error.kind if self.error is not None else None

    @property
    def path(self) -> Optional[str]:
        return self.error.path if self.error is not None else None

    def unwrap(self) -> FileHeader:
        if self.error is not None:
            raise self.error

        return self.header


def try_parse(source, **kwargs) -> ParseResult:
    '''Like parse() but the E57 errors are returned instead of raised'''
    try:
        return ParseResult(header=parse(source, **kwargs))
    except E57Exception as e:
        logger.info(f'parsing failed: {e}')
        return ParseResult(error=e)
