"""Builders of synthetic E57 files.

The binary parts are encoded here with the struct module so that the parser
is checked against data not produced by itself; only the pagination goes
through e57struct.e57.paging.paginate().
"""
import struct

import pytest

from e57struct.e57.paging import PAGE_SIZE, PAYLOAD_SIZE, paginate, logical_to_physical


NAMESPACE = 'http://www.astm.org/COMMIT/E57/2010-e57-v1.0'
HEADER_SIZE = 48
CV_HEADER_SIZE = 32

X = [1.0, 2.0, 3.0]
Y = [-1.0, 0.5, 10.0]
Z = [0.0, 0.25, 100.0]
INTENSITY = [0, 2048, 4095]

PROTOTYPE = '''
          <cartesianX type="Float" precision="single"/>
          <cartesianY type="Float" precision="single"/>
          <cartesianZ type="Float" precision="single"/>
          <intensity type="Integer" minimum="0" maximum="4095"/>'''

EXTRA = '''
      <name type="String"><![CDATA[scan 0]]></name>
      <cartesianBounds type="Structure">
        <xMinimum type="Float">1</xMinimum>
        <xMaximum type="Float">3</xMaximum>
        <yMinimum type="Float">-1</yMinimum>
        <yMaximum type="Float">10</yMaximum>
        <zMinimum type="Float">0</zMinimum>
        <zMaximum type="Float">100</zMaximum>
      </cartesianBounds>
      <intensityLimits type="Structure">
        <intensityMinimum type="Integer">0</intensityMinimum>
        <intensityMaximum type="Integer">4095</intensityMaximum>
      </intensityLimits>
      <pose type="Structure">
        <rotation type="Structure">
          <w type="Float">1</w>
          <x type="Float">0</x>
          <y type="Float">0</y>
          <z type="Float">0</z>
        </rotation>
        <translation type="Structure">
          <x type="Float">10</x>
          <y type="Float">20</y>
          <z type="Float">30</z>
        </translation>
      </pose>
      <acquisitionStart type="Structure">
        <dateTimeValue type="Float">1000000000.5</dateTimeValue>
        <isAtomicClockReferenced type="Integer">1</isAtomicClockReferenced>
      </acquisitionStart>'''


def data3d_xml(prototype=PROTOTYPE, extra=EXTRA, record_count=3, file_offset='CV_OFFSET',
               guid='{D3-0000}', codecs=''):
    return f'''
    <vectorChild type="Structure">
      <guid type="String"><![CDATA[{guid}]]></guid>
      <points type="CompressedVector" fileOffset="{file_offset}" recordCount="{record_count}">
        <prototype type="Structure">{prototype}
        </prototype>
        <codecs type="Vector" allowHeterogeneousChildren="1">{codecs}</codecs>
      </points>{extra}
    </vectorChild>'''


def root_xml(data3d='', images2d='', extra='', format_name='ASTM E57 3D Imaging Data File',
             version_major=1, namespace=NAMESPACE):
    return f'''<?xml version="1.0" encoding="UTF-8"?>
<e57Root type="Structure" xmlns="{namespace}">
  <formatName type="String"><![CDATA[{format_name}]]></formatName>
  <guid type="String"><![CDATA[{{ROOT-0000}}]]></guid>
  <versionMajor type="Integer">{version_major}</versionMajor>
  <versionMinor type="Integer">0</versionMinor>
  <e57LibraryVersion type="String"><![CDATA[e57struct-tests]]></e57LibraryVersion>
  <creationDateTime type="Structure">
    <dateTimeValue type="Float">0</dateTimeValue>
  </creationDateTime>
  <data3D type="Vector" allowHeterogeneousChildren="1">{data3d}
  </data3D>
  <images2D type="Vector" allowHeterogeneousChildren="1">{images2d}
  </images2D>{extra}
</e57Root>
'''


def pack_bits(values, bits):
    '''Values of "bits" bits, least significant bit first'''
    number = 0
    for index, value in enumerate(values):
        number |= value << (index * bits)

    return number.to_bytes((len(values) * bits + 7) // 8, 'little')


def file_header(file_length, xml_offset, xml_length, signature=b'ASTM-E57', major=1, minor=0, page_size=PAGE_SIZE):
    return struct.pack('<8sIIQQQQ', signature, major, minor, file_length, xml_offset, xml_length, page_size)


def data_packet(buffers, flags=0):
    '''A data packet padded to a multiple of 4 bytes'''
    body = struct.pack(f'<{len(buffers)}H', *[len(_) for _ in buffers]) + b''.join(buffers)
    length = 6 + len(body)
    padding = (-length) % 4
    length += padding

    return struct.pack('<BBHH', 1, flags, length - 1, len(buffers)) + body + b'\x00' * padding


def index_packet(entries):
    body = b''.join(struct.pack('<QQ', *_) for _ in entries)
    length = 16 + len(body)

    return struct.pack('<BBHHB9s', 0, 0, length - 1, len(entries), 0, b'\x00' * 9) + body


def ignored_packet(length=8):
    return struct.pack('<BBH', 2, 0, length - 1) + b'\x00' * (length - 4)


def points_packets():
    '''The three default records split in two data packets'''
    intensity = pack_bits(INTENSITY, 12)
    first = [
        struct.pack('<f', X[0]),
        struct.pack('<f', Y[0]),
        struct.pack('<f', Z[0]),
        intensity[:3],
    ]
    second = [
        struct.pack('<2f', *X[1:]),
        struct.pack('<2f', *Y[1:]),
        struct.pack('<2f', *Z[1:]),
        intensity[3:],
    ]

    return [data_packet(first), data_packet(second)]


def build_e57(xml=None, packets=None, padding=0, header=None):
    '''A complete file: header, a CompressedVector section right after it
    (plus "padding" bytes of payload) and the XML at the end.

    The string CV_OFFSET into the XML is replaced with the physical offset of
    the section; "header" can override the arguments of file_header().'''
    xml = root_xml(data3d_xml()) if xml is None else xml
    packets = points_packets() if packets is None else packets

    cv_logical = HEADER_SIZE + padding
    cv_physical = logical_to_physical(cv_logical)
    body = b''.join(packets)
    section = struct.pack(
        '<B7sQQQ', 1, b'\x00' * 7,
        CV_HEADER_SIZE + len(body),
        logical_to_physical(cv_logical + CV_HEADER_SIZE),
        0,
    ) + body

    xml = xml.replace('CV_OFFSET', str(cv_physical)).encode('utf-8')

    xml_logical = cv_logical + len(section)
    pages = -(-(xml_logical + len(xml)) // PAYLOAD_SIZE)

    arguments = dict(
        file_length=pages * PAGE_SIZE,
        xml_offset=logical_to_physical(xml_logical),
        xml_length=len(xml),
    )
    arguments.update(header or {})

    payload = file_header(**arguments) + b'\x00' * padding + section + xml

    return paginate(payload)


@pytest.fixture
def e57_file():
    return build_e57()


@pytest.fixture
def e57_builder():
    return build_e57
