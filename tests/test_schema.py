import xml.etree.ElementTree as ET
from datetime import datetime, timezone

import pytest

from e57struct.e57 import elements
from e57struct.e57.enum import ElementType, FloatPrecision
from e57struct.e57.schema import parse_root, parse_element, NAMESPACE
from e57struct.exceptions import (
    ConstraintViolationError,
    MissingRequiredElementError,
    SchemaMismatchError,
    UnknownElementTypeError,
    ErrorKind,
)

from e57struct import parse

from conftest import root_xml, data3d_xml, PROTOTYPE


def element(text):
    return ET.fromstring(f'<root xmlns="{NAMESPACE}">{text}</root>')[0]


def test_parse_integer():
    integer = parse_element(element('<a type="Integer" minimum="-5" maximum="5">3</a>'))

    assert integer == elements.Integer('a', 3, -5, 5)
    assert integer.element_type == ElementType.INTEGER


def test_parse_integer_empty_is_zero():
    assert parse_element(element('<a type="Integer"/>')).value == 0


def test_parse_integer_bounds():
    with pytest.raises(ConstraintViolationError) as e:
        parse_element(element('<a type="Integer" minimum="5" maximum="4"/>'))

    assert e.value.field == 'maximum'


def test_parse_integer_not_a_number():
    with pytest.raises(SchemaMismatchError):
        parse_element(element('<a type="Integer">kebab</a>'))


def test_parse_scaled_integer():
    scaled = parse_element(element(
        '<a type="ScaledInteger" minimum="0" maximum="1000" scale="0.5" offset="10">20</a>'))

    assert scaled.raw_value == 20
    assert scaled.value == 20.0
    assert scaled.scale == 0.5

    with pytest.raises(ConstraintViolationError) as e:
        parse_element(element('<a type="ScaledInteger" scale="0"/>'))

    assert e.value.field == 'scale'


def test_parse_float():
    single = parse_element(element('<a type="Float" precision="single">1.5</a>'))

    assert single.value == 1.5
    assert single.precision == FloatPrecision.SINGLE
    assert not single.is_double

    assert parse_element(element('<a type="Float"/>')).is_double

    with pytest.raises(ConstraintViolationError) as e:
        parse_element(element('<a type="Float" precision="half"/>'))

    assert e.value.field == 'precision'


def test_parse_string_cdata():
    string = parse_element(element('<a type="String"><![CDATA[a <b> & c]]></a>'))

    assert string.value == 'a <b> & c'


def test_parse_blob():
    blob = parse_element(element('<a type="Blob" fileOffset="1024" length="100"/>'))

    assert blob == elements.Blob('a', 1024, 100)

    with pytest.raises(MissingRequiredElementError) as e:
        parse_element(element('<a type="Blob" length="100"/>'))

    assert e.value.name == 'fileOffset'

    with pytest.raises(ConstraintViolationError):
        parse_element(element('<a type="Blob" fileOffset="1024" length="0"/>'))


def test_parse_structure():
    structure = parse_element(element('''
        <s type="Structure">
          <b type="Integer">1</b>
          <a type="String">x</a>
        </s>'''))

    assert structure.names == ('b', 'a')
    assert structure['a'].value == 'x'
    assert structure.child('missing') is None
    assert 'b' in structure
    assert len(structure) == 2


def test_parse_vector():
    vector = parse_element(element('''
        <v type="Vector" allowHeterogeneousChildren="0">
          <vectorChild type="Integer">1</vectorChild>
          <vectorChild type="Integer">2</vectorChild>
        </v>'''))

    assert [_.value for _ in vector] == [1, 2]
    assert not vector.allow_heterogeneous_children

    with pytest.raises(ConstraintViolationError):
        parse_element(element('<v type="Vector" allowHeterogeneousChildren="2"/>'))


def test_parse_vector_error_path():
    with pytest.raises(UnknownElementTypeError) as e:
        parse_element(element('''
            <v type="Vector">
              <vectorChild type="Integer">1</vectorChild>
              <vectorChild type="Kebab"/>
            </v>'''))

    assert e.value.path == 'vectorChild[1]'


def test_parse_element_type():
    with pytest.raises(MissingRequiredElementError) as e:
        parse_element(element('<a>1</a>'))

    assert e.value.name == 'type'

    with pytest.raises(UnknownElementTypeError):
        parse_element(element('<a type="Data3D"/>'))


def test_parse_element_other_namespace():
    integer = parse_element(ET.fromstring('<ext:a xmlns:ext="http://example.com/ext" type="Integer">1</ext:a>'))

    assert integer == elements.Integer('a', 1)


def test_parse_compressed_vector_without_stream():
    vector = parse_element(element(f'''
        <points type="CompressedVector" fileOffset="48" recordCount="3">
          <prototype type="Structure">{PROTOTYPE}</prototype>
          <codecs type="Vector" allowHeterogeneousChildren="1">
            <vectorChild type="Structure">
              <inputs type="Vector" allowHeterogeneousChildren="1">
                <vectorChild type="String">cartesianX</vectorChild>
              </inputs>
              <bitPackCodec type="Structure"/>
            </vectorChild>
          </codecs>
        </points>'''))

    assert vector.record_count == 3
    assert vector.header is None
    assert vector.byte_stream_count == 4
    assert vector.prototype.names == ('cartesianX', 'cartesianY', 'cartesianZ', 'intensity')
    assert vector.codecs[0].inputs[0].value == 'cartesianX'
    assert vector.codecs[0].bit_pack_codec is not None


def test_parse_compressed_vector_record_count():
    with pytest.raises(ConstraintViolationError) as e:
        parse_element(element('''
            <points type="CompressedVector" fileOffset="48" recordCount="-1">
              <prototype type="Structure"/>
            </points>'''))

    assert e.value.field == 'recordCount'

    with pytest.raises(MissingRequiredElementError) as e:
        parse_element(element('<points type="CompressedVector" fileOffset="48" recordCount="1"/>'))

    assert e.value.name == 'prototype'


def test_parse_root():
    root = parse_root(root_xml(data3d_xml(file_offset=48)))

    assert root.format_name == 'ASTM E57 3D Imaging Data File'
    assert root.version_major == 1
    assert root.version_minor == 0
    assert root.e57_library_version == 'e57struct-tests'
    assert root.creation_date_time.datetime == datetime(1980, 1, 6, tzinfo=timezone.utc)
    assert root.images2d == ()

    data3d = root.data3d[0]
    assert data3d.guid == '{D3-0000}'
    assert data3d.name == 'scan 0'
    assert data3d.has_cartesian
    assert not data3d.has_spherical
    assert not data3d.has_color
    assert data3d.indices_of(elements.CARTESIAN_FIELDS) == (0, 1, 2)
    assert data3d.cartesian_bounds.y_maximum == 10.0
    assert data3d.intensity_limits.intensity_maximum == 4095
    assert data3d.pose.translation == elements.Translation(10.0, 20.0, 30.0)
    assert data3d.pose.matrix()[:3, 3].tolist() == [10.0, 20.0, 30.0]
    assert data3d.acquisition_start.is_atomic_clock_referenced
    assert data3d.acquisition_start.date_time_value == 1000000000.5


def test_parse_root_bytes_and_element():
    text = root_xml()

    assert parse_root(text.encode('utf-8')).guid == '{ROOT-0000}'
    assert parse_root(ET.fromstring(text)).data3d == ()


def test_parse_root_format_name():
    with pytest.raises(SchemaMismatchError) as e:
        parse_root(root_xml(format_name='Another format'))

    assert e.value.path == 'e57Root/formatName'
    assert e.value.kind == ErrorKind.SCHEMA


def test_parse_root_version_major():
    with pytest.raises(SchemaMismatchError) as e:
        parse_root(root_xml(version_major=2))

    assert e.value.expected == 1
    assert e.value.actual == 2


def test_parse_root_namespace():
    with pytest.raises(SchemaMismatchError) as e:
        parse_root(root_xml(namespace='http://example.com/another'))

    assert e.value.expected == NAMESPACE


def test_parse_root_missing_guid():
    text = root_xml().replace('<guid type="String"><![CDATA[{ROOT-0000}]]></guid>', '')

    with pytest.raises(MissingRequiredElementError) as e:
        parse_root(text)

    assert e.value.name == 'guid'
    assert e.value.path == 'e57Root'


def test_parse_root_wrong_type():
    text = root_xml().replace('<versionMinor type="Integer">', '<versionMinor type="Float">')

    with pytest.raises(SchemaMismatchError) as e:
        parse_root(text)

    assert e.value.path == 'e57Root/versionMinor'


def test_parse_root_error_path():
    """The path reaches the element inside the first scan."""
    prototype = PROTOTYPE.replace('maximum="4095"', 'maximum="-1"')

    with pytest.raises(ConstraintViolationError) as e:
        parse_root(root_xml(data3d_xml(prototype=prototype, file_offset=48)))

    assert e.value.path == 'e57Root/data3D/vectorChild[0]/points/prototype/intensity'


def test_acquisition_misspelled():
    extra = '''
      <acquisitonEnd type="Structure">
        <dateTimeValue type="Float">10</dateTimeValue>
      </acquisitonEnd>'''

    root = parse_root(root_xml(data3d_xml(extra=extra, file_offset=48)))

    assert root.data3d[0].acquisition_end.date_time_value == 10.0
    assert not root.data3d[0].acquisition_end.is_atomic_clock_referenced


def test_atomic_clock_range():
    extra = '''
      <acquisitionStart type="Structure">
        <dateTimeValue type="Float">10</dateTimeValue>
        <isAtomicClockReferenced type="Integer">2</isAtomicClockReferenced>
      </acquisitionStart>'''

    with pytest.raises(ConstraintViolationError) as e:
        parse_root(root_xml(data3d_xml(extra=extra, file_offset=48)))

    assert e.value.field == 'isAtomicClockReferenced'


@pytest.mark.parametrize('extra,field', [
    ('<temperature type="Float">-300</temperature>', 'temperature'),
    ('<relativeHumidity type="Float">101</relativeHumidity>', 'relativeHumidity'),
    ('<atmosphericPressure type="Float">0</atmosphericPressure>', 'atmosphericPressure'),
])
def test_data3d_environment(extra, field):
    with pytest.raises(ConstraintViolationError) as e:
        parse_root(root_xml(data3d_xml(extra=extra, file_offset=48)))

    assert e.value.field == field


@pytest.mark.parametrize('prototype', [
    '<cartesianX type="Float"/><cartesianY type="Float"/>',
    '<sphericalRange type="Float"/>',
    '<returnIndex type="Integer" minimum="0" maximum="3"/>',
    '<colorRed type="Integer" minimum="0" maximum="255"/><colorBlue type="Integer" minimum="0" maximum="255"/>',
])
def test_data3d_incomplete_fields(prototype):
    with pytest.raises(ConstraintViolationError) as e:
        parse_root(root_xml(data3d_xml(prototype=prototype, extra='', file_offset=48)))

    assert e.value.path == 'e57Root/data3D/vectorChild[0]'


def test_data3d_spherical_bounds_required():
    prototype = '''
        <sphericalRange type="Float"/>
        <sphericalAzimuth type="Float"/>
        <sphericalElevation type="Float"/>'''

    with pytest.raises(MissingRequiredElementError) as e:
        parse_root(root_xml(data3d_xml(prototype=prototype, extra='', file_offset=48)))

    assert e.value.name == 'sphericalBounds'

    extra = '''
      <sphericalBounds type="Structure">
        <rangeMinimum type="Float">0</rangeMinimum>
        <rangeMaximum type="Float">100</rangeMaximum>
      </sphericalBounds>'''
    data3d = parse_root(root_xml(data3d_xml(prototype=prototype, extra=extra, file_offset=48))).data3d[0]

    assert data3d.has_spherical
    assert data3d.spherical_bounds.range_maximum == 100.0
    assert data3d.spherical_bounds.azimuth_start is None


def test_data3d_index_bounds_required():
    prototype = PROTOTYPE + '<rowIndex type="Integer" minimum="0" maximum="99"/>'

    with pytest.raises(MissingRequiredElementError) as e:
        parse_root(root_xml(data3d_xml(prototype=prototype, file_offset=48)))

    assert e.value.name == 'indexBounds'


def test_data3d_color():
    prototype = PROTOTYPE + '''
        <colorRed type="Integer" minimum="0" maximum="255"/>
        <colorGreen type="Integer" minimum="0" maximum="255"/>
        <colorBlue type="Integer" minimum="0" maximum="255"/>'''
    extra = '''
      <colorLimits type="Structure">
        <colorRedMinimum type="Integer">0</colorRedMinimum>
        <colorRedMaximum type="Integer">255</colorRedMaximum>
        <colorGreenMinimum type="ScaledInteger" scale="0.5">0</colorGreenMinimum>
        <colorGreenMaximum type="ScaledInteger" scale="0.5">510</colorGreenMaximum>
        <colorBlueMinimum type="Float">0</colorBlueMinimum>
        <colorBlueMaximum type="Float">1</colorBlueMaximum>
      </colorLimits>'''

    data3d = parse_root(root_xml(data3d_xml(prototype=prototype, extra=extra, file_offset=48))).data3d[0]

    assert data3d.has_color
    assert data3d.indices_of(elements.COLOR_FIELDS) == (4, 5, 6)
    assert data3d.color_limits.color_red_maximum == 255
    assert data3d.color_limits.color_green_maximum == 255.0
    assert data3d.color_limits.color_blue_maximum == 1.0


def test_data3d_limits_wrong_type():
    extra = '''
      <intensityLimits type="Structure">
        <intensityMaximum type="String">a lot</intensityMaximum>
      </intensityLimits>'''

    with pytest.raises(SchemaMismatchError) as e:
        parse_root(root_xml(data3d_xml(extra=extra, file_offset=48)))

    assert e.value.path == 'e57Root/data3D/vectorChild[0]/intensityLimits/intensityMaximum'


def test_data3d_grouping_by_line():
    extra = '''
      <indexBounds type="Structure">
        <rowMinimum type="Integer">0</rowMinimum>
        <rowMaximum type="Integer">99</rowMaximum>
      </indexBounds>
      <pointGroupingSchemes type="Structure">
        <groupingByLine type="Structure">
          <idElementName type="String"><![CDATA[rowIndex]]></idElementName>
          <groups type="CompressedVector" fileOffset="2048" recordCount="100">
            <prototype type="Structure">
              <idElementValue type="Integer" minimum="0" maximum="99"/>
              <startPointIndex type="Integer" minimum="0" maximum="9999"/>
              <pointCount type="Integer" minimum="0" maximum="100"/>
            </prototype>
          </groups>
        </groupingByLine>
      </pointGroupingSchemes>'''
    prototype = PROTOTYPE + '<rowIndex type="Integer" minimum="0" maximum="99"/>'

    data3d = parse_root(root_xml(data3d_xml(prototype=prototype, extra=extra, file_offset=48))).data3d[0]

    grouping = data3d.point_grouping_schemes.grouping_by_line
    assert grouping.id_element_name == 'rowIndex'
    assert grouping.groups.record_count == 100
    assert grouping.groups.prototype.names == ('idElementValue', 'startPointIndex', 'pointCount')
    assert data3d.index_bounds.row_maximum == 99
    assert data3d.index_bounds.column_maximum is None


def test_data3d_grouping_by_line_id():
    extra = '''
      <pointGroupingSchemes type="Structure">
        <groupingByLine type="Structure">
          <idElementName type="String"><![CDATA[returnIndex]]></idElementName>
        </groupingByLine>
      </pointGroupingSchemes>'''

    with pytest.raises(ConstraintViolationError) as e:
        parse_root(root_xml(data3d_xml(extra=extra, file_offset=48)))

    assert e.value.field == 'idElementName'


IMAGE = '''
    <vectorChild type="Structure">
      <guid type="String"><![CDATA[{IMG-0000}]]></guid>
      <associatedData3DGuid type="String"><![CDATA[{D3-0000}]]></associatedData3DGuid>
      <sensorVendor type="String"><![CDATA[ACME]]></sensorVendor>
      <pinholeRepresentation type="Structure">
        <jpegImage type="Blob" fileOffset="4096" length="1000"/>
        <imageWidth type="Integer">640</imageWidth>
        <imageHeight type="Integer">480</imageHeight>
        <focalLength type="Float">0.02</focalLength>
        <pixelWidth type="Float">0.00001</pixelWidth>
        <pixelHeight type="Float">0.00001</pixelHeight>
        <principalPointX type="Float">320</principalPointX>
        <principalPointY type="Float">240</principalPointY>
      </pinholeRepresentation>
      <cylindricalRepresentation type="Structure">
        <imageWidth type="Integer">640</imageWidth>
        <imageHeight type="Integer">480</imageHeight>
        <radius type="Float">RADIUS</radius>
        <principalPointY type="Float">240</principalPointY>
        <pixelWidth type="Float">0.001</pixelWidth>
        <pixelHeight type="Float">0.001</pixelHeight>
      </cylindricalRepresentation>
    </vectorChild>'''


def test_image2d():
    root = parse_root(root_xml(images2d=IMAGE.replace('RADIUS', '1.5')))

    image = root.images2d[0]
    assert image.guid == '{IMG-0000}'
    assert image.associated_data3d_guid == '{D3-0000}'
    assert image.sensor_vendor == 'ACME'
    assert image.pose is None
    assert image.visual_reference_representation is None

    pinhole = image.pinhole_representation
    assert (pinhole.image_width, pinhole.image_height) == (640, 480)
    assert pinhole.focal_length == 0.02
    assert pinhole.jpeg_image == elements.Blob('jpegImage', 4096, 1000)
    assert pinhole.png_image is None

    assert image.cylindrical_representation.radius == 1.5


def test_image2d_radius():
    with pytest.raises(ConstraintViolationError) as e:
        parse_root(root_xml(images2d=IMAGE.replace('RADIUS', '-1')))

    assert e.value.path == 'e57Root/images2D/vectorChild[0]/cylindricalRepresentation'


def test_image2d_missing_width():
    text = IMAGE.replace('RADIUS', '1').replace('<imageWidth type="Integer">640</imageWidth>', '', 1)

    with pytest.raises(MissingRequiredElementError) as e:
        parse_root(root_xml(images2d=text))

    assert e.value.name == 'imageWidth'
    assert e.value.path == 'e57Root/images2D/vectorChild[0]/pinholeRepresentation'


NORMALS = 'http://www.libe57.org/E57_NOR_surface_normals.txt'


def test_prototype_extension_field(e57_builder):
    prototype = PROTOTYPE + f'''
          <nor:normalX xmlns:nor="{NORMALS}" type="Float" precision="single"/>'''

    header = parse(e57_builder(root_xml(data3d_xml(prototype=prototype))))

    data3d = header.e57_root.data3d[0]
    assert data3d.field_names[-1] == 'normalX'
    assert data3d.points.prototype['normalX'].precision == FloatPrecision.SINGLE


def test_record_vector_skips_other_children():
    data3d = f'''
    <ext:note xmlns:ext="http://example.com/ext" type="String">not a scan</ext:note>{data3d_xml(file_offset=48)}'''

    root = parse_root(root_xml(data3d))

    assert len(root.data3d) == 1
    assert root.data3d[0].guid == '{D3-0000}'


def test_record_vector_child_namespace():
    data3d = data3d_xml(file_offset=48).replace(
        '<vectorChild type="Structure">',
        '<vectorChild xmlns="http://example.com/another" type="Structure">', 1)

    with pytest.raises(SchemaMismatchError) as e:
        parse_root(root_xml(data3d))

    assert e.value.expected == NAMESPACE
    assert e.value.path == 'e57Root/data3D/vectorChild[0]'
