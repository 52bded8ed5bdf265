'''
# XML section

The XML section describes the content of the file as a tree of elements, each
XML element has a "type" attribute telling how to interpret it:

 - Integer, ScaledInteger, Float and String carry their value as text
 - Blob and CompressedVector point to binary sections via "fileOffset"
 - Structure and Vector contain other elements

On top of these, the standard defines records (E57Root, Data3D, Image2D...)
that are structures with well known children: parse_root() builds the typed
record tree of elements.py starting from the root of the document.

Every parser that lets an exception slip through appends the name of the
element it was working on to the chain of the exception, in this way the
path of the failing element is available to the caller.
'''
import logging
import xml.etree.ElementTree as ET
from contextlib import contextmanager

from ..exceptions import (
    E57Exception,
    SchemaMismatchError,
    MissingRequiredElementError,
    UnknownElementTypeError,
    ConstraintViolationError,
)
from .enum import ElementType, FloatPrecision, DEFAULT_COMPLIANCE
from .sections import parse_cv_header
from . import elements


logger = logging.getLogger(__name__)


NAMESPACE = 'http://www.astm.org/COMMIT/E57/2010-e57-v1.0'
FORMAT_NAME = 'ASTM E57 3D Imaging Data File'
VERSION_MAJOR = 1

MAX_FILE_OFFSET = 1 << 63
ABSOLUTE_ZERO = -273.15


def qualified(name: str) -> str:
    return f'{{{NAMESPACE}}}{name}'


def split_tag(tag: str):
    '''Returns (namespace, local name) of an element tag'''
    if tag.startswith('{'):
        namespace, _, name = tag[1:].partition('}')
        return namespace, name

    return None, tag


def local_name(node) -> str:
    return split_tag(node.tag)[1]


@contextmanager
def located(name):
    '''Append "name" to the chain of any E57Exception raised inside the block'''
    try:
        yield
    except E57Exception as e:
        e.chain.append(name)
        raise


def type_of(node) -> str:
    value = node.get('type')
    if value is None:
        raise MissingRequiredElementError('type')

    return value


def check_namespace(node):
    namespace, _ = split_tag(node.tag)
    if namespace != NAMESPACE:
        raise SchemaMismatchError(NAMESPACE, namespace)


def check_element(node, name=None, type=None):
    '''The element must have the given type and, if any, the given name.

    Only named bindings must live in the E57 namespace, the values of a
    structure can come from extensions (e.g. surface normals in a prototype).'''
    if name is not None:
        check_namespace(node)

        if local_name(node) != name:
            raise SchemaMismatchError(name, local_name(node))

    if type is not None:
        actual = type_of(node)
        if actual != type.value:
            raise SchemaMismatchError(type.value, actual)


def get_element(node, name):
    '''The child with the given name, None if missing'''
    return node.find(qualified(name))


def require_element(node, name):
    child = get_element(node, name)
    if child is None:
        raise MissingRequiredElementError(name)

    return child


# text and attributes


def _convert(text, converter, what):
    try:
        return converter(text)
    except ValueError:
        raise SchemaMismatchError(what, text)


def text_of(node) -> str:
    return (node.text or '').strip()


def integer_text(node) -> int:
    '''The value of an Integer element, an empty element is zero'''
    text = text_of(node)
    return _convert(text, int, 'an integer') if text else 0


def float_text(node) -> float:
    text = text_of(node)
    return _convert(text, float, 'a number') if text else 0.0


def int_attribute(node, name, default=None, required=False):
    value = node.get(name)
    if value is None:
        if required:
            raise MissingRequiredElementError(name)
        return default

    with located(f'@{name}'):
        return _convert(value.strip(), int, 'an integer')


def float_attribute(node, name, default=None):
    value = node.get(name)
    if value is None:
        return default

    with located(f'@{name}'):
        return _convert(value.strip(), float, 'a number')


def check_bounds(minimum, maximum):
    if minimum is not None and maximum is not None and maximum < minimum:
        raise ConstraintViolationError('maximum', f'>= minimum ({minimum})', maximum)


def check_file_offset(file_offset):
    if not 0 <= file_offset < MAX_FILE_OFFSET:
        raise ConstraintViolationError('fileOffset', 'in [0, 2^63)', file_offset)


# primitive elements


def parse_integer(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.Integer:
    check_element(node, type=ElementType.INTEGER)

    minimum = int_attribute(node, 'minimum')
    maximum = int_attribute(node, 'maximum')
    check_bounds(minimum, maximum)

    return elements.Integer(local_name(node), integer_text(node), minimum, maximum)


def parse_scaled_integer(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.ScaledInteger:
    check_element(node, type=ElementType.SCALED_INTEGER)

    minimum = int_attribute(node, 'minimum')
    maximum = int_attribute(node, 'maximum')
    check_bounds(minimum, maximum)

    scale = float_attribute(node, 'scale', default=1.0)
    if scale == 0:
        raise ConstraintViolationError('scale', 'non zero', scale)

    return elements.ScaledInteger(
        local_name(node),
        raw_value=integer_text(node),
        minimum=minimum,
        maximum=maximum,
        scale=scale,
        offset=float_attribute(node, 'offset', default=0.0),
    )


def parse_float(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.Float:
    check_element(node, type=ElementType.FLOAT)

    precision = node.get('precision', FloatPrecision.DOUBLE.value)
    try:
        precision = FloatPrecision(precision)
    except ValueError:
        raise ConstraintViolationError('precision', "'single' or 'double'", precision)

    minimum = float_attribute(node, 'minimum')
    maximum = float_attribute(node, 'maximum')
    check_bounds(minimum, maximum)

    return elements.Float(local_name(node), float_text(node), precision, minimum, maximum)


def parse_string(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.String:
    check_element(node, type=ElementType.STRING)

    # CDATA sections are merged into the text by the XML parser
    return elements.String(local_name(node), node.text or '')


def parse_blob(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.Blob:
    check_element(node, type=ElementType.BLOB)

    file_offset = int_attribute(node, 'fileOffset', required=True)
    check_file_offset(file_offset)

    length = int_attribute(node, 'length', required=True)
    if length <= 0:
        raise ConstraintViolationError('length', 'positive', length)

    return elements.Blob(local_name(node), file_offset, length)


def parse_structure(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.Structure:
    check_element(node, type=ElementType.STRUCTURE)

    children = []
    for child in node:
        with located(local_name(child)):
            children.append(parse_element(child, stream, compliant))

    return elements.Structure(local_name(node), tuple(children))


def parse_vector(node, stream=None, compliant=DEFAULT_COMPLIANCE, child_parser=None,
                 child_name=None) -> elements.Vector:
    '''The children are parsed with "child_parser", by default parse_element().

    With "child_name" only the children with that name are taken, the others
    are skipped.'''
    check_element(node, type=ElementType.VECTOR)

    heterogeneous = int_attribute(node, 'allowHeterogeneousChildren', default=0)
    if heterogeneous not in (0, 1):
        raise ConstraintViolationError('allowHeterogeneousChildren', 'in {0, 1}', heterogeneous)

    child_parser = child_parser or parse_element

    nodes = list(node)
    if child_name is not None:
        nodes = [_ for _ in node if local_name(_) == child_name]
        if len(nodes) != len(node):
            logger.debug(f'skipping {len(node) - len(nodes)} elements of {local_name(node)} not named {child_name}')

    children = []
    for index, child in enumerate(nodes):
        with located(f'{local_name(child)}[{index}]'):
            children.append(child_parser(child, stream, compliant))

    return elements.Vector(local_name(node), tuple(children), bool(heterogeneous))


def parse_codec(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.Codec:
    check_element(node, type=ElementType.STRUCTURE)

    with located('inputs'):
        inputs = parse_vector(require_element(node, 'inputs'), stream, compliant)

    bit_pack_codec = get_element(node, 'bitPackCodec')
    if bit_pack_codec is not None:
        with located('bitPackCodec'):
            bit_pack_codec = parse_structure(bit_pack_codec, stream, compliant)

    return elements.Codec(inputs, bit_pack_codec)


def parse_compressed_vector(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.CompressedVector:
    '''When a stream is given the header of the binary section is read and validated.'''
    check_element(node, type=ElementType.COMPRESSED_VECTOR)

    file_offset = int_attribute(node, 'fileOffset', required=True)
    check_file_offset(file_offset)

    record_count = int_attribute(node, 'recordCount', required=True)
    if record_count < 0:
        raise ConstraintViolationError('recordCount', 'non negative', record_count)

    with located('prototype'):
        prototype = parse_structure(require_element(node, 'prototype'), stream, compliant)

    codecs = ()
    codecs_node = get_element(node, 'codecs')
    if codecs_node is not None:
        with located('codecs'):
            codecs = parse_vector(codecs_node, stream, compliant, child_parser=parse_codec).children

    header = None
    if stream is not None:
        header = parse_cv_header(stream, file_offset, compliant=compliant)
    else:
        logger.debug('no stream, the section header at 0x%x is not checked' % file_offset)

    return elements.CompressedVector(
        local_name(node),
        file_offset=file_offset,
        record_count=record_count,
        prototype=prototype,
        codecs=codecs,
        header=header,
    )


PARSERS = {
    ElementType.INTEGER:           parse_integer,
    ElementType.SCALED_INTEGER:    parse_scaled_integer,
    ElementType.FLOAT:             parse_float,
    ElementType.STRING:            parse_string,
    ElementType.BLOB:              parse_blob,
    ElementType.STRUCTURE:         parse_structure,
    ElementType.VECTOR:            parse_vector,
    ElementType.COMPRESSED_VECTOR: parse_compressed_vector,
}


def parse_element(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.Element:
    '''Build the element from its "type" attribute'''
    type_name = type_of(node)
    try:
        element_type = ElementType(type_name)
    except ValueError:
        raise UnknownElementTypeError(type_name)

    if not element_type.is_primitive:
        raise UnknownElementTypeError(type_name)

    return PARSERS[element_type](node, stream, compliant)


# NOTE: the getters look for the child with the given name, check its type
#       and return its value; a missing optional child gives None


def _get(node, name, type, read, required, must_be):
    child = get_element(node, name)
    if child is None:
        if required:
            raise MissingRequiredElementError(name)
        return None

    with located(name):
        check_element(child, name=name, type=type)
        value = read(child)

        if must_be is not None and value != must_be:
            raise SchemaMismatchError(must_be, value)

    return value


def get_string(node, name, required=False, must_be=None):
    return _get(node, name, ElementType.STRING, lambda _: _.text or '', required, must_be)


def get_integer(node, name, required=False, must_be=None):
    return _get(node, name, ElementType.INTEGER, integer_text, required, must_be)


def get_float(node, name, required=False, must_be=None):
    return _get(node, name, ElementType.FLOAT, float_text, required, must_be)


def get_number(node, name, required=False):
    '''Limits can be expressed as Float, Integer or ScaledInteger'''
    child = get_element(node, name)
    if child is None:
        if required:
            raise MissingRequiredElementError(name)
        return None

    with located(name):
        element = parse_element(child)
        if isinstance(element, (elements.Integer, elements.ScaledInteger, elements.Float)):
            return element.value

        raise SchemaMismatchError('Float, Integer or ScaledInteger', type_of(child))


def get_record(node, name, parser, stream=None, compliant=DEFAULT_COMPLIANCE, required=False):
    '''Parse the child with "parser", a record parser takes (node, stream, compliant)'''
    child = get_element(node, name)
    if child is None:
        if required:
            raise MissingRequiredElementError(name)
        return None

    with located(name):
        return parser(child, stream, compliant)


def check_positive(name, value):
    if value is not None and value <= 0:
        raise ConstraintViolationError(name, 'positive', value)


# records


def parse_date_time(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.DateTime:
    '''Table 31'''
    check_element(node, type=ElementType.STRUCTURE)

    atomic = get_integer(node, 'isAtomicClockReferenced') or 0
    if atomic not in (0, 1):
        raise ConstraintViolationError('isAtomicClockReferenced', 'in {0, 1}', atomic)

    return elements.DateTime(
        date_time_value=get_float(node, 'dateTimeValue', required=True),
        is_atomic_clock_referenced=bool(atomic),
    )


def parse_quaternion(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.Quaternion:
    check_element(node, type=ElementType.STRUCTURE)

    return elements.Quaternion(*[get_float(node, _, required=True) for _ in 'wxyz'])


def parse_translation(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.Translation:
    check_element(node, type=ElementType.STRUCTURE)

    return elements.Translation(*[get_float(node, _, required=True) for _ in 'xyz'])


def parse_rigid_body_transform(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.RigidBodyTransform:
    '''Table 17'''
    check_element(node, type=ElementType.STRUCTURE)

    rotation = get_record(node, 'rotation', parse_quaternion) or elements.Quaternion()
    translation = get_record(node, 'translation', parse_translation) or elements.Translation()

    return elements.RigidBodyTransform(rotation, translation)


def _bounds_parser(record_cls, names, getter):
    '''Parser for a structure of optional values, "names" in the order of the fields of the record'''

    def parse(node, stream=None, compliant=DEFAULT_COMPLIANCE):
        check_element(node, type=ElementType.STRUCTURE)

        return record_cls(*[getter(node, _) for _ in names])

    parse.__name__ = f'parse_{record_cls.__name__}'

    return parse


parse_cartesian_bounds = _bounds_parser(
    elements.CartesianBounds,
    ('xMinimum', 'xMaximum', 'yMinimum', 'yMaximum', 'zMinimum', 'zMaximum'),
    get_float,
)
parse_spherical_bounds = _bounds_parser(
    elements.SphericalBounds,
    ('rangeMinimum', 'rangeMaximum', 'elevationMinimum', 'elevationMaximum', 'azimuthStart', 'azimuthEnd'),
    get_float,
)
parse_index_bounds = _bounds_parser(
    elements.IndexBounds,
    ('rowMinimum', 'rowMaximum', 'columnMinimum', 'columnMaximum', 'returnMinimum', 'returnMaximum'),
    get_integer,
)
parse_intensity_limits = _bounds_parser(
    elements.IntensityLimits,
    ('intensityMinimum', 'intensityMaximum'),
    get_number,
)
parse_color_limits = _bounds_parser(
    elements.ColorLimits,
    ('colorRedMinimum', 'colorRedMaximum',
     'colorGreenMinimum', 'colorGreenMaximum',
     'colorBlueMinimum', 'colorBlueMaximum'),
    get_number,
)


GROUPING_BY_LINE_IDS = ('rowIndex', 'columnIndex')


def parse_grouping_by_line(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.GroupingByLine:
    '''Table 15'''
    check_element(node, type=ElementType.STRUCTURE)

    id_element_name = get_string(node, 'idElementName', required=True)
    if id_element_name not in GROUPING_BY_LINE_IDS:
        raise ConstraintViolationError('idElementName', 'rowIndex or columnIndex', id_element_name)

    groups = get_record(node, 'groups', parse_compressed_vector, stream, compliant)

    return elements.GroupingByLine(id_element_name, groups)


def parse_point_grouping_schemes(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.PointGroupingSchemes:
    check_element(node, type=ElementType.STRUCTURE)

    return elements.PointGroupingSchemes(
        get_record(node, 'groupingByLine', parse_grouping_by_line, stream, compliant))


def get_acquisition(node, name, stream, compliant):
    '''Some writers spell "acquisiton" instead of "acquisition"'''
    misspelled = name.replace('acquisition', 'acquisiton')
    if get_element(node, name) is None and get_element(node, misspelled) is not None:
        logger.info(f'found misspelled element {misspelled}')
        name = misspelled

    return get_record(node, name, parse_date_time, stream, compliant)


def check_point_fields(data3d: elements.Data3D):
    '''Consistency of the fields of the prototype with the rest of the record (8.4.4)'''
    names = set(data3d.field_names)

    groups = (
        ('cartesian coordinates', elements.CARTESIAN_FIELDS),
        ('spherical coordinates', elements.SPHERICAL_FIELDS),
        ('return fields', elements.RETURN_FIELDS),
        ('color fields', elements.COLOR_FIELDS),
    )
    for description, group in groups:
        present = [_ for _ in group if _ in names]
        if present and len(present) != len(group):
            raise ConstraintViolationError(
                'points/prototype', f'with {description} all present ({", ".join(group)})', present)

    if data3d.has_spherical and data3d.spherical_bounds is None:
        raise MissingRequiredElementError('sphericalBounds')

    if names & {'rowIndex', 'columnIndex', 'returnIndex'} and data3d.index_bounds is None:
        raise MissingRequiredElementError('indexBounds')

    if data3d.has_cartesian and data3d.cartesian_bounds is None:
        logger.warning(f'data3D {data3d.guid} has cartesian coordinates but no cartesianBounds')


def parse_data3d(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.Data3D:
    '''Table 13'''
    check_element(node, type=ElementType.STRUCTURE)

    guid = get_string(node, 'guid', required=True)
    points = get_record(node, 'points', parse_compressed_vector, stream, compliant, required=True)

    original_guids = get_record(node, 'originalGuids', parse_vector, stream, compliant)
    if original_guids is not None and not all(isinstance(_, elements.String) for _ in original_guids):
        raise ConstraintViolationError('originalGuids', 'a vector of String', original_guids)

    temperature = get_float(node, 'temperature')
    if temperature is not None and temperature < ABSOLUTE_ZERO:
        raise ConstraintViolationError('temperature', f'>= {ABSOLUTE_ZERO}', temperature)

    relative_humidity = get_float(node, 'relativeHumidity')
    if relative_humidity is not None and not 0 <= relative_humidity <= 100:
        raise ConstraintViolationError('relativeHumidity', 'in [0, 100]', relative_humidity)

    atmospheric_pressure = get_float(node, 'atmosphericPressure')
    check_positive('atmosphericPressure', atmospheric_pressure)

    data3d = elements.Data3D(
        guid=guid,
        points=points,
        pose=get_record(node, 'pose', parse_rigid_body_transform),
        original_guids=original_guids,
        point_grouping_schemes=get_record(
            node, 'pointGroupingSchemes', parse_point_grouping_schemes, stream, compliant),
        name=get_string(node, 'name'),
        description=get_string(node, 'description'),
        cartesian_bounds=get_record(node, 'cartesianBounds', parse_cartesian_bounds),
        spherical_bounds=get_record(node, 'sphericalBounds', parse_spherical_bounds),
        index_bounds=get_record(node, 'indexBounds', parse_index_bounds),
        intensity_limits=get_record(node, 'intensityLimits', parse_intensity_limits),
        color_limits=get_record(node, 'colorLimits', parse_color_limits),
        acquisition_start=get_acquisition(node, 'acquisitionStart', stream, compliant),
        acquisition_end=get_acquisition(node, 'acquisitionEnd', stream, compliant),
        sensor_vendor=get_string(node, 'sensorVendor'),
        sensor_model=get_string(node, 'sensorModel'),
        sensor_serial_number=get_string(node, 'sensorSerialNumber'),
        sensor_hardware_version=get_string(node, 'sensorHardwareVersion'),
        sensor_software_version=get_string(node, 'sensorSoftwareVersion'),
        sensor_firmware_version=get_string(node, 'sensorFirmwareVersion'),
        temperature=temperature,
        relative_humidity=relative_humidity,
        atmospheric_pressure=atmospheric_pressure,
    )

    check_point_fields(data3d)

    return data3d


def _image_size(node):
    width = get_integer(node, 'imageWidth', required=True)
    height = get_integer(node, 'imageHeight', required=True)
    check_positive('imageWidth', width)
    check_positive('imageHeight', height)

    return width, height


def _images(node, stream, compliant):
    '''The optional blobs common to every representation'''
    return dict(
        jpeg_image=get_record(node, 'jpegImage', parse_blob, stream, compliant),
        png_image=get_record(node, 'pngImage', parse_blob, stream, compliant),
        image_mask=get_record(node, 'imageMask', parse_blob, stream, compliant),
    )


def _pixel_size(node):
    pixel_width = get_float(node, 'pixelWidth', required=True)
    pixel_height = get_float(node, 'pixelHeight', required=True)
    check_positive('pixelWidth', pixel_width)
    check_positive('pixelHeight', pixel_height)

    return pixel_width, pixel_height


def parse_visual_reference_representation(node, stream=None, compliant=DEFAULT_COMPLIANCE):
    check_element(node, type=ElementType.STRUCTURE)

    width, height = _image_size(node)

    return elements.VisualReferenceRepresentation(width, height, **_images(node, stream, compliant))


def parse_pinhole_representation(node, stream=None, compliant=DEFAULT_COMPLIANCE):
    check_element(node, type=ElementType.STRUCTURE)

    width, height = _image_size(node)
    focal_length = get_float(node, 'focalLength', required=True)
    check_positive('focalLength', focal_length)
    pixel_width, pixel_height = _pixel_size(node)

    return elements.PinholeRepresentation(
        width, height,
        focal_length=focal_length,
        pixel_width=pixel_width,
        pixel_height=pixel_height,
        principal_point_x=get_float(node, 'principalPointX', required=True),
        principal_point_y=get_float(node, 'principalPointY', required=True),
        **_images(node, stream, compliant)
    )


def parse_spherical_representation(node, stream=None, compliant=DEFAULT_COMPLIANCE):
    check_element(node, type=ElementType.STRUCTURE)

    width, height = _image_size(node)
    pixel_width, pixel_height = _pixel_size(node)

    return elements.SphericalRepresentation(
        width, height, pixel_width, pixel_height, **_images(node, stream, compliant))


def parse_cylindrical_representation(node, stream=None, compliant=DEFAULT_COMPLIANCE):
    check_element(node, type=ElementType.STRUCTURE)

    width, height = _image_size(node)
    radius = get_float(node, 'radius', required=True)
    if radius < 0:
        raise ConstraintViolationError('radius', 'non negative', radius)
    pixel_width, pixel_height = _pixel_size(node)

    return elements.CylindricalRepresentation(
        width, height,
        radius=radius,
        principal_point_y=get_float(node, 'principalPointY', required=True),
        pixel_width=pixel_width,
        pixel_height=pixel_height,
        **_images(node, stream, compliant)
    )


def parse_image2d(node, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.Image2D:
    '''Table 19'''
    check_element(node, type=ElementType.STRUCTURE)

    return elements.Image2D(
        guid=get_string(node, 'guid', required=True),
        visual_reference_representation=get_record(
            node, 'visualReferenceRepresentation', parse_visual_reference_representation, stream, compliant),
        pinhole_representation=get_record(
            node, 'pinholeRepresentation', parse_pinhole_representation, stream, compliant),
        spherical_representation=get_record(
            node, 'sphericalRepresentation', parse_spherical_representation, stream, compliant),
        cylindrical_representation=get_record(
            node, 'cylindricalRepresentation', parse_cylindrical_representation, stream, compliant),
        pose=get_record(node, 'pose', parse_rigid_body_transform),
        associated_data3d_guid=get_string(node, 'associatedData3DGuid'),
        name=get_string(node, 'name'),
        description=get_string(node, 'description'),
        acquisition_date_time=get_record(node, 'acquisitionDateTime', parse_date_time),
        sensor_vendor=get_string(node, 'sensorVendor'),
        sensor_model=get_string(node, 'sensorModel'),
        sensor_serial_number=get_string(node, 'sensorSerialNumber'),
    )


def _record_vector(node, name, parser, stream, compliant):
    '''The records contained into the Vector named "name", an empty tuple if missing'''
    vector = get_record(
        node, name,
        lambda child, stream, compliant: parse_vector(
            child, stream, compliant, child_parser=parser, child_name='vectorChild'),
        stream, compliant)

    return vector.children if vector is not None else ()


def _vector_child(parser):
    def parse(node, stream=None, compliant=DEFAULT_COMPLIANCE):
        check_element(node, name='vectorChild')
        return parser(node, stream, compliant)

    return parse


def to_xml_element(xml_document):
    if isinstance(xml_document, ET.Element):
        return xml_document

    try:
        return ET.fromstring(xml_document)
    except ET.ParseError as e:
        raise SchemaMismatchError('well formed XML', str(e))


def parse_root(xml_document, stream=None, compliant=DEFAULT_COMPLIANCE) -> elements.E57Root:
    '''Table 12.

    "xml_document" can be the text of the XML section (str or bytes) or the
    already parsed root element; "stream" is needed to read the headers of the
    binary sections.'''
    root = to_xml_element(xml_document)

    with located('e57Root'):
        check_element(root, name='e57Root', type=ElementType.STRUCTURE)

        e57_root = elements.E57Root(
            format_name=get_string(root, 'formatName', required=True, must_be=FORMAT_NAME),
            guid=get_string(root, 'guid', required=True),
            version_major=get_integer(root, 'versionMajor', required=True, must_be=VERSION_MAJOR),
            version_minor=get_integer(root, 'versionMinor', required=True),
            e57_library_version=get_string(root, 'e57LibraryVersion'),
            creation_date_time=get_record(root, 'creationDateTime', parse_date_time),
            data3d=_record_vector(root, 'data3D', _vector_child(parse_data3d), stream, compliant),
            images2d=_record_vector(root, 'images2D', _vector_child(parse_image2d), stream, compliant),
            coordinate_metadata=get_string(root, 'coordinateMetadata'),
        )

    logger.debug(f'parsed e57Root {e57_root.guid} with {len(e57_root.data3d)} data3D '
                 f'and {len(e57_root.images2d)} images2D')

    return e57_root
