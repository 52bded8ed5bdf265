'''
Nodes of the document tree described by the XML section.

Each class is one variant of a closed set, identified by its "element_type";
the instances are immutable: the tree is a read-only view of the file.

The numbers in the docstrings refer to the tables of ASTM E2807-11.
'''
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import ClassVar, Optional, Tuple

import numpy as np

from .enum import ElementType, FloatPrecision


GPS_EPOCH = datetime(1980, 1, 6, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Element:
    element_type: ClassVar[ElementType]


@dataclass(frozen=True)
class Integer(Element):
    '''Table 2'''
    element_type: ClassVar[ElementType] = ElementType.INTEGER

    name: str
    value: int = 0
    minimum: Optional[int] = None
    maximum: Optional[int] = None


@dataclass(frozen=True)
class ScaledInteger(Element):
    '''Table 3: the represented value is raw_value * scale + offset'''
    element_type: ClassVar[ElementType] = ElementType.SCALED_INTEGER

    name: str
    raw_value: int = 0
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    scale: float = 1.0
    offset: float = 0.0

    @property
    def value(self) -> float:
        return self.raw_value * self.scale + self.offset


@dataclass(frozen=True)
class Float(Element):
    '''Table 4'''
    element_type: ClassVar[ElementType] = ElementType.FLOAT

    name: str
    value: float = 0.0
    precision: FloatPrecision = FloatPrecision.DOUBLE
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @property
    def is_double(self) -> bool:
        return self.precision == FloatPrecision.DOUBLE


@dataclass(frozen=True)
class String(Element):
    element_type: ClassVar[ElementType] = ElementType.STRING

    name: str
    value: str = ''


@dataclass(frozen=True)
class Blob(Element):
    '''Table 6: only the position of the binary section, its content is not read'''
    element_type: ClassVar[ElementType] = ElementType.BLOB

    name: str
    file_offset: int
    length: int


@dataclass(frozen=True)
class Structure(Element):
    '''Table 7: the order of the children is the order of the document'''
    element_type: ClassVar[ElementType] = ElementType.STRUCTURE

    name: str
    children: Tuple[Element, ...] = ()

    def __iter__(self):
        return iter(self.children)

    def __len__(self):
        return len(self.children)

    def __getitem__(self, item):
        if isinstance(item, str):
            child = self.child(item)
            if child is None:
                raise KeyError(item)
            return child

        return self.children[item]

    def __contains__(self, name):
        return self.child(name) is not None

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(_.name for _ in self.children)

    def child(self, name: str) -> Optional[Element]:
        for element in self.children:
            if element.name == name:
                return element

        return None


@dataclass(frozen=True)
class Vector(Element):
    '''Table 8'''
    element_type: ClassVar[ElementType] = ElementType.VECTOR

    name: str
    children: Tuple[Element, ...] = ()
    allow_heterogeneous_children: bool = False

    def __iter__(self):
        return iter(self.children)

    def __len__(self):
        return len(self.children)

    def __getitem__(self, index):
        return self.children[index]


@dataclass(frozen=True)
class Codec(Element):
    '''Table 11'''
    element_type: ClassVar[ElementType] = ElementType.CODEC

    inputs: Vector
    bit_pack_codec: Optional[Structure] = None


@dataclass(frozen=True)
class CompressedVector(Element):
    '''Tables 9 and 10.

    "header" is the header of the binary section found at "file_offset", it's
    None only when the tree is built without access to the binary data.'''
    element_type: ClassVar[ElementType] = ElementType.COMPRESSED_VECTOR

    name: str
    file_offset: int
    record_count: int
    prototype: Structure
    codecs: Tuple[Codec, ...] = ()
    header: Optional[object] = field(default=None, compare=False, repr=False)

    @property
    def byte_stream_count(self) -> int:
        return len(self.prototype)


@dataclass(frozen=True)
class DateTime(Element):
    '''Table 31: seconds since the GPS epoch'''
    element_type: ClassVar[ElementType] = ElementType.DATE_TIME

    date_time_value: float
    is_atomic_clock_referenced: bool = False

    @property
    def datetime(self) -> datetime:
        return GPS_EPOCH + timedelta(seconds=self.date_time_value)


@dataclass(frozen=True)
class Quaternion(Element):
    element_type: ClassVar[ElementType] = ElementType.QUATERNION

    w: float = 1.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class Translation(Element):
    element_type: ClassVar[ElementType] = ElementType.TRANSLATION

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class RigidBodyTransform(Element):
    '''Table 17: a missing rotation is the identity, a missing translation is zero'''
    element_type: ClassVar[ElementType] = ElementType.RIGID_BODY_TRANSFORM

    rotation: Quaternion = Quaternion()
    translation: Translation = Translation()

    def matrix(self):
        '''The 4x4 homogeneous matrix applying the rotation first, then the translation'''
        q = self.rotation
        w, x, y, z = q.w, q.x, q.y, q.z
        result = np.identity(4)
        result[:3, :3] = [
            [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
            [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
            [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
        ]
        result[:3, 3] = [self.translation.x, self.translation.y, self.translation.z]

        return result


@dataclass(frozen=True)
class CartesianBounds(Element):
    element_type: ClassVar[ElementType] = ElementType.CARTESIAN_BOUNDS

    x_minimum: Optional[float] = None
    x_maximum: Optional[float] = None
    y_minimum: Optional[float] = None
    y_maximum: Optional[float] = None
    z_minimum: Optional[float] = None
    z_maximum: Optional[float] = None


@dataclass(frozen=True)
class SphericalBounds(Element):
    element_type: ClassVar[ElementType] = ElementType.SPHERICAL_BOUNDS

    range_minimum: Optional[float] = None
    range_maximum: Optional[float] = None
    elevation_minimum: Optional[float] = None
    elevation_maximum: Optional[float] = None
    azimuth_start: Optional[float] = None
    azimuth_end: Optional[float] = None


@dataclass(frozen=True)
class IndexBounds(Element):
    element_type: ClassVar[ElementType] = ElementType.INDEX_BOUNDS

    row_minimum: Optional[int] = None
    row_maximum: Optional[int] = None
    column_minimum: Optional[int] = None
    column_maximum: Optional[int] = None
    return_minimum: Optional[int] = None
    return_maximum: Optional[int] = None


@dataclass(frozen=True)
class IntensityLimits(Element):
    element_type: ClassVar[ElementType] = ElementType.INTENSITY_LIMITS

    intensity_minimum: Optional[float] = None
    intensity_maximum: Optional[float] = None


@dataclass(frozen=True)
class ColorLimits(Element):
    element_type: ClassVar[ElementType] = ElementType.COLOR_LIMITS

    color_red_minimum: Optional[float] = None
    color_red_maximum: Optional[float] = None
    color_green_minimum: Optional[float] = None
    color_green_maximum: Optional[float] = None
    color_blue_minimum: Optional[float] = None
    color_blue_maximum: Optional[float] = None


@dataclass(frozen=True)
class GroupingByLine(Element):
    '''Table 15'''
    element_type: ClassVar[ElementType] = ElementType.GROUPING_BY_LINE

    id_element_name: str
    groups: Optional[CompressedVector] = None


@dataclass(frozen=True)
class PointGroupingSchemes(Element):
    element_type: ClassVar[ElementType] = ElementType.POINT_GROUPING_SCHEMES

    grouping_by_line: Optional[GroupingByLine] = None


CARTESIAN_FIELDS = ('cartesianX', 'cartesianY', 'cartesianZ')
SPHERICAL_FIELDS = ('sphericalRange', 'sphericalAzimuth', 'sphericalElevation')
RETURN_FIELDS = ('returnIndex', 'returnCount')
COLOR_FIELDS = ('colorRed', 'colorGreen', 'colorBlue')


@dataclass(frozen=True)
class Data3D(Element):
    '''Table 13: one scan'''
    element_type: ClassVar[ElementType] = ElementType.DATA3D

    guid: str
    points: CompressedVector
    pose: Optional[RigidBodyTransform] = None
    original_guids: Optional[Vector] = None
    point_grouping_schemes: Optional[PointGroupingSchemes] = None
    name: Optional[str] = None
    description: Optional[str] = None
    cartesian_bounds: Optional[CartesianBounds] = None
    spherical_bounds: Optional[SphericalBounds] = None
    index_bounds: Optional[IndexBounds] = None
    intensity_limits: Optional[IntensityLimits] = None
    color_limits: Optional[ColorLimits] = None
    acquisition_start: Optional[DateTime] = None
    acquisition_end: Optional[DateTime] = None
    sensor_vendor: Optional[str] = None
    sensor_model: Optional[str] = None
    sensor_serial_number: Optional[str] = None
    sensor_hardware_version: Optional[str] = None
    sensor_software_version: Optional[str] = None
    sensor_firmware_version: Optional[str] = None
    temperature: Optional[float] = None
    relative_humidity: Optional[float] = None
    atmospheric_pressure: Optional[float] = None

    @property
    def field_names(self) -> Tuple[str, ...]:
        return self.points.prototype.names

    def indices_of(self, names) -> Optional[Tuple[int, ...]]:
        '''Position in the prototype (that is the byte stream) of each of the fields, None if one is missing'''
        field_names = self.field_names
        if not all(_ in field_names for _ in names):
            return None

        return tuple(field_names.index(_) for _ in names)

    @property
    def has_cartesian(self) -> bool:
        return self.indices_of(CARTESIAN_FIELDS) is not None

    @property
    def has_spherical(self) -> bool:
        return self.indices_of(SPHERICAL_FIELDS) is not None

    @property
    def has_color(self) -> bool:
        return self.indices_of(COLOR_FIELDS) is not None

    @property
    def has_cartesian_invalid_state(self) -> bool:
        return 'cartesianInvalidState' in self.field_names

    @property
    def has_spherical_invalid_state(self) -> bool:
        return 'sphericalInvalidState' in self.field_names


@dataclass(frozen=True)
class VisualReferenceRepresentation(Element):
    '''Table 20'''
    element_type: ClassVar[ElementType] = ElementType.VISUAL_REFERENCE_REPRESENTATION

    image_width: int
    image_height: int
    jpeg_image: Optional[Blob] = None
    png_image: Optional[Blob] = None
    image_mask: Optional[Blob] = None


@dataclass(frozen=True)
class PinholeRepresentation(Element):
    '''Table 21'''
    element_type: ClassVar[ElementType] = ElementType.PINHOLE_REPRESENTATION

    image_width: int
    image_height: int
    focal_length: float
    pixel_width: float
    pixel_height: float
    principal_point_x: float
    principal_point_y: float
    jpeg_image: Optional[Blob] = None
    png_image: Optional[Blob] = None
    image_mask: Optional[Blob] = None


@dataclass(frozen=True)
class SphericalRepresentation(Element):
    '''Table 22'''
    element_type: ClassVar[ElementType] = ElementType.SPHERICAL_REPRESENTATION

    image_width: int
    image_height: int
    pixel_width: float
    pixel_height: float
    jpeg_image: Optional[Blob] = None
    png_image: Optional[Blob] = None
    image_mask: Optional[Blob] = None


@dataclass(frozen=True)
class CylindricalRepresentation(Element):
    '''Table 23'''
    element_type: ClassVar[ElementType] = ElementType.CYLINDRICAL_REPRESENTATION

    image_width: int
    image_height: int
    radius: float
    principal_point_y: float
    pixel_width: float
    pixel_height: float
    jpeg_image: Optional[Blob] = None
    png_image: Optional[Blob] = None
    image_mask: Optional[Blob] = None


@dataclass(frozen=True)
class Image2D(Element):
    '''Table 19: one picture'''
    element_type: ClassVar[ElementType] = ElementType.IMAGE2D

    guid: str
    visual_reference_representation: Optional[VisualReferenceRepresentation] = None
    pinhole_representation: Optional[PinholeRepresentation] = None
    spherical_representation: Optional[SphericalRepresentation] = None
    cylindrical_representation: Optional[CylindricalRepresentation] = None
    pose: Optional[RigidBodyTransform] = None
    associated_data3d_guid: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    acquisition_date_time: Optional[DateTime] = None
    sensor_vendor: Optional[str] = None
    sensor_model: Optional[str] = None
    sensor_serial_number: Optional[str] = None


@dataclass(frozen=True)
class E57Root(Element):
    '''Table 12'''
    element_type: ClassVar[ElementType] = ElementType.E57_ROOT

    format_name: str
    guid: str
    version_major: int
    version_minor: int
    e57_library_version: Optional[str] = None
    creation_date_time: Optional[DateTime] = None
    data3d: Tuple[Data3D, ...] = ()
    images2d: Tuple[Image2D, ...] = ()
    coordinate_metadata: Optional[str] = None
