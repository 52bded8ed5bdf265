from enum import Enum

from ..enum import Compliant


class ElementType(Enum):
    '''Every kind of node the document tree is made of.

    The first eight are the values the "type" attribute of an XML element can
    assume, the others are the records built on top of them.'''
    INTEGER           = 'Integer'
    SCALED_INTEGER    = 'ScaledInteger'
    FLOAT             = 'Float'
    STRING            = 'String'
    BLOB              = 'Blob'
    STRUCTURE         = 'Structure'
    VECTOR            = 'Vector'
    COMPRESSED_VECTOR = 'CompressedVector'

    CODEC                 = 'Codec'
    E57_ROOT              = 'E57Root'
    DATA3D                = 'Data3D'
    POINT_GROUPING_SCHEMES = 'PointGroupingSchemes'
    GROUPING_BY_LINE      = 'GroupingByLine'
    RIGID_BODY_TRANSFORM  = 'RigidBodyTransform'
    QUATERNION            = 'Quaternion'
    TRANSLATION           = 'Translation'
    IMAGE2D               = 'Image2D'
    VISUAL_REFERENCE_REPRESENTATION = 'VisualReferenceRepresentation'
    PINHOLE_REPRESENTATION = 'PinholeRepresentation'
    SPHERICAL_REPRESENTATION = 'SphericalRepresentation'
    CYLINDRICAL_REPRESENTATION = 'CylindricalRepresentation'
    CARTESIAN_BOUNDS      = 'CartesianBounds'
    SPHERICAL_BOUNDS      = 'SphericalBounds'
    INDEX_BOUNDS          = 'IndexBounds'
    INTENSITY_LIMITS      = 'IntensityLimits'
    COLOR_LIMITS          = 'ColorLimits'
    DATE_TIME             = 'DateTime'

    @property
    def is_primitive(self):
        return self in PRIMITIVE_TYPES


PRIMITIVE_TYPES = frozenset([
    ElementType.INTEGER,
    ElementType.SCALED_INTEGER,
    ElementType.FLOAT,
    ElementType.STRING,
    ElementType.BLOB,
    ElementType.STRUCTURE,
    ElementType.VECTOR,
    ElementType.COMPRESSED_VECTOR,
])


class SectionId(Enum):
    BLOB              = 0
    COMPRESSED_VECTOR = 1


class PacketType(Enum):
    INDEX   = 0
    DATA    = 1
    IGNORED = 2


class FloatPrecision(Enum):
    SINGLE = 'single'
    DOUBLE = 'double'


# unknown enum values are only logged, ranges are enforced
DEFAULT_COMPLIANCE = Compliant.RANGE | Compliant.INHERIT
