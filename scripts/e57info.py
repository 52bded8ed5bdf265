#!/usr/bin/env python3
import sys
import os
import logging

from e57struct.e57 import try_parse
from e57struct.e57.codec import bits_for
from e57struct.exceptions import UnsupportedBitWidthError

if 'DEBUG' in os.environ:
    logging.basicConfig()
    logger = logging.getLogger('e57struct')
    logger.setLevel(logging.DEBUG)


def usage(progname):
    print('usage: %s <e57 file>' % progname)
    sys.exit(1)


def dump_header(hdr):
    print(f'''E57 Header:
  Signature:                         {hdr.signature.value.decode(errors="replace")}
  Version:                           {hdr.version_major.value}.{hdr.version_minor.value}
  File length:                       {hdr.file_length.value} (bytes)
  XML offset:                        0x{hdr.xml_offset.value:x}
  XML length:                        {hdr.xml_length.value} (bytes)
  Page size:                         {hdr.page_size.value} (bytes)''')


def dump_root(root):
    creation = root.creation_date_time.datetime if root.creation_date_time else None
    print(f'''Root:
  Format name:                       {root.format_name}
  GUID:                              {root.guid}
  Version:                           {root.version_major}.{root.version_minor}
  Library version:                   {root.e57_library_version}
  Creation:                          {creation}
  Coordinate metadata:               {root.coordinate_metadata}
  Scans:                             {len(root.data3d)}
  Images:                            {len(root.images2d)}''')


def bit_width(element):
    try:
        return bits_for(element)
    except UnsupportedBitWidthError:
        return '-'


def dump_pose(pose):
    if pose is None:
        return

    r, t = pose.rotation, pose.translation
    print(f'''  Pose:
    rotation (w, x, y, z):           {r.w} {r.x} {r.y} {r.z}
    translation (x, y, z):           {t.x} {t.y} {t.z}''')


def dump_data3d(idx, data3d):
    points = data3d.points
    print(f'''Data3D [{idx}]:
  GUID:                              {data3d.guid}
  Name:                              {data3d.name}
  Sensor:                            {data3d.sensor_vendor} {data3d.sensor_model} {data3d.sensor_serial_number}
  Records:                           {points.record_count}
  Section offset:                    0x{points.file_offset:x}''')
    dump_pose(data3d.pose)

    if data3d.cartesian_bounds:
        b = data3d.cartesian_bounds
        print(f'''  Cartesian bounds:                  x [{b.x_minimum}, {b.x_maximum}] y [{b.y_minimum}, {b.y_maximum}] z [{b.z_minimum}, {b.z_maximum}]''')

    print('''  Fields:
    Name                             Type              Bits''')
    for element in points.prototype:
        print(f'''    {element.name:<32} {element.element_type.value:<17} {bit_width(element)}''')


def dump_image2d(idx, image):
    print(f'''Image2D [{idx}]:
  GUID:                              {image.guid}
  Name:                              {image.name}
  Associated scan:                   {image.associated_data3d_guid}''')
    dump_pose(image.pose)


if __name__ == '__main__':
    if len(sys.argv) < 2:
        usage(sys.argv[0])

    path = sys.argv[1]

    result = try_parse(path, verify_checksums=True)

    if not result.ok:
        print(f'error ({result.kind.name.lower()}): {result.error}')
        sys.exit(2)

    header = result.header

    dump_header(header)
    dump_root(header.e57_root)

    for idx, data3d in enumerate(header.e57_root.data3d):
        dump_data3d(idx, data3d)

    for idx, image in enumerate(header.e57_root.images2d):
        dump_image2d(idx, image)
