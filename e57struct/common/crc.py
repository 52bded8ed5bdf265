'''
We are implementing fields to handle CRC calculation.
'''
from typing import List

from .. import fields


CRC32C_POLYNOMIAL = 0x82F63B78
CRC32C_INIT = 0xFFFFFFFF


def _build_table(polynomial: int) -> List[int]:
    table = []
    for i in range(256):
        crc = i
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ polynomial
            else:
                crc >>= 1
        table.append(crc & 0xFFFFFFFF)

    return table


_CRC32C_TABLE = _build_table(CRC32C_POLYNOMIAL)


def crc32c_update(crc: int, data: bytes) -> int:
    for byte in data:
        crc = _CRC32C_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc & 0xFFFFFFFF


def crc32c(data: bytes) -> int:
    '''CRC-32C (Castagnoli) with pre and post conditioning.

    >>> hex(crc32c(b'123456789'))
    '0xe3069283'
    '''
    crc = crc32c_update(CRC32C_INIT, data)
    return (~crc) & 0xFFFFFFFF


# FIXME: if you don't pack the fields the CRC is undefined
#        maybe add a relationship between them
class CRCField(fields.StructField):
    """CRC-32C computed over the raw data of the sibling fields listed in "fields".

    The 32-bit CRC register is initialized to all 1's, the data is processed from
    the least significant bit of each byte and at the end the register is inverted.
    The generator polynomial is the Castagnoli one (reflected 0x82F63B78), the
    same used by iSCSI.

    The byte order of the stored value depends on the "endianess" argument.
    """

    def __init__(self, fields, *args, **kwargs):
        super().__init__('I', *args, **kwargs)
        self.fields = fields

    def calculate(self):
        value = b''
        for field_name in self.fields:
            field = getattr(self.father, field_name)
            value += field.raw

        return crc32c(value)

    def is_valid(self):
        return self.calculate() == self.value

    def _update_value(self):
        self.value = self.calculate()
