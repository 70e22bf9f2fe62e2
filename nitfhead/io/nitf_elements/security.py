"""
The NITF file security tag layouts.
"""

__classification__ = "UNCLASSIFIED"
__author__ = "nitfhead contributors"

from .base import FieldSpec


#############
# NITF 2.1 version

NITF_SECURITY_FIELDS = (
    FieldSpec('FSCLAS', 1),
    FieldSpec('FSCLSY', 2),
    FieldSpec('FSCODE', 11),
    FieldSpec('FSCTLH', 2),
    FieldSpec('FSREL', 20),
    FieldSpec('FSDCTP', 2),
    FieldSpec('FSDCDT', 8),
    FieldSpec('FSDCXM', 4),
    FieldSpec('FSDG', 1),
    FieldSpec('FSDGDT', 8),
    FieldSpec('FSCLTX', 43),
    FieldSpec('FSCATP', 1),
    FieldSpec('FSCAUT', 40),
    FieldSpec('FSCRSN', 1),
    FieldSpec('FSSRDT', 8),
    FieldSpec('FSCTLN', 15))
"""
The file security fields for NITF version 2.1 - see MIL-STD-2500C Table A-1.
"""


#############
# NITF 2.0 version

DOWNGRADE_EVENT = b'999998'
"""
The FSDWNG value indicating that the downgrade event field FSDEVT follows.
"""

NITF_SECURITY_FIELDS0 = (
    FieldSpec('FSCLAS', 1),
    FieldSpec('FSCODE', 40),
    FieldSpec('FSCTLH', 40),
    FieldSpec('FSREL', 40),
    FieldSpec('FSCAUT', 20),
    FieldSpec('FSCTLN', 20),
    FieldSpec('FSDWNG', 6),
    FieldSpec('FSDEVT', 40, depends_on='FSDWNG', values=(DOWNGRADE_EVENT, )))
"""
The file security fields for NITF version 2.0 - see MIL-STD-2500A.
"""
