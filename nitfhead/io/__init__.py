"""
Readers for the NITF file header and the segment directories it declares.
"""

__classification__ = "UNCLASSIFIED"
