"""
The NITF file header element definitions.
"""

__classification__ = "UNCLASSIFIED"
