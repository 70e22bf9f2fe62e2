"""
Command-line utilities built on the nitfhead readers.
"""

__classification__ = "UNCLASSIFIED"
