"""
Selective file-tree copy.

Filters a selection of paths by type and date, copies the survivors to a
target directory on a background worker, and optionally zips the result.
"""

__version__ = "1.0.0"
