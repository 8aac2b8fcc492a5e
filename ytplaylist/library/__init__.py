"""
Local music directory: naming contract, embedded tags, cover images,
and the scanner that builds the on-disk index.
"""

from ytplaylist.library.naming import (
    ParsedName,
    build_filename,
    parse_filename,
    split_artists,
)
from ytplaylist.library.scanner import LocalEntry, ScanResult, scan_library
from ytplaylist.library.tags import TagFile

__all__ = [
    "ParsedName",
    "build_filename",
    "parse_filename",
    "split_artists",
    "LocalEntry",
    "ScanResult",
    "scan_library",
    "TagFile",
]
