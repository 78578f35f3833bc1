"""
pboreader: read Bohemia Interactive PBO archives (OFP / Arma).

Format: a header table of (name, flag, sizes, timestamp) records ended by
an all-zero record, optionally led by a product record carrying key/value
fields, then every file's data concatenated in header order.
"""

from pboreader.pbo.constants import FLAG_PACKED, FLAG_PRODUCT_ENTRY, FLAG_UNCOMPRESSED
from pboreader.pbo.content import EntryContent
from pboreader.pbo.entry import Entry, HeaderExtension
from pboreader.pbo.errors import (
    CorruptHeader,
    InvalidSeek,
    IoFailure,
    PboError,
    UnsupportedFeature,
)
from pboreader.pbo.reader import PboReader, open

__version__ = "0.1.0"

__all__ = [
    "CorruptHeader",
    "Entry",
    "EntryContent",
    "FLAG_PACKED",
    "FLAG_PRODUCT_ENTRY",
    "FLAG_UNCOMPRESSED",
    "HeaderExtension",
    "InvalidSeek",
    "IoFailure",
    "PboError",
    "PboReader",
    "UnsupportedFeature",
    "open",
]
