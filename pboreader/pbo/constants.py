"""PBO format constants, flags, and record sizes."""
from __future__ import annotations

import struct

# Header record flags ("mime types" on the BI wiki)
FLAG_UNCOMPRESSED = 0x00000000
FLAG_PACKED = 0x43707273        # 'Cprs'
FLAG_PRODUCT_ENTRY = 0x56657273  # 'Vers' - resistance/elite/arma
FLAG_ENCRYPTED = 0x456E6372     # 'Encr' - VBS only, never decoded

# name(cstring) + flag(4) + unpacked(4) + reserved(4) + timestamp(4) + datasize(4)
ENTRY_FIELDS = struct.Struct("<5I")
ENTRY_FIELDS_SIZE = ENTRY_FIELDS.size

FLAG_NAMES: dict[int, str] = {
    FLAG_UNCOMPRESSED: "Uncompressed",
    FLAG_PACKED: "Packed",
    FLAG_PRODUCT_ENTRY: "ProductEntry",
    FLAG_ENCRYPTED: "Encrypted",
}


def flag_name(value: int) -> str:
    """Return human-readable name for a flag value, or its hex form for unknowns."""
    return FLAG_NAMES.get(value, f"0x{value:08X}")
