from construct import *

HEADER_SIZE = 12

MTFCount = Int32ul

MTFEntry = Struct(
    "filename_length"   / Int32ul,
    "filename"          / Bytes(this.filename_length),
    "data_offset"       / Int32ul,
    "decompressed_size" / Int32ul,
)

# 0xAE or 0xAF followed by 0xBE marks a compressed entry
CompressedHeader = Struct(
    "magic1"            / Int8ul,
    "magic2"            / Int8ul,
    "unknown"           / Int16ul,
    "compressed_size"   / Int32ul,
    "decompressed_size" / Int32ul,
)

MAGIC1 = (0xAE, 0xAF)
MAGIC2 = 0xBE

__all__ = ["MTFCount", "MTFEntry", "CompressedHeader", "HEADER_SIZE", "MAGIC1", "MAGIC2"]
