"""Binary format constants for RPak v8 pack files and starpak stream files."""

from __future__ import annotations

import struct

# Pack file ------------------------------------------------------------------
RPAK_MAGIC = 0x6B615052  # 'RPak'
RPAK_VERSION = 8

HEADER_FORMAT = "<IH2sQ8sQQ8sQQ8sHHHHHHIIII28s"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)  # 128

SEGMENT_FORMAT = "<IIQ"
SEGMENT_SIZE = struct.calcsize(SEGMENT_FORMAT)  # 16
PAGE_FORMAT = "<III"
PAGE_SIZE = struct.calcsize(PAGE_FORMAT)  # 12
DESCRIPTOR_FORMAT = "<II"
DESCRIPTOR_SIZE = struct.calcsize(DESCRIPTOR_FORMAT)  # 8
RELATION_FORMAT = "<I"
RELATION_SIZE = struct.calcsize(RELATION_FORMAT)  # 4
ASSET_ENTRY_FORMAT = "<Q8sIIIIqqHHIIIIIII"
ASSET_ENTRY_SIZE = struct.calcsize(ASSET_ENTRY_FORMAT)  # 80

# In-page pointer (page index, offset) as embedded by encoders.
PAGE_PTR_FORMAT = "<II"
PAGE_PTR_SIZE = struct.calcsize(PAGE_PTR_FORMAT)  # 8

# Header fields stored as u16.
MAX_U16 = 0xFFFF
MAX_U32 = 0xFFFFFFFF
NO_PAGE = -1
NO_STREAM_OFFSET = -1

DEFAULT_PAK_NAME = "new"
DEFAULT_OUTPUT_DIR = "build/"
PAK_EXTENSION = ".rpak"

# Stream (starpak) file ------------------------------------------------------
STREAM_MAGIC = 0x6B505253  # 'SRPk'
STREAM_VERSION = 1
STREAM_ALIGNMENT = 4096
STREAM_PREAMBLE_FORMAT = "<II"
STREAM_PADDING_BYTE = 0xCB
STREAM_PADDING_SIZE = STREAM_ALIGNMENT - struct.calcsize(
    STREAM_PREAMBLE_FORMAT
)  # 4088
STREAM_TRAILER_ENTRY_FORMAT = "<QQ"
STREAM_TRAILER_ENTRY_SIZE = struct.calcsize(STREAM_TRAILER_ENTRY_FORMAT)
STREAM_COUNT_FORMAT = "<Q"
STREAM_COUNT_SIZE = struct.calcsize(STREAM_COUNT_FORMAT)

# FILETIME epoch (1601-01-01) to unix epoch, in seconds.
FILETIME_UNIX_OFFSET = 11644473600
FILETIME_TICKS_PER_SECOND = 10_000_000
