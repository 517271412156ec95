from __future__ import annotations

import gzip
from typing import BinaryIO


class CodecGzip:
    """gzip/DEFLATE stream transform (no external deps).

    This is the transform the game itself uses for .save files.
    """

    codec_id = "gzip"
    magic = b"\x1f\x8b"

    def __init__(self, level: int = 9):
        if not (0 <= level <= 9):
            raise ValueError(f"gzip level must be 0..9, got {level}")
        self.level = level

    def open_read(self, fp: BinaryIO) -> BinaryIO:
        return gzip.GzipFile(fileobj=fp, mode="rb")

    def open_write(self, fp: BinaryIO) -> BinaryIO:
        # filename="" keeps the destination name out of the gzip header
        return gzip.GzipFile(filename="", fileobj=fp, mode="wb", compresslevel=self.level, mtime=0)

    def finish_write(self, zfp: BinaryIO) -> None:
        # writes CRC32 + ISIZE trailer, leaves fp open
        zfp.close()
