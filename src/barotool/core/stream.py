"""Compressed byte streams opened against a file.

The archive codec only sees two small objects:

  ReadStream.read(n)   -> bytes   (b"" only at the true end of data)
  WriteStream.write(b)
  WriteStream.finish()            (flush trailer + fsync)

The transform under them (gzip or zstd) is picked by id on write and
sniffed from the leading magic bytes on read.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import BinaryIO

from barotool.core.codec_gzip import CodecGzip
from barotool.core.codec_zstd import CodecZstd
from barotool.errors import FormatError, Truncated, UsageError

DEFAULT_CODEC_ID = "gzip"
CODEC_IDS: tuple[str, ...] = ("gzip", "zstd")


def codec_by_id(codec_id: str, level: int | None = None) -> CodecGzip | CodecZstd:
    cid = str(codec_id).strip().lower()
    if cid == "gzip":
        return CodecGzip() if level is None else CodecGzip(level=int(level))
    if cid == "zstd":
        return CodecZstd() if level is None else CodecZstd(level=int(level))
    raise UsageError(f"unknown codec: {codec_id!r} (expected one of: {', '.join(CODEC_IDS)})")


def sniff_codec(head: bytes) -> CodecGzip | CodecZstd:
    """Pick the transform from the first bytes of a file.

    An empty file is read as gzip: GzipFile yields no data for it, which
    the archive layer sees as an archive with zero members.
    """
    if not head or head[:2] == CodecGzip.magic:
        return CodecGzip()
    if head[:4] == CodecZstd.magic:
        return CodecZstd()
    raise FormatError(f"unknown compression magic: {head[:4].hex()}")


class ReadStream:
    def __init__(self, fp: BinaryIO, zfp: BinaryIO, codec_id: str):
        self._fp = fp
        self._zfp = zfp
        self.codec_id = codec_id

    def read(self, n: int) -> bytes:
        # A zero-length request must not reach the decompressor: some
        # transforms report b"" for it, which reads like end of data.
        if n <= 0:
            return b""
        try:
            return self._zfp.read(n)
        except EOFError as err:
            raise Truncated(f"{self.codec_id}: compressed stream ended before its end marker") from err

    def close(self) -> None:
        try:
            self._zfp.close()
        finally:
            self._fp.close()


class WriteStream:
    def __init__(self, fp: BinaryIO, zfp: BinaryIO, codec: CodecGzip | CodecZstd):
        self._fp = fp
        self._zfp = zfp
        self._codec = codec
        self._finished = False

    @property
    def codec_id(self) -> str:
        return self._codec.codec_id

    def write(self, data: bytes) -> None:
        if self._finished:
            raise ValueError("WriteStream: write after finish")
        self._zfp.write(data)

    def finish(self) -> None:
        """Flush the trailing compressed frame and sync the file to disk."""
        if self._finished:
            return
        self._codec.finish_write(self._zfp)
        self._fp.flush()
        os.fsync(self._fp.fileno())
        self._finished = True

    def close(self) -> None:
        # Without finish() the output is left incomplete on purpose:
        # no trailer is written for an aborted pack.
        self._fp.close()


def open_read_stream(path: Path | str) -> ReadStream:
    fp = Path(path).open("rb")
    try:
        codec = sniff_codec(fp.peek(4)[:4])
        zfp = codec.open_read(fp)
    except BaseException:
        fp.close()
        raise
    return ReadStream(fp, zfp, codec.codec_id)


def open_write_stream(path: Path | str, codec: CodecGzip | CodecZstd | None = None) -> WriteStream:
    if codec is None:
        codec = codec_by_id(DEFAULT_CODEC_ID)
    fp = Path(path).open("wb")
    try:
        zfp = codec.open_write(fp)
    except BaseException:
        fp.close()
        raise
    return WriteStream(fp, zfp, codec)
