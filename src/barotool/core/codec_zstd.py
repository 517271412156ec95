from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

try:
    import zstandard as zstd  # type: ignore
except Exception:  # pragma: no cover
    zstd = None

READ_SIZE = 128 * 1024


class ZstdFrameReader:
    """Decompress a sequence of zstd frames from fp, read(n) style.

    The source running out inside a frame raises EOFError (as gzip does),
    so a cut file never looks like a shorter, valid stream.
    """

    def __init__(self, fp: BinaryIO, read_size: int = READ_SIZE):
        self._fp = fp
        self._read_size = read_size
        self._dctx = zstd.ZstdDecompressor()
        # decompressobj of the frame in progress; None between frames
        self._dobj = None
        self._buf = bytearray()
        self._eof = False

    def _feed(self, data: bytes) -> None:
        while data:
            if self._dobj is None:
                self._dobj = self._dctx.decompressobj()
            self._buf += self._dobj.decompress(data)
            if self._dobj.eof:
                data = self._dobj.unused_data
                self._dobj = None
            else:
                data = b""

    def read(self, n: int = -1) -> bytes:
        while not self._eof and (n < 0 or len(self._buf) < n):
            chunk = self._fp.read(self._read_size)
            if not chunk:
                if self._dobj is not None:
                    raise EOFError("zstd: source ended inside a frame")
                self._eof = True
                break
            self._feed(chunk)
        if n < 0:
            n = len(self._buf)
        out = bytes(self._buf[:n])
        del self._buf[:n]
        return out

    def close(self) -> None:
        self._buf.clear()


@dataclass
class CodecZstd:
    """
    zstd stream transform.

    Not understood by the game: useful for keeping large backups of saves
    around. The archive framing inside is identical to the gzip one.
    """

    level: int = 19
    codec_id: str = "zstd"
    magic: bytes = b"\x28\xb5\x2f\xfd"

    def _require(self) -> None:
        if zstd is None:
            raise RuntimeError(
                "Module 'zstandard' not available. Install it with: python3 -m pip install zstandard"
            )

    def open_read(self, fp: BinaryIO) -> ZstdFrameReader:
        self._require()
        return ZstdFrameReader(fp)

    def open_write(self, fp: BinaryIO) -> BinaryIO:
        self._require()
        if not (1 <= int(self.level) <= 22):
            raise ValueError(f"zstd level must be 1..22, got {self.level}")
        c = zstd.ZstdCompressor(level=int(self.level))
        return c.stream_writer(fp, closefd=False)

    def finish_write(self, zfp: BinaryIO) -> None:
        # close() ends the frame; closefd=False keeps fp open for fsync
        zfp.close()
