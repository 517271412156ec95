"""Save archive codec (reader, member handle, writer).

Layout (little endian, inside the compression transform):

  Archive := Member*
  Member  := NAME_LEN(u32) NAME(UTF-16LE, NAME_LEN code units)
             BODY_LEN(u32) BODY(BODY_LEN bytes)

There is no magic, no index and no trailer: the archive ends when the
decompressed stream ends exactly on a NAME_LEN boundary. Reading is
strictly forward-only.

The reader hands out one Member at a time. A Member borrows the reader's
cursor; calling ArchiveReader.next() invalidates it and skips whatever part
of its body was not read, so callers that only want names and sizes never
have to drain bodies themselves.
"""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator

from barotool.core.codec_gzip import CodecGzip
from barotool.core.codec_zstd import CodecZstd
from barotool.core.stream import ReadStream, WriteStream, open_read_stream, open_write_stream
from barotool.errors import FormatError, OversizeBody, OversizeName, Truncated

_U32 = struct.Struct("<I")
MAX_U32 = 0xFFFFFFFF

# Bounded buffers: never sized after a member.
SKIP_CHUNK_SIZE = 64 * 1024
COPY_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class MemberInfo:
    name: str
    size: int


def encode_member_name(name: str) -> bytes:
    """Return NAME_LEN + NAME for a member name."""
    try:
        units = str(name).encode("utf-16-le")
    except UnicodeEncodeError as err:
        raise FormatError(f"member name is not encodable as UTF-16: {name!r}") from err
    n_units = len(units) // 2
    if n_units > MAX_U32:
        raise OversizeName(f"member name too long: {n_units} UTF-16 code units (max {MAX_U32})")
    return _U32.pack(n_units) + units


def decode_member_name(raw: bytes) -> str:
    try:
        return bytes(raw).decode("utf-16-le")
    except UnicodeDecodeError as err:
        raise FormatError(f"member name is not valid UTF-16: {err}") from err


# -------------------
# Reading
# -------------------


class Member:
    """Cursor into the body of the reader's current member.

    Valid until the next call to ArchiveReader.next() (or close()); after
    that every body access raises RuntimeError.
    """

    def __init__(self, reader: ArchiveReader, name: str, size: int):
        self._reader: ArchiveReader | None = reader
        self._name = name
        self._size = size

    @property
    def name(self) -> str:
        return self._name

    @property
    def size(self) -> int:
        """Declared body size in bytes."""
        return self._size

    @property
    def remaining(self) -> int:
        return self._live_reader()._remaining

    @property
    def info(self) -> MemberInfo:
        return MemberInfo(name=self._name, size=self._size)

    def _live_reader(self) -> ArchiveReader:
        if self._reader is None:
            raise RuntimeError(
                f"member {self._name!r}: handle used after ArchiveReader.next()/close()"
            )
        return self._reader

    def read(self, n: int = -1) -> bytes:
        """Read up to n body bytes (all remaining ones if n < 0).

        Returns b"" once the body is fully consumed. Running out of stream
        before that raises Truncated.
        """
        rd = self._live_reader()
        if n is None or n < 0:
            parts: list[bytes] = []
            while rd._remaining:
                parts.append(rd._read_body(COPY_CHUNK_SIZE))
            return b"".join(parts)
        return rd._read_body(n)

    def readinto(self, buf: bytearray | memoryview) -> int:
        data = self.read(len(buf))
        buf[: len(data)] = data
        return len(data)

    def copy_to(self, fp: BinaryIO, chunk_size: int = COPY_CHUNK_SIZE) -> int:
        """Copy the rest of the body into a writable file object."""
        rd = self._live_reader()
        if chunk_size <= 0:
            chunk_size = COPY_CHUNK_SIZE
        copied = 0
        while rd._remaining:
            chunk = rd._read_body(chunk_size)
            fp.write(chunk)
            copied += len(chunk)
        return copied

    def __repr__(self) -> str:
        state = "live" if self._reader is not None else "stale"
        return f"Member(name={self._name!r}, size={self._size}, {state})"


class ArchiveReader:
    def __init__(self, stream: ReadStream):
        self._stream = stream
        # body bytes of the current member not yet delivered or skipped;
        # zero exactly when the stream sits on a header boundary
        self._remaining = 0
        self._member: Member | None = None
        self._done = False
        self._closed = False

    @classmethod
    def open(cls, path: Path | str) -> ArchiveReader:
        return cls(open_read_stream(path))

    @property
    def codec_id(self) -> str:
        return self._stream.codec_id

    def next(self) -> Member | None:
        """Advance to the next member; None once the archive is exhausted."""
        if self._closed:
            raise ValueError("ArchiveReader: next() on closed reader")
        self._release_member()
        if self._remaining:
            self._skip_rest()
        if self._done:
            return None

        name_len = self._read_u32()
        if name_len is None:
            self._done = True
            return None
        name = decode_member_name(self._read_exact(name_len * 2, what="member name"))

        size = self._read_u32()
        if size is None:
            raise Truncated(f"member {name!r}: archive ends before the body length")
        self._remaining = size
        self._member = Member(self, name, size)
        return self._member

    def __iter__(self) -> Iterator[Member]:
        while True:
            m = self.next()
            if m is None:
                return
            yield m

    def close(self) -> None:
        if self._closed:
            return
        self._release_member()
        self._closed = True
        self._stream.close()

    def __enter__(self) -> ArchiveReader:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- internals --

    def _release_member(self) -> None:
        if self._member is not None:
            self._member._reader = None
            self._member = None

    def _read_body(self, n: int) -> bytes:
        to_read = min(int(n), self._remaining)
        if to_read <= 0:
            return b""
        chunk = self._stream.read(to_read)
        if not chunk:
            raise Truncated(f"archive ends with {self._remaining} body bytes still expected")
        self._remaining -= len(chunk)
        return chunk

    def _skip_rest(self) -> None:
        while self._remaining:
            chunk = self._stream.read(min(SKIP_CHUNK_SIZE, self._remaining))
            if not chunk:
                raise Truncated(f"archive ends with {self._remaining} body bytes still expected")
            self._remaining -= len(chunk)

    def _read_u32(self) -> int | None:
        """Read a length field.

        None on a clean end of stream (zero bytes read). One to three bytes
        followed by end of stream is Truncated.
        """
        buf = bytearray()
        while len(buf) < 4:
            chunk = self._stream.read(4 - len(buf))
            if not chunk:
                if not buf:
                    return None
                raise Truncated(f"archive ends inside a length field ({len(buf)}/4 bytes)")
            buf += chunk
        return _U32.unpack(buf)[0]

    def _read_exact(self, n: int, *, what: str) -> bytes:
        buf = bytearray()
        while len(buf) < n:
            chunk = self._stream.read(min(COPY_CHUNK_SIZE, n - len(buf)))
            if not chunk:
                raise Truncated(f"archive ends inside {what} ({len(buf)}/{n} bytes)")
            buf += chunk
        return bytes(buf)


# -------------------
# Writing
# -------------------


class ArchiveWriter:
    """Serialize members into a compressed stream, in call order.

    Use as a context manager: on a clean exit the transform is finished and
    the file is fsynced; on an exception the file is closed as is.
    """

    def __init__(self, stream: WriteStream):
        self._stream = stream
        self._members: list[MemberInfo] = []

    @classmethod
    def create(cls, path: Path | str, codec: CodecGzip | CodecZstd | None = None) -> ArchiveWriter:
        return cls(open_write_stream(path, codec))

    @property
    def members(self) -> list[MemberInfo]:
        return list(self._members)

    def add_bytes(self, name: str, data: bytes) -> MemberInfo:
        header = encode_member_name(name)
        if len(data) > MAX_U32:
            raise OversizeBody(f"member {name!r} too large: {len(data)} bytes (max {MAX_U32})")
        self._stream.write(header)
        self._stream.write(_U32.pack(len(data)))
        self._stream.write(bytes(data))
        info = MemberInfo(name=str(name), size=len(data))
        self._members.append(info)
        return info

    def add_file(self, name: str, path: Path | str) -> MemberInfo:
        # name and size are validated before anything of this member is written
        header = encode_member_name(name)
        with Path(path).open("rb") as src:
            size = os.fstat(src.fileno()).st_size
            if size > MAX_U32:
                raise OversizeBody(f"{path}: file too large: {size} bytes (max {MAX_U32})")
            self._stream.write(header)
            self._stream.write(_U32.pack(size))
            left = size
            while left:
                chunk = src.read(min(COPY_CHUNK_SIZE, left))
                if not chunk:
                    raise Truncated(f"{path}: file shrank while being packed ({left} bytes missing)")
                self._stream.write(chunk)
                left -= len(chunk)
        info = MemberInfo(name=str(name), size=size)
        self._members.append(info)
        return info

    def finish(self) -> None:
        self._stream.finish()

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> ArchiveWriter:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self.finish()
        finally:
            self.close()


def _source_pair(src: str | Path | tuple[str, str | Path]) -> tuple[str, str | Path]:
    if isinstance(src, tuple):
        name, path = src
        return str(name), path
    return str(src), src


def pack(
    dest: Path | str,
    sources: Iterable[str | Path | tuple[str, str | Path]],
    *,
    codec: CodecGzip | CodecZstd | None = None,
) -> list[MemberInfo]:
    """Pack files into a new archive at dest.

    Each source is either a path (used as the member name too) or a
    (name, path) pair. Members are written in the given order. There is no
    temp file: a failure leaves dest incomplete.
    """
    with ArchiveWriter.create(dest, codec) as w:
        for src in sources:
            name, path = _source_pair(src)
            w.add_file(name, path)
    return w.members
