"""Verification helpers.

verify_archive walks the whole archive and reads every body to its
declared end, so truncation anywhere in the stream surfaces as Truncated
(list alone would only notice it when skipping).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from barotool.engine.archive import ArchiveReader

CHUNK_SIZE_DEFAULT = 256 * 1024


@dataclass(frozen=True)
class ArchiveStats:
    codec: str
    members: int
    body_bytes: int


def verify_archive(archive: Path | str, *, chunk_size: int = CHUNK_SIZE_DEFAULT) -> ArchiveStats:
    members = 0
    body_bytes = 0
    with ArchiveReader.open(archive) as rd:
        for m in rd:
            while True:
                chunk = m.read(chunk_size)
                if not chunk:
                    break
                body_bytes += len(chunk)
            members += 1
        codec = rd.codec_id
    return ArchiveStats(codec=codec, members=members, body_bytes=body_bytes)
