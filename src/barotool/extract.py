"""List and unpack save archives.

Both walk the archive once, front to back. list never touches a body:
the reader skips it on the next step. unpack copies the selected bodies
to files and lets the reader skip the others.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath, PureWindowsPath

from barotool.engine.archive import ArchiveReader, MemberInfo
from barotool.errors import FormatError


def list_members(archive: Path | str) -> list[MemberInfo]:
    with ArchiveReader.open(archive) as rd:
        return [m.info for m in rd]


def member_output_path(out_dir: Path | str, name: str) -> Path:
    """Map a member name to a path under out_dir.

    Backslashes count as separators. Absolute names, drive letters, NUL
    and '..' segments are refused.
    """
    if "\x00" in name:
        raise FormatError(f"refusing member name with NUL: {name!r}")
    norm = name.replace("\\", "/")
    if norm.startswith("/") or PureWindowsPath(name).drive:
        raise FormatError(f"refusing absolute member name: {name!r}")
    parts = [q for q in PurePosixPath(norm).parts if q not in ("", ".")]
    if any(q == ".." for q in parts):
        raise FormatError(f"refusing member name with '..': {name!r}")
    if not parts:
        raise FormatError(f"empty member name: {name!r}")
    return Path(out_dir).joinpath(*parts)


def unpack(archive: Path | str, selection: set[str], out_dir: Path | str = ".") -> set[str]:
    """Extract members of archive into out_dir.

    An empty selection extracts everything. Otherwise each extracted name is
    removed from selection, so on return it holds only the requested names
    that were never found (also returned, for convenience).
    """
    extract_all = not selection
    with ArchiveReader.open(archive) as rd:
        for m in rd:
            if not extract_all:
                if m.name not in selection:
                    continue
                selection.discard(m.name)
            out_path = member_output_path(out_dir, m.name)
            out_path.parent.mkdir(parents=True, exist_ok=True)
            with out_path.open("wb") as fp:
                m.copy_to(fp)
                fp.flush()
                os.fsync(fp.fileno())
    return selection
