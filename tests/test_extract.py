from __future__ import annotations

import gzip
import struct
from pathlib import Path

import pytest


def _make_archive(tmp_path: Path, members: dict[str, bytes]) -> Path:
    from barotool.engine.archive import ArchiveWriter

    out = tmp_path / "campaign.save"
    with ArchiveWriter.create(out) as w:
        for name, data in members.items():
            w.add_bytes(name, data)
    return out


def _files_under(root: Path) -> dict[str, bytes]:
    return {
        str(p.relative_to(root)).replace("\\", "/"): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


def test_list_members_reports_all_three(tmp_path: Path) -> None:
    from barotool.engine.archive import MemberInfo
    from barotool.extract import list_members

    arch = _make_archive(tmp_path, {"A": b"a" * 10, "B": b"b" * 70_000, "C": b""})
    assert list_members(arch) == [MemberInfo("A", 10), MemberInfo("B", 70_000), MemberInfo("C", 0)]


def test_unpack_all_roundtrips_bytes(tmp_path: Path) -> None:
    from barotool.extract import unpack

    members = {
        "gamesession.xml": b"<Gamesession savetime=\"0\"/>\n",
        "Humpback.sub": bytes(range(256)) * 100,
        "empty.bin": b"",
    }
    arch = _make_archive(tmp_path, members)
    out = tmp_path / "out"
    out.mkdir()

    missing = unpack(arch, set(), out)
    assert missing == set()
    assert _files_under(out) == members


def test_unpack_selection_extracts_only_selected(tmp_path: Path) -> None:
    from barotool.extract import unpack

    arch = _make_archive(tmp_path, {"A": b"aaa", "B": b"bbb", "C": b"ccc"})
    out = tmp_path / "out"
    out.mkdir()

    selection = {"A", "C"}
    residual = unpack(arch, selection, out)
    assert residual is selection
    assert selection == set()
    assert _files_under(out) == {"A": b"aaa", "C": b"ccc"}


def test_unpack_missing_name_is_reported_not_raised(tmp_path: Path) -> None:
    from barotool.extract import unpack

    arch = _make_archive(tmp_path, {"A": b"a", "B": b"b"})
    out = tmp_path / "out"
    out.mkdir()

    assert unpack(arch, {"Z"}, out) == {"Z"}
    assert _files_under(out) == {}


def test_unpack_creates_subdirectories(tmp_path: Path) -> None:
    from barotool.extract import unpack

    arch = _make_archive(tmp_path, {"Submarines/Orca.sub": b"orca", "a\\b.txt": b"ab"})
    out = tmp_path / "out"
    unpack(arch, set(), out)
    assert _files_under(out) == {"Submarines/Orca.sub": b"orca", "a/b.txt": b"ab"}


@pytest.mark.parametrize("bad", ["../escape.txt", "/etc/passwd", "a/../../b", "C:\\x.txt", "", "a\x00b"])
def test_unpack_refuses_unsafe_names(tmp_path: Path, bad: str) -> None:
    from barotool.errors import FormatError
    from barotool.extract import unpack

    arch = _make_archive(tmp_path, {bad: b"nope"})
    out = tmp_path / "deep" / "out"
    out.mkdir(parents=True)
    with pytest.raises(FormatError):
        unpack(arch, set(), out)
    assert _files_under(tmp_path / "deep") == {}


def test_unpack_skipped_unsafe_name_is_harmless(tmp_path: Path) -> None:
    from barotool.extract import unpack

    arch = _make_archive(tmp_path, {"../evil": b"x", "good": b"y"})
    out = tmp_path / "out"
    out.mkdir()
    assert unpack(arch, {"good"}, out) == set()
    assert _files_under(out) == {"good": b"y"}


def test_unpack_truncated_member_raises(tmp_path: Path) -> None:
    from barotool.errors import Truncated
    from barotool.extract import unpack

    name = "A".encode("utf-16-le")
    raw = struct.pack("<I", 1) + name + struct.pack("<I", 100) + b"only-some"
    arch = tmp_path / "t.save"
    arch.write_bytes(gzip.compress(raw))
    out = tmp_path / "out"
    out.mkdir()
    with pytest.raises(Truncated):
        unpack(arch, set(), out)


def test_verify_archive_counts_and_detects_truncation(tmp_path: Path) -> None:
    from barotool.errors import Truncated
    from barotool.verify import verify_archive

    arch = _make_archive(tmp_path, {"A": b"a" * 5, "B": b"b" * 300_000})
    st = verify_archive(arch)
    assert (st.codec, st.members, st.body_bytes) == ("gzip", 2, 300_005)

    raw = gzip.decompress(arch.read_bytes())
    bad = tmp_path / "bad.save"
    bad.write_bytes(gzip.compress(raw[:-1]))
    with pytest.raises(Truncated):
        verify_archive(bad)
