"""barotool CLI.

This is the stable CLI entrypoint (console-script: ``barotool``).

UX policy:
  - One subcommand per operation on .save archives.
  - Errors are one line on stderr, prefixed with ``[barotool]``.
  - Requested members missing from an archive are reported, not failed.
"""

from __future__ import annotations

import argparse
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from barotool.errors import EXIT_GENERIC, EXIT_IO, BarotoolError


def _version() -> str:
    try:
        return version("barotool")
    except PackageNotFoundError:
        return "0+unknown"


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--debug", action="store_true", help="Show stack traces on errors")


def _list_save(archive: Path) -> int:
    from barotool.extract import list_members

    for m in list_members(archive):
        print(f"{m.name}\t{m.size}")
    return 0


def _pack_save(
    archive: Path,
    members: list[str],
    *,
    codec_id: str | None,
    level: int | None,
    spec_arg: str | None,
) -> int:
    from barotool.core.stream import DEFAULT_CODEC_ID, codec_by_id
    from barotool.engine.archive import pack
    from barotool.errors import UsageError
    from barotool.pack_spec import load_pack_spec

    spec = load_pack_spec(spec_arg) if spec_arg else None
    # precedence: CLI flags > spec > defaults
    cid = codec_id or (spec.codec if spec else DEFAULT_CODEC_ID)
    lvl = level if level is not None else (spec.level if spec else None)

    sources: list[str | tuple[str, str]] = list(members)
    if spec is not None and spec.members:
        sources.extend(spec.members)
    if not sources:
        raise UsageError("pack-save: no files to pack (pass files or a spec with 'members')")

    pack(archive, sources, codec=codec_by_id(cid, lvl))
    return 0


def _unpack_save(archive: Path, names: list[str], out_dir: Path) -> int:
    from barotool.extract import unpack

    missing = unpack(archive, set(names), out_dir)
    if missing:
        print("[barotool] Some members were not found:", file=sys.stderr)
        for name in sorted(missing):
            print(name, file=sys.stderr)
    return 0


def _verify_save(archive: Path) -> int:
    from barotool.verify import verify_archive

    st = verify_archive(archive)
    print(f"OK {st.members} members, {st.body_bytes} bytes ({st.codec})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="barotool", description="Manipulates Barotrauma save files."
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_l = sub.add_parser("list-save", help="List the files contained within a .save file")
    p_l.add_argument("save", type=Path, help="The .save file to read")
    _add_common_args(p_l)

    p_p = sub.add_parser("pack-save", help="Create a .save file, packing other files into it")
    p_p.add_argument("save", type=Path, help="The .save file to create")
    p_p.add_argument(
        "members",
        nargs="*",
        help="The file(s) to pack into the archive; each path is also the member name",
    )
    p_p.add_argument(
        "--codec",
        default=None,
        choices=["gzip", "zstd"],
        help="Compression transform (default: gzip, the one the game reads)",
    )
    p_p.add_argument("--level", type=int, default=None, help="Compression level")
    p_p.add_argument(
        "--spec",
        default=None,
        help=(
            "Pack spec (JSON). Use '@file.json' to load from file, or pass JSON inline. "
            "Its 'members' are packed after the positional files."
        ),
    )
    _add_common_args(p_p)

    p_u = sub.add_parser("unpack-save", help="Extract files from a .save file")
    p_u.add_argument("save", type=Path, help="The .save file to read")
    p_u.add_argument(
        "members",
        nargs="*",
        help="The file(s) to extract from the archive (omit to extract all members)",
    )
    p_u.add_argument(
        "-C",
        "--directory",
        type=Path,
        default=Path("."),
        help="Extract into this directory (default: current directory)",
    )
    _add_common_args(p_u)

    p_v = sub.add_parser("verify-save", help="Read a .save file end to end and check its framing")
    p_v.add_argument("save", type=Path, help="The .save file to read")
    _add_common_args(p_v)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    p = build_parser()
    ns = p.parse_args(argv)

    try:
        if ns.cmd == "list-save":
            return _list_save(ns.save)
        if ns.cmd == "pack-save":
            return _pack_save(
                ns.save,
                list(ns.members),
                codec_id=ns.codec,
                level=ns.level,
                spec_arg=ns.spec,
            )
        if ns.cmd == "unpack-save":
            return _unpack_save(ns.save, list(ns.members), ns.directory)
        if ns.cmd == "verify-save":
            return _verify_save(ns.save)
        raise AssertionError("unreachable")

    except SystemExit:
        raise
    except BarotoolError as e:
        if getattr(ns, "debug", False):
            raise
        print(f"[barotool] {e}", file=sys.stderr)
        return int(getattr(e, "exit_code", EXIT_GENERIC) or EXIT_GENERIC)
    except OSError as e:
        if getattr(ns, "debug", False):
            raise
        print(f"[barotool] error: {e}", file=sys.stderr)
        return EXIT_IO
    except Exception as e:
        if getattr(ns, "debug", False):
            raise
        print(f"[barotool] error: {e}", file=sys.stderr)
        return EXIT_GENERIC


if __name__ == "__main__":
    raise SystemExit(main())
