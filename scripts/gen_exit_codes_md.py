#!/usr/bin/env python3
"""Write (or, with --check, compare) docs/exit_codes.md against src/barotool/errors.py."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO = Path(__file__).resolve().parents[1]
DOC = REPO / "docs" / "exit_codes.md"


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("--check", action="store_true", help="Fail (exit 1) if the doc is stale")
    ns = ap.parse_args(argv)

    sys.path.insert(0, str(REPO / "src"))
    from barotool.errors import render_exit_codes_markdown  # noqa: E402

    md = render_exit_codes_markdown()
    if ns.check:
        current = DOC.read_text(encoding="utf-8") if DOC.is_file() else ""
        if current != md:
            print(f"[barotool] {DOC} is stale; run scripts/gen_exit_codes_md.py", file=sys.stderr)
            return 1
        print("OK")
        return 0

    DOC.parent.mkdir(parents=True, exist_ok=True)
    DOC.write_text(md, encoding="utf-8")
    print(f"[barotool] wrote {DOC}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
