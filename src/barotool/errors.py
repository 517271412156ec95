"""Typed errors for barotool.

Single source of truth for exit codes lives here.

Policy:
- Errors are small and boring.
- The CLI maps errors to stable exit codes (see EXIT_* constants).
- docs/exit_codes.md is generated from this module (scripts/gen_exit_codes_md.py).
- A requested member that is not in the archive is NOT an error.
"""

from __future__ import annotations

from dataclasses import dataclass

# -------------------------
# Exit codes (single source)
# -------------------------

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_GENERIC = 10
EXIT_TRUNCATED = 11
EXIT_FORMAT = 12
EXIT_OVERSIZE = 13
EXIT_IO = 14


@dataclass(frozen=True, slots=True)
class ExitCodeInfo:
    code: int
    name: str
    description: str


EXIT_CODES: tuple[ExitCodeInfo, ...] = (
    ExitCodeInfo(EXIT_OK, "OK", "Success (including unpack with some requested members missing)"),
    ExitCodeInfo(EXIT_USAGE, "USAGE", "Usage/config error (invalid args, invalid pack spec, etc.)"),
    ExitCodeInfo(EXIT_GENERIC, "GENERIC", "Generic failure (unexpected error)"),
    ExitCodeInfo(EXIT_TRUNCATED, "TRUNCATED", "Archive ends in the middle of a field or member body"),
    ExitCodeInfo(EXIT_FORMAT, "FORMAT", "Malformed archive (bad UTF-16 name, unknown compression, unsafe name)"),
    ExitCodeInfo(EXIT_OVERSIZE, "OVERSIZE", "Member name or body does not fit a 32-bit length field"),
    ExitCodeInfo(EXIT_IO, "IO", "Underlying I/O failure (missing file, disk error, ...)"),
)

# For convenience (fast lookup)
_EXIT_CODE_BY_CODE: dict[int, ExitCodeInfo] = {e.code: e for e in EXIT_CODES}


def exit_code_info(code: int) -> ExitCodeInfo | None:
    return _EXIT_CODE_BY_CODE.get(int(code))


def render_exit_codes_markdown() -> str:
    """Render docs/exit_codes.md content."""
    lines: list[str] = []
    lines.append("# Exit codes\n")
    lines.append("> GENERATED FILE: do not edit manually.\n")
    lines.append("> Source of truth: `src/barotool/errors.py` (EXIT_CODES).\n")
    lines.append("> Regenerate: `python scripts/gen_exit_codes_md.py`.\n\n")
    lines.append("These are the CLI exit codes you can rely on.\n\n")
    lines.append("| Code | Name | Meaning |\n")
    lines.append("|---:|---|---|\n")
    for e in sorted(EXIT_CODES, key=lambda x: x.code):
        lines.append(f"| {e.code} | `{e.name}` | {e.description} |\n")
    lines.append("\n## Notes\n")
    lines.append("- Internal errors extend `BarotoolError` and carry an `exit_code`.\n")
    lines.append("- `--debug` re-raises errors to show full stack traces.\n")
    lines.append(
        "- `unpack-save` reports requested members that were not found on stderr and still exits 0.\n"
    )
    return "".join(lines)


# ---------------
# Typed exceptions
# ---------------


class BarotoolError(Exception):
    """Base error for barotool."""

    exit_code: int = EXIT_GENERIC


class UsageError(BarotoolError):
    exit_code = EXIT_USAGE


class CorruptArchive(BarotoolError):
    exit_code = EXIT_FORMAT


class Truncated(CorruptArchive):
    """The stream ended inside a length field, a name or a member body."""

    exit_code = EXIT_TRUNCATED


class FormatError(CorruptArchive):
    pass


class Oversize(BarotoolError):
    exit_code = EXIT_OVERSIZE


class OversizeName(Oversize):
    pass


class OversizeBody(Oversize):
    pass
