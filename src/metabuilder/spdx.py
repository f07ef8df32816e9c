"""SPDX license header scanning."""

from __future__ import annotations

from pathlib import Path

SPDX_MARKER = "SPDX-License-Identifier"

SOURCE_SUFFIXES = frozenset({
    ".c", ".cc", ".cpp", ".cs", ".go", ".h", ".hpp", ".java", ".js",
    ".kt", ".m", ".php", ".py", ".rs", ".sh", ".swift", ".ts",
})

# Only the head of a file is searched for the header.
HEADER_BYTES = 2048


def iter_source_files(root: Path) -> list[Path]:
    """Source files under ``root``, skipping hidden and report directories."""
    files = []
    for path in root.rglob("*"):
        relative = path.relative_to(root)
        if any(part.startswith(".") for part in relative.parts):
            continue
        if relative.parts and relative.parts[0] == "reports":
            continue
        if path.is_file() and path.suffix.lower() in SOURCE_SUFFIXES:
            files.append(path)
    return sorted(files)


def has_spdx_header(path: Path) -> bool:
    try:
        with path.open(encoding="utf-8", errors="ignore") as f:
            head = f.read(HEADER_BYTES)
    except OSError:
        return False
    return SPDX_MARKER in head


def missing_spdx_headers(root: Path) -> list[str]:
    """Relative paths of source files without an SPDX identifier.

    Args:
        root: Directory to scan

    Returns:
        Sorted POSIX-style paths relative to ``root``
    """
    if not root.is_dir():
        return []
    return [
        path.relative_to(root).as_posix()
        for path in iter_source_files(root)
        if not has_spdx_header(path)
    ]
