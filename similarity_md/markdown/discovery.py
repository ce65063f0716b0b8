"""Markdown file discovery with exclude-glob filtering."""

import fnmatch
import logging
from pathlib import Path
from typing import Iterable, List, Sequence

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = (".md", ".markdown")


def is_excluded(path: Path, patterns: Sequence[str]) -> bool:
    """True if the path (or any of its parts) matches an exclude glob."""
    posix = path.as_posix()
    for pattern in patterns:
        if fnmatch.fnmatch(posix, pattern) or fnmatch.fnmatch(path.name, pattern):
            return True
        if any(fnmatch.fnmatch(part, pattern) for part in path.parts):
            return True
    return False


def discover_files(
    paths: Iterable[str],
    extensions: Sequence[str] = MARKDOWN_EXTENSIONS,
    exclude: Sequence[str] = (),
) -> List[str]:
    """Expand files and directories into a sorted, de-duplicated file list.

    Directories are walked recursively; hidden entries (starting with ".")
    below a given directory are skipped. Explicitly named files are kept
    regardless of extension.

    Args:
        paths: Files and/or directories
        extensions: File suffixes to collect from directories
        exclude: Glob patterns matched against the path and each path part

    Returns:
        Sorted list of file paths
    """
    suffixes = tuple(ext.lower() for ext in extensions)
    found = set()

    for raw in paths:
        root = Path(raw)
        if root.is_file():
            if not is_excluded(root, exclude):
                found.add(root.as_posix())
            continue
        if not root.is_dir():
            logger.warning("Skipping missing path: %s", raw)
            continue

        for candidate in root.rglob("*"):
            relative = candidate.relative_to(root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if not candidate.is_file() or candidate.suffix.lower() not in suffixes:
                continue
            if is_excluded(candidate, exclude):
                continue
            found.add(candidate.as_posix())

    files = sorted(found)
    logger.debug("Discovered %d files", len(files))
    return files
