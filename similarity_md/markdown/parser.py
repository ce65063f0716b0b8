"""Markdown section extraction.

Splits a Markdown file into chunks at ATX headings. Each chunk holds the
body under one heading; line numbers are 1-based and inclusive.
"""

import re
from pathlib import Path
from typing import List, Optional

from similarity_md.model.schemas import Document, SourceChunk
from similarity_md.utils.errors import CollaboratorIOError

# Configuration
DEFAULT_HEADING_LEVEL = 6  # Split at headings up to this level (1 = only "#")

HEADING_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
FRONT_MATTER_END = ("---", "...")


def split_sections(text: str, max_level: int = DEFAULT_HEADING_LEVEL) -> List[SourceChunk]:
    """Split Markdown text into sections.

    Rules:
    1. YAML front matter at the top of the file is skipped
    2. Headings inside fenced code blocks are ignored
    3. Text before the first heading forms an untitled section
    4. Headings deeper than max_level stay inside their parent section

    Args:
        text: Markdown source
        max_level: Deepest heading level that starts a new section

    Returns:
        List of SourceChunk in document order (body text without the heading line)
    """
    lines = text.splitlines()
    first = _skip_front_matter(lines)

    sections: List[SourceChunk] = []
    title = ""
    start = first  # index of the heading line (or first line for untitled)
    body: List[str] = []
    fence: Optional[str] = None
    has_heading = False

    def close() -> None:
        # Trailing blank lines do not belong to the section
        while body and not body[-1].strip():
            body.pop()
        if not has_heading and not body:
            return
        end_line = start + 1 + len(body) if has_heading else start + len(body)
        sections.append(SourceChunk(
            text="\n".join(body),
            start_line=start + 1,
            end_line=max(end_line, start + 1),
            title=title,
        ))

    for index in range(first, len(lines)):
        line = lines[index]

        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif marker[0] == fence[0] and len(marker) >= len(fence):
                fence = None
            body.append(line)
            continue

        heading = HEADING_RE.match(line) if fence is None else None
        if heading and len(heading.group(1)) <= max_level:
            close()
            title = (heading.group(2) or "").strip()
            start = index
            body = []
            has_heading = True
            continue

        if not has_heading and not body and not line.strip():
            # Leading blank lines before untitled content
            start = index + 1
            continue
        body.append(line)

    close()
    return sections


def _skip_front_matter(lines: List[str]) -> int:
    if not lines or lines[0].strip() != "---":
        return 0
    for index in range(1, len(lines)):
        if lines[index].strip() in FRONT_MATTER_END:
            return index + 1
    return 0


class MarkdownExtractor:
    """Chunk extractor for Markdown files."""

    def __init__(self, max_heading_level: int = DEFAULT_HEADING_LEVEL, encoding: str = "utf-8"):
        self.max_heading_level = max_heading_level
        self.encoding = encoding

    def __call__(self, path: str) -> Document:
        """Read and split one file.

        Raises:
            CollaboratorIOError: If the file cannot be read or decoded
        """
        try:
            text = Path(path).read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise CollaboratorIOError(str(path), e) from e
        return Document(path=str(path), chunks=tuple(split_sections(text, self.max_heading_level)))
