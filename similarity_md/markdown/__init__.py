from similarity_md.markdown.discovery import discover_files
from similarity_md.markdown.parser import MarkdownExtractor, split_sections

__all__ = [
    "discover_files",
    "MarkdownExtractor",
    "split_sections",
]
