"""
similarity_md: near-duplicate section detection for Markdown corpora

Pipeline: Load -> Tokenize -> Index -> Score -> Cluster -> Rank -> Emit
"""

from similarity_md.model.schemas import DetectionOptions, Document, Report, SourceChunk
from similarity_md.orchestrator.pipeline import DuplicateDetector

__version__ = "0.1.0"

__all__ = [
    "DetectionOptions",
    "Document",
    "DuplicateDetector",
    "Report",
    "SourceChunk",
]
