from similarity_md.model.schemas import (
    Chunk,
    ChunkLocation,
    Cluster,
    DetectionOptions,
    Document,
    Report,
    RunStats,
    Script,
    SimilarityPair,
    SourceChunk,
    TokenSequence,
)

__all__ = [
    "Chunk",
    "ChunkLocation",
    "Cluster",
    "DetectionOptions",
    "Document",
    "Report",
    "RunStats",
    "Script",
    "SimilarityPair",
    "SourceChunk",
    "TokenSequence",
]
