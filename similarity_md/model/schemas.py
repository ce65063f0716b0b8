"""
Pydantic schemas for documents, chunks, similarity results and reports.

Every record is frozen: once a chunk has been tokenized nothing downstream
may change it.
"""
from enum import Enum
from typing import Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Script(str, Enum):
    """Tokenization strategy selected from the detected script."""
    SPACED = "spaced"  # whitespace/punctuation word boundaries
    CJK = "cjk"        # needs morphological segmentation


class SourceChunk(BaseModel):
    """A chunk as supplied by the chunk extractor."""
    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Raw chunk text")
    start_line: int = Field(ge=1, description="First line (1-based, inclusive)")
    end_line: int = Field(ge=1, description="Last line (1-based, inclusive)")
    title: str = Field(default="", description="Section heading, if any")


class Document(BaseModel):
    """A source document split into ordered chunks."""
    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Opaque document identifier (usually a file path)")
    chunks: Tuple[SourceChunk, ...] = Field(default=(), description="Chunks in document order")


class TokenSequence(BaseModel):
    """Normalized tokens for one chunk."""
    model_config = ConfigDict(frozen=True)

    tokens: Tuple[str, ...] = Field(default=(), description="Normalized tokens in order")
    script: Script = Field(default=Script.SPACED, description="Detected script tag")
    degraded: bool = Field(default=False, description="Segmentation failed; text kept as one token")
    truncated: bool = Field(default=False, description="Head-truncated to max_chunk_tokens")

    def __len__(self) -> int:
        return len(self.tokens)


class Chunk(BaseModel):
    """A tokenized chunk taking part in a run."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0, description="Run-unique id, assigned in document order")
    path: str = Field(description="Path of the owning document")
    document_index: int = Field(ge=0, description="Index of the owning document in the run")
    text: str = Field(description="Raw chunk text")
    start_line: int = Field(description="First line (1-based)")
    end_line: int = Field(description="Last line (1-based)")
    title: str = Field(default="", description="Section heading")
    tokens: TokenSequence = Field(description="Normalized token sequence")

    @property
    def location(self) -> Tuple[str, int, int]:
        """Sort key used to pick cluster representatives."""
        return (self.path, self.start_line, self.id)


class SimilarityPair(BaseModel):
    """Score for one unordered candidate pair (chunk_a < chunk_b)."""
    model_config = ConfigDict(frozen=True)

    chunk_a: int = Field(ge=0)
    chunk_b: int = Field(ge=0)
    score: float = Field(ge=0.0, le=1.0)


class ChunkLocation(BaseModel):
    """Where a cluster member lives, for reporting."""
    model_config = ConfigDict(frozen=True)

    chunk_id: int
    path: str
    start_line: int
    end_line: int
    title: str = ""
    token_count: int = 0


class Cluster(BaseModel):
    """Connected component of the qualifying-pair graph."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0, description="Rank-ordered cluster id (1-based after ranking)")
    members: Tuple[int, ...] = Field(description="Sorted member chunk ids")
    representative: int = Field(description="Member with the earliest (path, start_line)")
    max_score: float = Field(ge=0.0, le=1.0, description="Highest qualifying score in the cluster")
    pairs: Tuple[SimilarityPair, ...] = Field(default=(), description="Qualifying pairs inside the cluster")
    locations: Tuple[ChunkLocation, ...] = Field(default=(), description="Member locations, representative first")

    @property
    def size(self) -> int:
        return len(self.members)


class RunStats(BaseModel):
    """Counters collected over a run."""
    chunks_total: int = 0
    chunks_compared_pairs: int = Field(default=0, description="Unpruned pair space over eligible chunks")
    pairs_scored: int = Field(default=0, description="Candidate pairs actually scored")
    clusters_found: int = 0
    degraded_chunks: int = 0
    documents_total: int = 0
    documents_skipped: int = 0
    chunks_excluded: int = Field(default=0, description="Chunks below min_chunk_tokens")
    chunks_truncated: int = 0
    qualifying_pairs: int = 0
    cache_hits: int = 0


class Report(BaseModel):
    """Final result of a successful run."""
    model_config = ConfigDict(frozen=True)

    clusters: Tuple[Cluster, ...] = ()
    stats: RunStats = Field(default_factory=RunStats)


class DetectionOptions(BaseModel):
    """Engine configuration surface."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    threshold: float = Field(default=0.85, ge=0.0, le=1.0, description="Minimum qualifying score")
    min_chunk_tokens: int = Field(default=5, ge=0, description="Shorter chunks are excluded")
    bucket_tolerance: float = Field(default=0.3, ge=0.0, description="Length bucket width (fraction)")
    cross_document_only: bool = Field(default=False, description="Discard single-document clusters")
    max_chunk_tokens: int = Field(default=2000, ge=1, description="Head-truncation bound")
    exhaustive: bool = Field(default=False, description="Compare every pair (no pruning)")
    shingle_size: int = Field(default=3, ge=1, description="Tokens per shingle")
    shingle_samples: int = Field(default=16, ge=1, description="Sampled shingles per chunk")
    locale: Literal["auto", "ja", "zh", "en"] = Field(default="auto", description="Declared locale")
