"""
Candidate pair generation

Each chunk gets a cheap signature: a logarithmic length bucket plus a
bottom-k sample of hashed token shingles. Two chunks become a candidate
pair only when their buckets differ by at most one and their samples
share at least one shingle.

This is a lossy filter. Near-duplicates whose lengths diverge sharply, or
whose shared content lies outside the sampled shingles, can be missed.
Identical sequences always share a bucket and their whole sample, so they
are never missed. exhaustive=True bypasses the filter entirely.
"""

import bisect
import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from similarity_md.dedup.hash_utils import sample_shingles, stable_hash64
from similarity_md.model.schemas import DetectionOptions

# Stand-in shingle so that empty sequences can still meet each other
EMPTY_SHINGLE = stable_hash64(())


@dataclass(frozen=True)
class Signature:
    """Pruning signature for one chunk (never persisted)."""
    bucket: int
    shingles: frozenset


def length_bucket(token_count: int, tolerance: float) -> int:
    """Bucket index such that neighbouring buckets differ by ~tolerance in length.

    Args:
        token_count: Number of tokens
        tolerance: Relative width of a bucket (0.3 = 30%)

    Returns:
        -1 for empty sequences, otherwise floor(log(n) / log(1 + tolerance))
    """
    if token_count <= 0:
        return -1
    if tolerance <= 0:
        return token_count
    return int(math.floor(math.log(token_count) / math.log1p(tolerance)))


def build_signature(tokens: Sequence[str], options: DetectionOptions) -> Signature:
    shingles = sample_shingles(tokens, options.shingle_size, options.shingle_samples)
    return Signature(
        bucket=length_bucket(len(tokens), options.bucket_tolerance),
        shingles=shingles or frozenset({EMPTY_SHINGLE}),
    )


class CandidateIndex:
    """
    Inverted index from sampled shingle to chunk ids

    Built once in the index phase and read concurrently afterwards; no
    method mutates it after construction.
    """

    def __init__(self, sequences: Dict[int, Sequence[str]], options: DetectionOptions):
        """
        Args:
            sequences: chunk id -> token sequence for every eligible chunk
            options: Detection options (bucket tolerance, shingle parameters)
        """
        self.options = options
        self.chunk_ids: List[int] = sorted(sequences)
        self.signatures: Dict[int, Signature] = {}
        postings: Dict[int, List[int]] = {}

        for chunk_id in self.chunk_ids:
            signature = build_signature(sequences[chunk_id], options)
            self.signatures[chunk_id] = signature
            for shingle in signature.shingles:
                postings.setdefault(shingle, []).append(chunk_id)

        # chunk_ids is sorted, so every posting list is sorted as well
        self._postings: Dict[int, Tuple[int, ...]] = {
            shingle: tuple(ids) for shingle, ids in postings.items()
        }

    def __len__(self) -> int:
        return len(self.chunk_ids)

    @property
    def pair_space(self) -> int:
        """Number of unordered pairs without pruning."""
        n = len(self.chunk_ids)
        return n * (n - 1) // 2

    def partners(self, chunk_id: int) -> List[int]:
        """
        Candidate partners with a larger id than chunk_id, ascending

        Restricting partners to larger ids makes every unordered pair come
        from exactly one left-hand chunk.
        """
        if self.options.exhaustive:
            start = bisect.bisect_right(self.chunk_ids, chunk_id)
            return self.chunk_ids[start:]

        signature = self.signatures[chunk_id]
        found = set()
        for shingle in signature.shingles:
            posting = self._postings.get(shingle, ())
            start = bisect.bisect_right(posting, chunk_id)
            for other in posting[start:]:
                if abs(self.signatures[other].bucket - signature.bucket) <= 1:
                    found.add(other)
        return sorted(found)

    def pairs_for(self, chunk_ids: Sequence[int]) -> List[Tuple[int, int]]:
        """Candidate pairs whose left-hand chunk is in chunk_ids (one worker's slice)."""
        pairs: List[Tuple[int, int]] = []
        for chunk_id in chunk_ids:
            pairs.extend((chunk_id, other) for other in self.partners(chunk_id))
        return pairs
