"""
Token-level similarity scoring

score(A, B) = 1 - edit_distance(A, B) / max(len(A), len(B), 1)

- Insertions, deletions and substitutions each cost 1
- Two empty sequences score 1.0; exactly one empty sequence scores 0.0
- Distances come from rapidfuzz (bit-parallel Levenshtein over hashable
  tokens), still reserved for candidate pairs
"""

from typing import Hashable, Sequence

from rapidfuzz.distance import Levenshtein


class SimilarityCalculator:
    """
    Edit-distance based similarity between token sequences

    All methods are pure; one instance can be shared by every worker.
    """

    @staticmethod
    def edit_distance(seq1: Sequence[Hashable], seq2: Sequence[Hashable]) -> int:
        """
        Levenshtein distance over tokens

        Args:
            seq1: First token sequence
            seq2: Second token sequence

        Returns:
            Minimum number of token insertions, deletions and substitutions
        """
        return Levenshtein.distance(list(seq1), list(seq2))

    @classmethod
    def score(cls, seq1: Sequence[Hashable], seq2: Sequence[Hashable]) -> float:
        """
        Similarity in [0, 1] (1.0 = identical)

        Args:
            seq1: First token sequence
            seq2: Second token sequence

        Returns:
            1 - edit_distance / max(len(seq1), len(seq2), 1)
        """
        if not seq1 and not seq2:
            return 1.0
        if not seq1 or not seq2:
            return 0.0

        distance = cls.edit_distance(seq1, seq2)
        longest = max(len(seq1), len(seq2), 1)
        return min(1.0, max(0.0, 1.0 - distance / longest))

    @staticmethod
    def is_duplicate(similarity: float, threshold: float = 0.85) -> bool:
        """
        Determine if similarity score qualifies a pair as duplicates

        Args:
            similarity: Similarity score
            threshold: Minimum similarity to consider duplicate (default: 0.85)

        Returns:
            True if similarity >= threshold
        """
        return similarity >= threshold
