"""
Near-duplicate detection over tokenized chunks

This package provides:
- Token-level edit-distance scoring (SimilarityCalculator)
- Length-bucket + shingle candidate pruning (CandidateIndex)
- Union-find clustering of qualifying pairs (cluster_pairs)
- Deterministic cluster ranking (rank_clusters)
"""

from .candidates import CandidateIndex, Signature, build_signature, length_bucket
from .clustering import DisjointSet, cluster_pairs
from .ranking import rank_clusters
from .similarity import SimilarityCalculator

__all__ = [
    'CandidateIndex',
    'Signature',
    'build_signature',
    'length_bucket',
    'DisjointSet',
    'cluster_pairs',
    'rank_clusters',
    'SimilarityCalculator',
]
