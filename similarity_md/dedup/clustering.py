"""
Duplicate clustering

Connected components of the qualifying-pair graph, computed with an
array-indexed disjoint-set keyed by chunk id.
"""

from typing import Dict, Iterable, List, Mapping, Sequence

from similarity_md.model.schemas import Chunk, Cluster, SimilarityPair


class DisjointSet:
    """Union-find over the integers 0..size-1 (union by size, path halving)."""

    def __init__(self, size: int):
        self.parent: List[int] = list(range(size))
        self.size: List[int] = [1] * size

    def find(self, item: int) -> int:
        parent = self.parent
        while parent[item] != item:
            parent[item] = parent[parent[item]]
            item = parent[item]
        return item

    def union(self, a: int, b: int) -> int:
        root_a = self.find(a)
        root_b = self.find(b)
        if root_a == root_b:
            return root_a
        if self.size[root_a] < self.size[root_b]:
            root_a, root_b = root_b, root_a
        self.parent[root_b] = root_a
        self.size[root_a] += self.size[root_b]
        return root_a


def cluster_pairs(
    pairs: Sequence[SimilarityPair],
    chunks: Mapping[int, Chunk],
    cross_document_only: bool = False,
) -> List[Cluster]:
    """
    Group chunks connected by qualifying pairs

    Args:
        pairs: Pairs with score >= threshold
        chunks: chunk id -> Chunk for every chunk in the run
        cross_document_only: Drop clusters whose members share one document

    Returns:
        Unranked clusters (id 0), ordered by smallest member id. Chunks that
        appear in no pair are not part of any cluster.
    """
    if not pairs:
        return []

    size = max(max(p.chunk_a, p.chunk_b) for p in pairs) + 1
    components = DisjointSet(size)
    for pair in pairs:
        components.union(pair.chunk_a, pair.chunk_b)

    members_by_root: Dict[int, List[int]] = {}
    for chunk_id in sorted({cid for p in pairs for cid in (p.chunk_a, p.chunk_b)}):
        members_by_root.setdefault(components.find(chunk_id), []).append(chunk_id)

    pairs_by_root: Dict[int, List[SimilarityPair]] = {}
    for pair in pairs:
        pairs_by_root.setdefault(components.find(pair.chunk_a), []).append(pair)

    clusters: List[Cluster] = []
    for root, members in members_by_root.items():
        if cross_document_only and _single_document(members, chunks):
            continue

        component_pairs = pairs_by_root[root]
        representative = min(members, key=lambda cid: chunks[cid].location)
        clusters.append(Cluster(
            id=0,
            members=tuple(members),
            representative=representative,
            max_score=max(p.score for p in component_pairs),
            pairs=tuple(sorted(component_pairs, key=lambda p: (-p.score, p.chunk_a, p.chunk_b))),
        ))

    clusters.sort(key=lambda c: c.members[0])
    return clusters


def _single_document(members: Iterable[int], chunks: Mapping[int, Chunk]) -> bool:
    return len({chunks[cid].document_index for cid in members}) == 1
