"""Deterministic ordering of duplicate clusters for reporting."""

from typing import List, Mapping, Sequence, Tuple

from similarity_md.model.schemas import Chunk, ChunkLocation, Cluster


def rank_key(cluster: Cluster, chunks: Mapping[int, Chunk]) -> Tuple:
    """Sort key: size desc, max score desc, representative path/line asc, first member asc."""
    representative = chunks[cluster.representative]
    return (
        -cluster.size,
        -cluster.max_score,
        representative.path,
        representative.start_line,
        cluster.members[0],
    )


def rank_clusters(clusters: Sequence[Cluster], chunks: Mapping[int, Chunk]) -> List[Cluster]:
    """Order clusters and assign ids 1..k in ranked order.

    Args:
        clusters: Unranked clusters from the clusterer
        chunks: chunk id -> Chunk

    Returns:
        New Cluster objects with ids and member locations filled in
    """
    ordered = sorted(clusters, key=lambda c: rank_key(c, chunks))
    return [
        cluster.model_copy(update={
            "id": rank,
            "locations": _locations(cluster, chunks),
        })
        for rank, cluster in enumerate(ordered, 1)
    ]


def _locations(cluster: Cluster, chunks: Mapping[int, Chunk]) -> Tuple[ChunkLocation, ...]:
    # Representative first, then by (path, start_line, id)
    ordered = sorted(
        cluster.members,
        key=lambda cid: (cid != cluster.representative, chunks[cid].location),
    )
    return tuple(
        ChunkLocation(
            chunk_id=cid,
            path=chunks[cid].path,
            start_line=chunks[cid].start_line,
            end_line=chunks[cid].end_line,
            title=chunks[cid].title,
            token_count=len(chunks[cid].tokens),
        )
        for cid in ordered
    )
