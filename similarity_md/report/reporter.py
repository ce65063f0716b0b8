"""Render reports as terminal text or JSON.

Both renderings keep the ranker's cluster order and the report's field names.
"""

import sys
from typing import Optional, TextIO

from rich.console import Console
from rich.table import Table

from similarity_md.model.schemas import Cluster, Report

STAT_LABELS = (
    ("documents_total", "Documents"),
    ("documents_skipped", "Documents skipped"),
    ("chunks_total", "Chunks"),
    ("chunks_excluded", "Chunks below min tokens"),
    ("chunks_truncated", "Chunks truncated"),
    ("degraded_chunks", "Degraded chunks"),
    ("cache_hits", "Cache hits"),
    ("chunks_compared_pairs", "Pair space"),
    ("pairs_scored", "Pairs scored"),
    ("qualifying_pairs", "Qualifying pairs"),
    ("clusters_found", "Clusters"),
)


def render_json(report: Report) -> str:
    """Serialize the report; identical reports give identical strings."""
    return report.model_dump_json(indent=2)


def _cluster_table(cluster: Cluster) -> Table:
    table = Table(show_edge=False)
    table.add_column("", width=1)
    table.add_column("Location", style="cyan", no_wrap=True)
    table.add_column("Section", style="white")
    table.add_column("Tokens", justify="right", style="yellow")

    for location in cluster.locations:
        marker = "*" if location.chunk_id == cluster.representative else ""
        table.add_row(
            marker,
            f"{location.path}:{location.start_line}-{location.end_line}",
            location.title or "(untitled)",
            str(location.token_count),
        )
    return table


def render_text(report: Report, stream: Optional[TextIO] = None, color: bool = False, width: int = 120) -> None:
    """Write a human-readable report.

    Args:
        report: Report to render
        stream: Output stream (default: stdout)
        color: Emit ANSI colors
        width: Console width in characters
    """
    console = Console(
        file=stream or sys.stdout,
        width=width,
        color_system="auto" if color else None,
        highlight=False,
        soft_wrap=False,
    )

    if not report.clusters:
        console.print("No duplicate clusters found.")
    for cluster in report.clusters:
        console.print(
            f"Cluster {cluster.id}: {cluster.size} chunks, max similarity {cluster.max_score:.3f}",
            style="bold",
        )
        console.print(_cluster_table(cluster))
        for pair in cluster.pairs:
            console.print(f"  chunk {pair.chunk_a} <-> chunk {pair.chunk_b}: similarity {pair.score:.3f}")
        console.print()

    summary = Table(title="Summary", title_justify="left", show_header=False, show_edge=False)
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", justify="right")
    for field, label in STAT_LABELS:
        summary.add_row(label, str(getattr(report.stats, field)))
    console.print(summary)
