"""
Tests for text and JSON report rendering
"""

import io
import json
import os
import sys

# Add project root to path for imports
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../../')))

from similarity_md.model.schemas import ChunkLocation, Cluster, Report, RunStats, SimilarityPair
from similarity_md.report.reporter import render_json, render_text


def sample_report() -> Report:
    cluster = Cluster(
        id=1,
        members=(0, 3),
        representative=0,
        max_score=0.92,
        pairs=(SimilarityPair(chunk_a=0, chunk_b=3, score=0.92),),
        locations=(
            ChunkLocation(chunk_id=0, path="docs/a.md", start_line=1, end_line=4, title="Setup", token_count=12),
            ChunkLocation(chunk_id=3, path="docs/b.md", start_line=7, end_line=9, title="", token_count=11),
        ),
    )
    stats = RunStats(chunks_total=5, documents_total=2, pairs_scored=3, qualifying_pairs=1, clusters_found=1)
    return Report(clusters=(cluster,), stats=stats)


def test_render_json():
    payload = json.loads(render_json(sample_report()))

    assert payload["stats"]["chunks_total"] == 5
    assert payload["stats"]["clusters_found"] == 1
    cluster = payload["clusters"][0]
    assert cluster["id"] == 1
    assert cluster["members"] == [0, 3]
    assert cluster["representative"] == 0
    assert cluster["pairs"][0]["score"] == 0.92
    assert cluster["locations"][1]["path"] == "docs/b.md"


def test_render_json_is_stable():
    assert render_json(sample_report()) == render_json(sample_report())


def test_render_text():
    stream = io.StringIO()
    render_text(sample_report(), stream=stream)
    output = stream.getvalue()

    print("\n" + output)

    assert "Cluster 1: 2 chunks, max similarity 0.920" in output
    assert "docs/a.md:1-4" in output
    assert "docs/b.md:7-9" in output
    assert "(untitled)" in output
    assert "chunk 0 <-> chunk 3: similarity 0.920" in output
    assert "Summary" in output
    assert "\x1b[" not in output


def test_render_text_without_clusters():
    stream = io.StringIO()
    render_text(Report(), stream=stream)

    assert "No duplicate clusters found." in stream.getvalue()
