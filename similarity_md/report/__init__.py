from similarity_md.report.reporter import render_json, render_text

__all__ = ["render_json", "render_text"]
