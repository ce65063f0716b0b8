from similarity_md.orchestrator.pipeline import DuplicateDetector, Phase

__all__ = ["DuplicateDetector", "Phase"]
