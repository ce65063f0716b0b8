"""Exception hierarchy for duplicate detection runs.

Errors fall into three classes:
- Fatal startup errors abort before any pipeline phase runs.
- Recoverable per-chunk errors degrade a single chunk and are counted.
- Collaborator I/O errors skip a single document and are counted.

Anything else raised inside a phase is wrapped in PipelineError.
"""

from typing import Any, Dict, Optional


class SimilarityError(Exception):
    """Base class for all errors raised by similarity_md."""


class FatalStartupError(SimilarityError):
    """Run cannot start (bad configuration, missing dictionary)."""

    def __init__(self, message: str, field: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.field = field
        self.cause = cause


class InvalidConfigurationError(FatalStartupError):
    """A configuration value is outside its allowed range."""


class SegmenterLoadError(FatalStartupError):
    """Morphological dictionary could not be loaded."""


class RecoverableChunkError(SimilarityError):
    """Failure limited to one chunk; the run continues."""


class SegmentationError(RecoverableChunkError):
    """Morphological analysis failed for one input string."""


class CollaboratorIOError(SimilarityError):
    """A source document could not be read."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        message = f"Cannot read document {path}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.path = path
        self.cause = cause


class PipelineError(SimilarityError):
    """Unclassified failure inside a pipeline phase.

    Attributes:
        phase: Phase that was running when the error occurred
        last_completed_phase: Last phase that finished for the whole corpus
        diagnostics: Partial run statistics (never emitted as a report)
    """

    def __init__(
        self,
        phase: str,
        last_completed_phase: Optional[str],
        cause: BaseException,
        diagnostics: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            f"Run failed during {phase} phase "
            f"(last completed: {last_completed_phase or 'none'}): {cause}"
        )
        self.phase = phase
        self.last_completed_phase = last_completed_phase
        self.cause = cause
        self.diagnostics = diagnostics or {}
