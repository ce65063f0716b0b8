"""Duplicate detection pipeline.

Runs the phases Load -> Tokenize -> Index -> Score -> Cluster -> Rank -> Emit
strictly in order. Tokenize, candidate generation and Score run on a
bounded thread pool; every other phase runs on the calling thread.
"""

import logging
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from similarity_md.cache.token_cache import TokenCache
from similarity_md.dedup.candidates import CandidateIndex
from similarity_md.dedup.clustering import cluster_pairs
from similarity_md.dedup.hash_utils import compute_content_fingerprint
from similarity_md.dedup.ranking import rank_clusters
from similarity_md.dedup.similarity import SimilarityCalculator
from similarity_md.model.schemas import (
    Chunk,
    DetectionOptions,
    Document,
    Report,
    RunStats,
    SimilarityPair,
    SourceChunk,
    TokenSequence,
)
from similarity_md.orchestrator.workers import fork_join
from similarity_md.text.segmenter import get_segmenter
from similarity_md.text.tokenizer import ChunkTokenizer, Segmenter, truncate_tokens
from similarity_md.utils.config import ApplicationConfig, build_detection_options, get_config
from similarity_md.utils.errors import CollaboratorIOError, InvalidConfigurationError, PipelineError
from similarity_md.utils.logger import log_phase

logger = logging.getLogger(__name__)

Extractor = Callable[[str], Document]


class Phase(str, Enum):
    LOAD = "load"
    TOKENIZE = "tokenize"
    INDEX = "index"
    SCORE = "score"
    CLUSTER = "cluster"
    RANK = "rank"
    EMIT = "emit"


# Tokenize phase output per chunk: (untruncated sequence, cache hit, fingerprint)
_TokenizeResult = Tuple[TokenSequence, bool, Optional[str]]


class DuplicateDetector:
    """Find clusters of near-duplicate chunks across documents.

    Example:
        detector = DuplicateDetector(DetectionOptions(threshold=0.9))
        report = detector.run(paths, MarkdownExtractor())
    """

    def __init__(
        self,
        options: Union[DetectionOptions, Mapping, None] = None,
        segmenter: Optional[Segmenter] = None,
        cache: Optional[TokenCache] = None,
        max_workers: int = 4,
        show_progress: bool = False,
    ):
        """
        Args:
            options: Detection options (validated; dicts are accepted)
            segmenter: Morphological segmenter for unspaced scripts (None = character tokens)
            cache: Optional token cache
            max_workers: Thread pool size for parallel phases
            show_progress: Show tqdm progress bars

        Raises:
            InvalidConfigurationError: If an option is out of range
        """
        if options is None:
            options = DetectionOptions()
        elif not isinstance(options, DetectionOptions):
            options = build_detection_options(**dict(options))
        if max_workers < 1:
            raise InvalidConfigurationError(
                f"max_workers must be >= 1 (got {max_workers})", field="max_workers"
            )

        self.options = options
        self.tokenizer = ChunkTokenizer(segmenter=segmenter, locale=options.locale)
        self.cache = cache
        self.max_workers = max_workers
        self.show_progress = show_progress
        self.calculator = SimilarityCalculator()

    @classmethod
    def from_config(cls, cfg: Optional[ApplicationConfig] = None) -> "DuplicateDetector":
        """Build a detector from the application configuration.

        Loads the morphological dictionary and the token cache up front, so
        that a missing dictionary aborts before any phase runs.

        Raises:
            FatalStartupError: On invalid configuration or dictionary load failure
        """
        cfg = cfg or get_config()
        cfg.validate()

        segmenter = None
        if cfg.segmentation.ENABLED:
            segmenter = get_segmenter(cfg.segmentation.DICTIONARY, cfg.segmentation.SPLIT_MODE)

        cache = TokenCache.load(cfg.cache.PATH) if cfg.cache.ENABLED else None

        return cls(
            options=cfg.detection,
            segmenter=segmenter,
            cache=cache,
            max_workers=cfg.processing.MAX_WORKERS,
            show_progress=cfg.processing.SHOW_PROGRESS,
        )

    def run(self, paths: Sequence[str], extractor: Extractor) -> Report:
        """Run the full pipeline over already-filtered file paths.

        Args:
            paths: Ordered file paths (ignore rules already applied)
            extractor: Callable turning a path into a Document

        Returns:
            Ranked report

        Raises:
            PipelineError: If any phase fails
        """
        return self._execute(lambda stats: self._load(paths, extractor, stats))

    def run_documents(self, documents: Iterable[Document]) -> Report:
        """Run the pipeline over documents that are already in memory."""
        documents = list(documents)
        return self._execute(lambda stats: documents)

    def _execute(self, load: Callable[[RunStats], List[Document]]) -> Report:
        stats = RunStats()
        phase: Optional[Phase] = None
        completed: Optional[Phase] = None

        try:
            phase = Phase.LOAD
            with log_phase(logger, phase.value) as result:
                documents = load(stats)
                stats.documents_total = len(documents)
                result["documents"] = len(documents)
            completed = phase

            phase = Phase.TOKENIZE
            with log_phase(logger, phase.value) as result:
                chunks = self._tokenize(documents, stats)
                result["chunks"] = len(chunks)
            completed = phase

            phase = Phase.INDEX
            with log_phase(logger, phase.value) as result:
                candidates = self._index(chunks, stats)
                result["candidates"] = len(candidates)
            completed = phase

            phase = Phase.SCORE
            with log_phase(logger, phase.value) as result:
                qualifying = self._score(chunks, candidates, stats)
                result["qualifying_pairs"] = len(qualifying)
            completed = phase

            phase = Phase.CLUSTER
            with log_phase(logger, phase.value) as result:
                clusters = cluster_pairs(qualifying, chunks, self.options.cross_document_only)
                result["clusters"] = len(clusters)
            completed = phase

            phase = Phase.RANK
            with log_phase(logger, phase.value):
                ranked = rank_clusters(clusters, chunks)
                stats.clusters_found = len(ranked)
            completed = phase

            phase = Phase.EMIT
            with log_phase(logger, phase.value):
                if self.cache is not None:
                    self.cache.save()
                report = Report(clusters=tuple(ranked), stats=stats.model_copy())
            return report

        except Exception as e:
            logger.error("Run failed during %s phase: %s", phase.value if phase else "startup", e)
            raise PipelineError(
                phase=phase.value if phase else "startup",
                last_completed_phase=completed.value if completed else None,
                cause=e,
                diagnostics=stats.model_dump(),
            ) from e

    def _load(self, paths: Sequence[str], extractor: Extractor, stats: RunStats) -> List[Document]:
        documents: List[Document] = []
        for path in paths:
            try:
                documents.append(extractor(path))
            except CollaboratorIOError as e:
                stats.documents_skipped += 1
                logger.warning("Skipping unreadable document: %s", e)
        return documents

    def _tokenize(self, documents: Sequence[Document], stats: RunStats) -> Dict[int, Chunk]:
        """Tokenize every chunk; ids follow document order then chunk order."""
        sources: List[Tuple[int, SourceChunk]] = [
            (doc_index, source)
            for doc_index, document in enumerate(documents)
            for source in document.chunks
        ]
        stats.chunks_total = len(sources)

        cache = self.cache
        tokenizer = self.tokenizer
        settings_key = tokenizer.settings_key

        def tokenize_slice(items: Sequence[Tuple[int, SourceChunk]]) -> List[_TokenizeResult]:
            results: List[_TokenizeResult] = []
            for _, source in items:
                fingerprint = None
                if cache is not None:
                    fingerprint = compute_content_fingerprint(source.text, settings_key)
                    cached = cache.lookup(fingerprint)
                    if cached is not None:
                        results.append((cached, True, fingerprint))
                        continue
                results.append((tokenizer.tokenize(source.text), False, fingerprint))
            return results

        tokenized = fork_join(
            tokenize_slice,
            sources,
            self.max_workers,
            desc="Tokenizing",
            show_progress=self.show_progress,
            unit="chunk",
        )

        chunks: Dict[int, Chunk] = {}
        for chunk_id, ((doc_index, source), (sequence, hit, fingerprint)) in enumerate(zip(sources, tokenized)):
            if hit:
                stats.cache_hits += 1
            elif cache is not None:
                cache.store(fingerprint, sequence)

            sequence = truncate_tokens(sequence, self.options.max_chunk_tokens)
            if sequence.degraded:
                stats.degraded_chunks += 1
                logger.warning(
                    "Segmentation failed for %s:%d, chunk kept as a single token",
                    documents[doc_index].path,
                    source.start_line,
                )
            if sequence.truncated:
                stats.chunks_truncated += 1

            chunks[chunk_id] = Chunk(
                id=chunk_id,
                path=documents[doc_index].path,
                document_index=doc_index,
                text=source.text,
                start_line=source.start_line,
                end_line=source.end_line,
                title=source.title,
                tokens=sequence,
            )
        return chunks

    def _index(self, chunks: Mapping[int, Chunk], stats: RunStats) -> List[Tuple[int, int]]:
        """Build signatures and generate deduplicated candidate pairs."""
        eligible = {
            chunk_id: chunk.tokens.tokens
            for chunk_id, chunk in chunks.items()
            if len(chunk.tokens) >= self.options.min_chunk_tokens
        }
        stats.chunks_excluded = len(chunks) - len(eligible)

        index = CandidateIndex(eligible, self.options)
        stats.chunks_compared_pairs = index.pair_space

        return fork_join(
            index.pairs_for,
            index.chunk_ids,
            self.max_workers,
            desc="Indexing",
            show_progress=self.show_progress,
            unit="chunk",
        )

    def _score(
        self,
        chunks: Mapping[int, Chunk],
        candidates: Sequence[Tuple[int, int]],
        stats: RunStats,
    ) -> List[SimilarityPair]:
        threshold = self.options.threshold
        calculator = self.calculator

        def score_slice(pairs: Sequence[Tuple[int, int]]) -> List[SimilarityPair]:
            buffer: List[SimilarityPair] = []
            for a, b in pairs:
                score = calculator.score(chunks[a].tokens.tokens, chunks[b].tokens.tokens)
                if calculator.is_duplicate(score, threshold):
                    buffer.append(SimilarityPair(chunk_a=a, chunk_b=b, score=score))
            return buffer

        qualifying = fork_join(
            score_slice,
            candidates,
            self.max_workers,
            desc="Scoring",
            show_progress=self.show_progress,
            unit="pair",
        )
        stats.pairs_scored = len(candidates)
        stats.qualifying_pairs = len(qualifying)
        return qualifying
