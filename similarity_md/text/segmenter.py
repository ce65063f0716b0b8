"""Morphological segmentation for scripts without word spacing.

Wraps SudachiPy. The system dictionary is loaded once and shared read-only
by every worker thread; each thread builds its own tokenizer from it, since
Sudachi tokenizers keep per-call state.
"""

import logging
import threading
from typing import Iterator, Optional, Tuple

from similarity_md.utils.errors import SegmentationError, SegmenterLoadError

logger = logging.getLogger(__name__)

# Part-of-speech heads that never produce tokens
PUNCTUATION_POS = frozenset({"補助記号", "空白"})

# Sudachi rejects inputs above 49149 bytes of UTF-8; longer text is split first
MAX_INPUT_BYTES = 32768


class MorphologicalSegmenter:
    """Dictionary-driven word segmenter backed by SudachiPy.

    Attributes:
        dictionary_name: sudachidict package in use (small, core or full)
        split_mode: Sudachi split mode name (A, B or C)
    """

    def __init__(self, dictionary, split_mode, dictionary_name: str = "core", split_mode_name: str = "C"):
        self._dictionary = dictionary
        self._split_mode = split_mode
        self._local = threading.local()
        self.dictionary_name = dictionary_name
        self.split_mode = split_mode_name

    @classmethod
    def load(cls, dictionary_name: str = "core", split_mode: str = "C") -> "MorphologicalSegmenter":
        """Load the Sudachi system dictionary.

        Args:
            dictionary_name: sudachidict package suffix (small, core, full)
            split_mode: A, B or C

        Returns:
            Segmenter holding the loaded dictionary

        Raises:
            SegmenterLoadError: If SudachiPy or the dictionary is unavailable
        """
        try:
            from sudachipy import Dictionary, SplitMode
        except ImportError as e:
            raise SegmenterLoadError(
                "SudachiPy is not installed. Install with: pip install sudachipy sudachidict-core",
                field="DICTIONARY",
                cause=e,
            ) from e

        try:
            mode = getattr(SplitMode, split_mode.upper())
        except AttributeError as e:
            raise SegmenterLoadError(
                f"Unknown Sudachi split mode: {split_mode}", field="SPLIT_MODE", cause=e
            ) from e

        try:
            dictionary = Dictionary(dict=dictionary_name)
        except Exception as e:
            raise SegmenterLoadError(
                f"Failed to load Sudachi dictionary '{dictionary_name}': {e}",
                field="DICTIONARY",
                cause=e,
            ) from e

        logger.info("Loaded Sudachi dictionary '%s' (split mode %s)", dictionary_name, split_mode.upper())
        return cls(dictionary, mode, dictionary_name=dictionary_name, split_mode_name=split_mode.upper())

    def _tokenizer(self):
        tokenizer = getattr(self._local, "tokenizer", None)
        if tokenizer is None:
            tokenizer = self._dictionary.create(mode=self._split_mode)
            self._local.tokenizer = tokenizer
        return tokenizer

    def segment(self, text: str) -> Iterator[Tuple[str, str]]:
        """Split text into (surface_form, part_of_speech) pairs.

        The returned generator is lazy and single-use; calling segment()
        again with the same text yields the same pairs.

        Raises:
            SegmentationError: When Sudachi rejects the input (e.g. too long)
        """
        try:
            morphemes = self._tokenizer().tokenize(text)
        except Exception as e:
            raise SegmentationError(f"Segmentation failed: {e}") from e
        return _iter_morphemes(morphemes)

    @property
    def settings_key(self) -> str:
        """Identifies the segmentation model for cache fingerprints."""
        return f"sudachi:{self.dictionary_name}:{self.split_mode}"


def _iter_morphemes(morphemes) -> Iterator[Tuple[str, str]]:
    for morpheme in morphemes:
        try:
            surface, pos = morpheme.surface(), morpheme.part_of_speech()[0]
        except Exception as e:
            raise SegmentationError(f"Unreadable morpheme: {e}") from e
        yield surface, pos


_shared: Optional[MorphologicalSegmenter] = None
_shared_lock = threading.Lock()


def get_segmenter(dictionary_name: str = "core", split_mode: str = "C") -> MorphologicalSegmenter:
    """Return the process-wide segmenter, loading it on first use."""
    global _shared
    with _shared_lock:
        if (
            _shared is None
            or _shared.dictionary_name != dictionary_name
            or _shared.split_mode != split_mode.upper()
        ):
            _shared = MorphologicalSegmenter.load(dictionary_name, split_mode)
        return _shared
