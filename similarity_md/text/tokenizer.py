"""Chunk text normalization and tokenization.

Normalization policy:
1. Unicode NFKC (full-width forms become half-width)
2. Case folding with str.casefold()
3. Punctuation and symbols (Unicode categories P* and S*) act as separators
4. Whitespace runs collapse; empty tokens are dropped

Text containing kana or CJK ideographs is segmented morphologically;
everything else is split on whitespace.
"""

import re
import unicodedata
from typing import List, Optional, Protocol, Iterator, Tuple

from similarity_md.model.schemas import Script, TokenSequence
from similarity_md.text.segmenter import MAX_INPUT_BYTES, PUNCTUATION_POS
from similarity_md.utils.errors import RecoverableChunkError

# Bumped whenever the normalization policy changes (invalidates cached tokens)
NORMALIZATION_VERSION = 1

# Hiragana, Katakana, CJK ideographs (ext. A, unified, compatibility), half-width katakana
_CJK_CHARS = "぀-ヿ㐀-䶿一-鿿豈-﫿ｦ-ﾟ"
_CJK_RE = re.compile(f"[{_CJK_CHARS}]")
_CHAR_TOKEN_RE = re.compile(f"[{_CJK_CHARS}]|[^\\s{_CJK_CHARS}]+")
_WHITESPACE_RE = re.compile(r"\s+")
# A sentence runs up to and including its terminator (after NFKC folding)
_SENTENCE_RE = re.compile(r"[^。!?.]*[。!?.]+\s*|[^。!?.]+")


class Segmenter(Protocol):
    def segment(self, text: str) -> Iterator[Tuple[str, str]]: ...


def fold_text(text: str) -> str:
    """NFKC + casefold + whitespace collapse, punctuation kept."""
    folded = unicodedata.normalize("NFKC", text).casefold()
    return _WHITESPACE_RE.sub(" ", folded).strip()


def strip_punctuation(text: str) -> str:
    """Replace punctuation and symbol characters with spaces."""
    return "".join(" " if unicodedata.category(ch)[0] in "PS" else ch for ch in text)


def normalize_text(text: str) -> str:
    """Apply the full normalization policy; the result is space-separated words."""
    return _WHITESPACE_RE.sub(" ", strip_punctuation(fold_text(text))).strip()


def detect_script(text: str, locale: str = "auto") -> Script:
    """Pick the tokenization strategy for a chunk.

    Args:
        text: Raw chunk text
        locale: Declared locale (auto, ja, zh, en)

    Returns:
        Script.CJK when morphological segmentation is needed, else Script.SPACED
    """
    if locale in ("ja", "zh"):
        return Script.CJK
    if locale == "en":
        return Script.SPACED
    return Script.CJK if _CJK_RE.search(text) else Script.SPACED


def split_for_segmenter(text: str, max_bytes: int = MAX_INPUT_BYTES) -> List[str]:
    """Cut text into pieces of at most max_bytes UTF-8 bytes.

    Pieces end at sentence terminators where possible; a single sentence
    longer than max_bytes is cut at character boundaries. Joining the
    pieces gives back the original text.
    """
    if len(text.encode("utf-8")) <= max_bytes:
        return [text] if text else []

    pieces: List[str] = []
    current: List[str] = []
    size = 0
    for match in _SENTENCE_RE.finditer(text):
        for part in _cut_by_bytes(match.group(), max_bytes):
            part_size = len(part.encode("utf-8"))
            if current and size + part_size > max_bytes:
                pieces.append("".join(current))
                current, size = [], 0
            current.append(part)
            size += part_size
    if current:
        pieces.append("".join(current))
    return pieces


def _cut_by_bytes(sentence: str, max_bytes: int) -> List[str]:
    if len(sentence.encode("utf-8")) <= max_bytes:
        return [sentence]
    parts: List[str] = []
    start = size = 0
    for index, ch in enumerate(sentence):
        ch_size = len(ch.encode("utf-8"))
        if size + ch_size > max_bytes:
            parts.append(sentence[start:index])
            start, size = index, 0
        size += ch_size
    parts.append(sentence[start:])
    return parts


class ChunkTokenizer:
    """Turn raw chunk text into a TokenSequence.

    Pure and deterministic for a given (text, locale, segmenter). Safe to
    share across threads as long as the segmenter is.
    """

    def __init__(
        self,
        segmenter: Optional[Segmenter] = None,
        locale: str = "auto",
        max_segment_bytes: int = MAX_INPUT_BYTES,
    ):
        """
        Args:
            segmenter: Morphological segmenter (None = character tokens for CJK)
            locale: Declared locale (auto, ja, zh, en)
            max_segment_bytes: Longest UTF-8 input passed to one segment() call
        """
        self.segmenter = segmenter
        self.locale = locale
        self.max_segment_bytes = max_segment_bytes

    @property
    def settings_key(self) -> str:
        """Everything besides the text that influences the output."""
        if self.segmenter is None:
            model = "chars"
        else:
            model = getattr(self.segmenter, "settings_key", type(self.segmenter).__name__)
            model = f"{model}:{self.max_segment_bytes}"
        return f"v{NORMALIZATION_VERSION}|{self.locale}|{model}"

    def tokenize(self, text: str) -> TokenSequence:
        """Tokenize text without truncation."""
        script = detect_script(text, self.locale)

        if script is Script.SPACED:
            return TokenSequence(tokens=tuple(normalize_text(text).split()), script=script)

        if self.segmenter is None:
            return TokenSequence(tokens=tuple(_character_tokens(text)), script=script)

        tokens, degraded = self._segment(text)
        return TokenSequence(tokens=tuple(tokens), script=script, degraded=degraded)

    def _segment(self, text: str) -> Tuple[List[str], bool]:
        """Segment piece by piece; a piece the segmenter rejects becomes one opaque token."""
        tokens: List[str] = []
        degraded = False
        for piece in split_for_segmenter(fold_text(text), self.max_segment_bytes):
            piece_tokens: List[str] = []
            try:
                for surface, pos in self.segmenter.segment(piece):
                    if pos in PUNCTUATION_POS:
                        continue
                    piece_tokens.extend(normalize_text(surface).split())
            except RecoverableChunkError:
                opaque = piece.strip()
                piece_tokens = [opaque] if opaque else []
                degraded = True
            tokens.extend(piece_tokens)
        return tokens, degraded


def _character_tokens(text: str) -> List[str]:
    """Fallback when no segmenter is available: one token per CJK character."""
    return _CHAR_TOKEN_RE.findall(normalize_text(text))


def truncate_tokens(sequence: TokenSequence, max_tokens: int) -> TokenSequence:
    """Keep the first max_tokens tokens, marking the sequence as truncated."""
    if len(sequence.tokens) <= max_tokens:
        return sequence
    return sequence.model_copy(update={"tokens": sequence.tokens[:max_tokens], "truncated": True})
