"""
Tests for normalization, script detection and segmentation

Tests:
1. Normalization policy (NFKC, case folding, punctuation)
2. Script detection and declared locales
3. Delegation to a segmenter and degraded fallback
4. Character fallback without a segmenter
5. Head truncation
6. Splitting long text for the segmenter
"""

import os
import sys

import pytest

# Add project root to path for imports
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../../')))

from similarity_md.dedup.similarity import SimilarityCalculator
from similarity_md.model.schemas import Script, TokenSequence
from similarity_md.text.segmenter import MorphologicalSegmenter
from similarity_md.text.tokenizer import (
    ChunkTokenizer,
    detect_script,
    fold_text,
    normalize_text,
    split_for_segmenter,
    truncate_tokens,
)
from similarity_md.utils.errors import SegmentationError, SegmenterLoadError


class StubSegmenter:
    """Splits on spaces; "。" is tagged as punctuation"""

    settings_key = "stub"

    def __init__(self):
        self.calls = 0

    def segment(self, text):
        self.calls += 1
        for part in text.replace("。", " 。 ").split():
            yield part, "補助記号" if part == "。" else "名詞"


class PickySegmenter(StubSegmenter):
    """Rejects any input containing 壊"""

    settings_key = "picky"

    def segment(self, text):
        if "壊" in text:
            raise SegmentationError("dictionary rejected input")
        return super().segment(text)


class FailingSegmenter:
    settings_key = "failing"

    def segment(self, text):
        raise SegmentationError("input too long")


class LazyFailingSegmenter:
    settings_key = "lazy-failing"

    def segment(self, text):
        yield "東京", "名詞"
        raise SegmentationError("broken morpheme")


def test_normalize_text():
    """Whitespace collapses, case folds, punctuation separates"""
    assert normalize_text("Hello,   World!  ") == "hello world"
    assert normalize_text("ＡＢＣ１２３") == "abc123"
    assert normalize_text("don't-stop") == "don t stop"
    assert normalize_text("Straße") == "strasse"
    assert normalize_text("  \n\t ") == ""


def test_fold_text_keeps_punctuation():
    assert fold_text("Ｈｅｌｌｏ,\n  World") == "hello, world"


def test_detect_script():
    """Kana/ideographs select CJK; declared locales override detection"""
    assert detect_script("これはテストです") is Script.CJK
    assert detect_script("中文文本") is Script.CJK
    assert detect_script("plain english text") is Script.SPACED
    assert detect_script("plain english text", locale="ja") is Script.CJK
    assert detect_script("これはテスト", locale="en") is Script.SPACED


def test_spaced_tokenization():
    tokenizer = ChunkTokenizer()
    sequence = tokenizer.tokenize("The quick, brown fox!")

    assert sequence.tokens == ("the", "quick", "brown", "fox")
    assert sequence.script is Script.SPACED
    assert not sequence.degraded
    assert not sequence.truncated


def test_tokenization_is_deterministic():
    tokenizer = ChunkTokenizer(segmenter=StubSegmenter())
    text = "Mixed text. 東京 に 行く。"
    assert tokenizer.tokenize(text) == tokenizer.tokenize(text)


def test_segmenter_delegation():
    """CJK text goes through the segmenter; punctuation morphemes are dropped"""
    segmenter = StubSegmenter()
    tokenizer = ChunkTokenizer(segmenter=segmenter)

    sequence = tokenizer.tokenize("東京 に 行く。")

    assert segmenter.calls == 1
    assert sequence.tokens == ("東京", "に", "行く")
    assert sequence.script is Script.CJK
    assert not sequence.degraded


def test_spaced_text_skips_segmenter():
    segmenter = StubSegmenter()
    ChunkTokenizer(segmenter=segmenter).tokenize("no segmentation needed")
    assert segmenter.calls == 0


def test_segmentation_failure_degrades_chunk():
    """The whole string becomes one opaque token"""
    tokenizer = ChunkTokenizer(segmenter=FailingSegmenter())
    sequence = tokenizer.tokenize("壊れた  テキスト")

    assert sequence.degraded
    assert sequence.tokens == ("壊れた テキスト",)


def test_failure_during_iteration_degrades_chunk():
    tokenizer = ChunkTokenizer(segmenter=LazyFailingSegmenter())
    sequence = tokenizer.tokenize("東京へ")

    assert sequence.degraded
    assert sequence.tokens == ("東京へ",)


def test_character_fallback_without_segmenter():
    """One token per CJK character, whole words for other runs"""
    sequence = ChunkTokenizer().tokenize("日本語のテスト、abc")

    assert sequence.script is Script.CJK
    assert sequence.tokens == ("日", "本", "語", "の", "テ", "ス", "ト", "abc")


def test_settings_key_changes_with_segmenter():
    assert ChunkTokenizer().settings_key != ChunkTokenizer(segmenter=StubSegmenter()).settings_key
    assert ChunkTokenizer(locale="ja").settings_key != ChunkTokenizer(locale="en").settings_key


def test_split_for_segmenter_respects_byte_limit():
    """Pieces end at sentence terminators and rejoin to the input"""
    text = "東京に行く。" * 10 + "終わり"
    pieces = split_for_segmenter(text, max_bytes=40)

    assert "".join(pieces) == text
    assert len(pieces) > 1
    assert all(len(piece.encode("utf-8")) <= 40 for piece in pieces)
    assert all(piece.endswith("。") for piece in pieces[:-1])


def test_split_for_segmenter_cuts_unterminated_run():
    text = "あ" * 100
    pieces = split_for_segmenter(text, max_bytes=30)

    assert "".join(pieces) == text
    assert [len(piece) for piece in pieces] == [10] * 10


def test_split_for_segmenter_short_text():
    assert split_for_segmenter("短い文。") == ["短い文。"]
    assert split_for_segmenter("") == []


def test_long_text_is_segmented_in_pieces():
    """Text above the segmenter input limit keeps its morphological tokens"""
    segmenter = StubSegmenter()
    text = "東京 に 行く。" * 3000
    assert len(text.encode("utf-8")) > 49149

    sequence = ChunkTokenizer(segmenter=segmenter).tokenize(text)

    assert not sequence.degraded
    assert segmenter.calls > 1
    assert len(sequence.tokens) == 9000
    assert sequence.tokens[:3] == ("東京", "に", "行く")


def test_only_the_rejected_piece_degrades():
    tokenizer = ChunkTokenizer(segmenter=PickySegmenter(), max_segment_bytes=30)

    sequence = tokenizer.tokenize("東京 に 行く。壊れた 文。大阪 へ 行く。")

    assert sequence.degraded
    assert sequence.tokens == ("東京", "に", "行く", "壊れた 文。", "大阪", "へ", "行く")


def test_truncate_tokens():
    sequence = TokenSequence(tokens=("a", "b", "c", "d", "e"))

    truncated = truncate_tokens(sequence, 3)
    assert truncated.tokens == ("a", "b", "c")
    assert truncated.truncated

    untouched = truncate_tokens(sequence, 5)
    assert untouched.tokens == sequence.tokens
    assert not untouched.truncated


def test_sudachi_segmenter():
    """Real dictionary: lazy, repeatable, covers the whole input"""
    pytest.importorskip("sudachipy")
    try:
        segmenter = MorphologicalSegmenter.load("core", "C")
    except SegmenterLoadError as e:
        pytest.skip(f"Sudachi dictionary unavailable: {e}")

    text = "東京都に行きました。"
    first = list(segmenter.segment(text))
    second = list(segmenter.segment(text))

    assert first == second
    assert "".join(surface for surface, _ in first) == text
    assert all(isinstance(pos, str) and pos for _, pos in first)

    sequence = ChunkTokenizer(segmenter=segmenter).tokenize(text)
    assert "。" not in sequence.tokens
    assert len(sequence.tokens) >= 3


def test_unknown_dictionary_is_fatal():
    with pytest.raises(SegmenterLoadError):
        MorphologicalSegmenter.load("no-such-dictionary")


def test_sudachi_long_text():
    """Text far above Sudachi's input limit is still segmented"""
    pytest.importorskip("sudachipy")
    try:
        segmenter = MorphologicalSegmenter.load("core", "C")
    except SegmenterLoadError as e:
        pytest.skip(f"Sudachi dictionary unavailable: {e}")

    tokenizer = ChunkTokenizer(segmenter=segmenter)
    sentence = "東京都に行きました。"
    per_sentence = len(tokenizer.tokenize(sentence).tokens)

    sequence = tokenizer.tokenize(sentence * 6000)

    assert not sequence.degraded
    assert len(sequence.tokens) > 6000
    assert sequence.tokens[:per_sentence] == tokenizer.tokenize(sentence).tokens

    edited = tokenizer.tokenize(sentence * 3000 + "大阪府に行きました。" + sentence * 2999)
    assert not edited.degraded
    assert SimilarityCalculator.score(sequence.tokens, edited.tokens) > 0.99
