from similarity_md.text.segmenter import MorphologicalSegmenter, get_segmenter
from similarity_md.text.tokenizer import ChunkTokenizer, detect_script, normalize_text, truncate_tokens

__all__ = [
    "MorphologicalSegmenter",
    "get_segmenter",
    "ChunkTokenizer",
    "detect_script",
    "normalize_text",
    "truncate_tokens",
]
