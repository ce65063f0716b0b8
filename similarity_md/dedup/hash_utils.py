import hashlib
from typing import Iterable, List, Sequence


def compute_content_fingerprint(text: str, settings_key: str = "") -> str:
    """SHA-256 of the tokenizer settings plus the text (token cache key)."""
    digest = hashlib.sha256()
    digest.update(settings_key.encode("utf-8"))
    digest.update(b"\x00")
    digest.update(text.encode("utf-8"))
    return digest.hexdigest()


def stable_hash64(tokens: Iterable[str]) -> int:
    """64-bit BLAKE2b hash of a token window (independent of PYTHONHASHSEED)."""
    digest = hashlib.blake2b(digest_size=8)
    for token in tokens:
        digest.update(token.encode("utf-8"))
        digest.update(b"\x1f")  # unit separator, keeps ("ab","c") != ("a","bc")
    return int.from_bytes(digest.digest(), "big")


def shingle_hashes(tokens: Sequence[str], size: int) -> List[int]:
    """Hash every contiguous window of `size` tokens.

    Sequences shorter than `size` produce one shingle covering all tokens;
    an empty sequence produces none.
    """
    if not tokens:
        return []
    if len(tokens) <= size:
        return [stable_hash64(tokens)]
    return [stable_hash64(tokens[i:i + size]) for i in range(len(tokens) - size + 1)]


def sample_shingles(tokens: Sequence[str], size: int, samples: int) -> frozenset:
    """Bottom-k sample: the `samples` smallest distinct shingle hashes.

    Identical token sequences always yield identical samples, and
    near-identical ones share most of them.
    """
    return frozenset(sorted(set(shingle_hashes(tokens, size)))[:samples])
