"""On-disk cache of chunk tokenizations.

Entries are keyed by content fingerprint (tokenizer settings + chunk text),
so editing a file or changing tokenizer settings invalidates its entries.
Saving keeps only the entries the current run looked up or stored, so
stale fingerprints do not accumulate.
The file is gzip-compressed JSON with a format version.
"""

import gzip
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional, Set

from pydantic import ValidationError

from similarity_md.model.schemas import TokenSequence

logger = logging.getLogger(__name__)

CACHE_FORMAT_VERSION = 1


class TokenCache:
    """Fingerprint -> TokenSequence map with gzip JSON persistence.

    lookup() may be called from several worker threads at once; store()
    and save() are only called from the orchestrating thread after a
    phase has joined.
    """

    def __init__(self, path: Optional[str] = None, entries: Optional[Dict[str, TokenSequence]] = None):
        self.path = path
        self._entries: Dict[str, TokenSequence] = dict(entries or {})
        self._dirty = False
        self._used: Set[str] = set()
        self._used_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def load(cls, path: str) -> "TokenCache":
        """Load a cache file; a missing, corrupt or outdated file yields an empty cache."""
        cache_path = Path(path)
        if not cache_path.exists():
            return cls(path)

        try:
            with gzip.open(cache_path, "rt", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, EOFError, ValueError) as e:
            logger.warning("Ignoring unreadable token cache %s: %s", path, e)
            return cls(path)

        if not isinstance(raw, dict) or raw.get("version") != CACHE_FORMAT_VERSION:
            logger.warning("Ignoring token cache %s with unsupported format", path)
            return cls(path)

        entries: Dict[str, TokenSequence] = {}
        for fingerprint, value in raw.get("entries", {}).items():
            try:
                entries[fingerprint] = TokenSequence.model_validate(value)
            except ValidationError:
                logger.debug("Dropping malformed cache entry %s", fingerprint)

        logger.info("Loaded %d cached tokenizations from %s", len(entries), path)
        return cls(path, entries)

    def lookup(self, fingerprint: str) -> Optional[TokenSequence]:
        sequence = self._entries.get(fingerprint)
        if sequence is not None:
            with self._used_lock:
                self._used.add(fingerprint)
        return sequence

    def store(self, fingerprint: str, sequence: TokenSequence) -> None:
        """Remember an untruncated tokenization. Degraded results are not kept."""
        if sequence.degraded:
            return
        with self._used_lock:
            self._used.add(fingerprint)
        if self._entries.get(fingerprint) == sequence:
            return
        self._entries[fingerprint] = sequence
        self._dirty = True

    def save(self) -> None:
        """Write the cache atomically (temp file + rename) if anything changed.

        Entries this run never looked up or stored are dropped first.
        """
        stale = [fingerprint for fingerprint in self._entries if fingerprint not in self._used]
        for fingerprint in stale:
            del self._entries[fingerprint]
        if stale:
            logger.debug("Dropping %d stale cache entries", len(stale))
            self._dirty = True

        if not self.path or not self._dirty:
            return

        payload = {
            "version": CACHE_FORMAT_VERSION,
            "entries": {
                fingerprint: sequence.model_dump(mode="json", include={"tokens", "script"})
                for fingerprint, sequence in sorted(self._entries.items())
            },
        }

        target = Path(self.path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=target.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as raw_file:
                with gzip.GzipFile(fileobj=raw_file, mode="wb", mtime=0) as gz:
                    gz.write(json.dumps(payload, ensure_ascii=False).encode("utf-8"))
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        self._dirty = False
        logger.info("Saved %d cached tokenizations to %s", len(self._entries), self.path)
