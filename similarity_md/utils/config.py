"""Configuration settings for duplicate detection runs.

Centralized configuration for the detection engine, worker pool,
morphological segmentation and the token cache.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from similarity_md.model.schemas import DetectionOptions
from similarity_md.utils.errors import InvalidConfigurationError

ENV_PREFIX = "SIMILARITY_"


@dataclass
class ProcessingConfig:
    """Configuration for the worker pool and run output."""

    # Parallel processing
    MAX_WORKERS: int = 4  # Threads used by tokenize and score phases

    # Progress bars (tqdm) on stderr
    SHOW_PROGRESS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    JSON_LOGGING: bool = False  # Use JSON format for machine consumption


@dataclass
class SegmentationConfig:
    """Configuration for morphological analysis of unspaced scripts."""

    ENABLED: bool = True
    DICTIONARY: str = "core"  # sudachidict package: small, core or full
    SPLIT_MODE: str = "C"  # Sudachi split mode: A (short), B, C (long units)


@dataclass
class CacheConfig:
    """Configuration for the on-disk token cache."""

    ENABLED: bool = False
    PATH: str = ".similarity-md-cache.json.gz"


@dataclass
class ApplicationConfig:
    """Master application configuration."""

    detection: DetectionOptions = None
    processing: ProcessingConfig = None
    segmentation: SegmentationConfig = None
    cache: CacheConfig = None

    def __post_init__(self):
        """Initialize default configurations."""
        if self.detection is None:
            self.detection = DetectionOptions()
        if self.processing is None:
            self.processing = ProcessingConfig()
        if self.segmentation is None:
            self.segmentation = SegmentationConfig()
        if self.cache is None:
            self.cache = CacheConfig()

    def validate(self) -> None:
        """Check values that the dataclass sections cannot enforce.

        Raises:
            InvalidConfigurationError: naming the first offending field
        """
        if self.processing.MAX_WORKERS < 1:
            raise InvalidConfigurationError(
                f"MAX_WORKERS must be >= 1 (got {self.processing.MAX_WORKERS})",
                field="MAX_WORKERS",
            )
        if self.segmentation.SPLIT_MODE.upper() not in ("A", "B", "C"):
            raise InvalidConfigurationError(
                f"SPLIT_MODE must be A, B or C (got {self.segmentation.SPLIT_MODE!r})",
                field="SPLIT_MODE",
            )
        if self.segmentation.DICTIONARY not in ("small", "core", "full"):
            raise InvalidConfigurationError(
                f"DICTIONARY must be small, core or full (got {self.segmentation.DICTIONARY!r})",
                field="DICTIONARY",
            )


# Global configuration instance
config = ApplicationConfig()


def build_detection_options(**values: Any) -> DetectionOptions:
    """Create DetectionOptions, translating validation errors.

    Raises:
        InvalidConfigurationError: If a value is out of range or unknown
    """
    try:
        return DetectionOptions(**values)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise InvalidConfigurationError(
            f"Invalid value for {field}: {first.get('msg')}",
            field=field,
            cause=e,
        ) from e


def get_config() -> ApplicationConfig:
    """Get global application configuration.

    Example:
        from similarity_md.utils.config import get_config

        cfg = get_config()
        threshold = cfg.detection.threshold
        workers = cfg.processing.MAX_WORKERS
    """
    return config


def update_config(**kwargs) -> None:
    """Update configuration values dynamically.

    Detection options use their lowercase names; the other sections use
    their uppercase field names.

    Example:
        update_config(threshold=0.9, MAX_WORKERS=8)

    Raises:
        InvalidConfigurationError: For unknown keys or invalid values
    """
    global config

    detection_updates: Dict[str, Any] = {}
    for key, value in kwargs.items():
        # Check which config section contains the key
        if key in DetectionOptions.model_fields:
            detection_updates[key] = value
        elif hasattr(config.processing, key):
            setattr(config.processing, key, value)
        elif hasattr(config.segmentation, key):
            setattr(config.segmentation, key, value)
        elif hasattr(config.cache, key):
            setattr(config.cache, key, value)
        else:
            raise InvalidConfigurationError(f"Unknown configuration key: {key}", field=key)

    if detection_updates:
        config.detection = build_detection_options(
            **{**config.detection.model_dump(), **detection_updates}
        )
    config.validate()


def reset_config() -> ApplicationConfig:
    """Restore defaults (used by tests and long-lived processes)."""
    global config
    config = ApplicationConfig()
    return config


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Environment variable name (after prefix) -> (config key, parser)
_ENV_KEYS = {
    "THRESHOLD": ("threshold", float),
    "MIN_CHUNK_TOKENS": ("min_chunk_tokens", int),
    "BUCKET_TOLERANCE": ("bucket_tolerance", float),
    "CROSS_DOCUMENT_ONLY": ("cross_document_only", _parse_bool),
    "MAX_CHUNK_TOKENS": ("max_chunk_tokens", int),
    "EXHAUSTIVE": ("exhaustive", _parse_bool),
    "LOCALE": ("locale", str),
    "MAX_WORKERS": ("MAX_WORKERS", int),
    "LOG_LEVEL": ("LOG_LEVEL", str),
    "JSON_LOGGING": ("JSON_LOGGING", _parse_bool),
    "MORPHOLOGICAL": ("ENABLED", _parse_bool),
    "DICTIONARY": ("DICTIONARY", str),
    "SPLIT_MODE": ("SPLIT_MODE", str),
}


def load_config_from_env(env_file: Optional[str] = None) -> ApplicationConfig:
    """Apply SIMILARITY_* environment variables (and a .env file) to the config.

    Args:
        env_file: Optional path of a .env file (default: search upwards from cwd)

    Returns:
        The updated global configuration

    Raises:
        InvalidConfigurationError: If a variable cannot be parsed
    """
    load_dotenv(env_file)

    updates: Dict[str, Any] = {}
    for suffix, (key, parser) in _ENV_KEYS.items():
        raw = os.getenv(ENV_PREFIX + suffix)
        if raw is None or raw == "":
            continue
        try:
            updates[key] = parser(raw)
        except ValueError as e:
            raise InvalidConfigurationError(
                f"Cannot parse {ENV_PREFIX + suffix}={raw!r}", field=key, cause=e
            ) from e

    if updates:
        update_config(**updates)

    # Setting a cache path turns the cache on
    cache_path = os.getenv(ENV_PREFIX + "CACHE_PATH")
    if cache_path:
        config.cache.PATH = cache_path
        config.cache.ENABLED = True
    return config
