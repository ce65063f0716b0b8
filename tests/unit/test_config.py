"""
Tests for configuration handling and startup validation
"""

import os
import sys

import pytest

# Add project root to path for imports
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../../')))

from similarity_md.orchestrator.pipeline import DuplicateDetector
from similarity_md.utils.config import (
    build_detection_options,
    get_config,
    load_config_from_env,
    reset_config,
    update_config,
)
from similarity_md.utils.errors import FatalStartupError, InvalidConfigurationError

ENV_NAMES = [
    "SIMILARITY_THRESHOLD",
    "SIMILARITY_MIN_CHUNK_TOKENS",
    "SIMILARITY_MORPHOLOGICAL",
    "SIMILARITY_MAX_WORKERS",
    "SIMILARITY_CACHE_PATH",
    "SIMILARITY_CROSS_DOCUMENT_ONLY",
    "SIMILARITY_SPLIT_MODE",
    "SIMILARITY_DICTIONARY",
]


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()
    # load_dotenv writes straight into os.environ
    for name in ENV_NAMES:
        os.environ.pop(name, None)


def test_defaults():
    cfg = get_config()
    assert cfg.detection.threshold == 0.85
    assert cfg.detection.min_chunk_tokens == 5
    assert cfg.detection.bucket_tolerance == 0.3
    assert cfg.detection.cross_document_only is False
    assert cfg.processing.MAX_WORKERS == 4
    assert cfg.segmentation.ENABLED is True
    assert cfg.cache.ENABLED is False


@pytest.mark.parametrize("field,value", [
    ("threshold", 1.5),
    ("threshold", -0.1),
    ("min_chunk_tokens", -1),
    ("bucket_tolerance", -0.5),
    ("max_chunk_tokens", 0),
    ("locale", "fr"),
])
def test_invalid_detection_options(field, value):
    with pytest.raises(InvalidConfigurationError) as exc_info:
        build_detection_options(**{field: value})
    assert exc_info.value.field == field


def test_unknown_option_is_rejected():
    with pytest.raises(InvalidConfigurationError):
        build_detection_options(treshold=0.9)


def test_detector_rejects_invalid_options():
    """Validation happens before any phase runs"""
    with pytest.raises(FatalStartupError):
        DuplicateDetector(options={"threshold": 2.0})
    with pytest.raises(InvalidConfigurationError):
        DuplicateDetector(max_workers=0)


def test_update_config():
    update_config(threshold=0.9, MAX_WORKERS=2, SPLIT_MODE="A")
    cfg = get_config()

    assert cfg.detection.threshold == 0.9
    assert cfg.detection.min_chunk_tokens == 5
    assert cfg.processing.MAX_WORKERS == 2
    assert cfg.segmentation.SPLIT_MODE == "A"


def test_update_config_rejects_unknown_keys():
    with pytest.raises(InvalidConfigurationError):
        update_config(NOT_A_SETTING=1)


def test_update_config_validates_sections():
    with pytest.raises(InvalidConfigurationError) as exc_info:
        update_config(MAX_WORKERS=0)
    assert exc_info.value.field == "MAX_WORKERS"

    reset_config()
    with pytest.raises(InvalidConfigurationError):
        update_config(DICTIONARY="huge")


def test_load_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SIMILARITY_THRESHOLD", "0.7")
    monkeypatch.setenv("SIMILARITY_MIN_CHUNK_TOKENS", "3")
    monkeypatch.setenv("SIMILARITY_MORPHOLOGICAL", "false")
    monkeypatch.setenv("SIMILARITY_CROSS_DOCUMENT_ONLY", "yes")
    monkeypatch.setenv("SIMILARITY_CACHE_PATH", str(tmp_path / "tokens.json.gz"))

    cfg = load_config_from_env(env_file=str(tmp_path / ".env"))

    assert cfg.detection.threshold == 0.7
    assert cfg.detection.min_chunk_tokens == 3
    assert cfg.detection.cross_document_only is True
    assert cfg.segmentation.ENABLED is False
    assert cfg.cache.ENABLED is True
    assert cfg.cache.PATH == str(tmp_path / "tokens.json.gz")


def test_load_from_env_file(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("SIMILARITY_MAX_WORKERS=3\n", encoding="utf-8")

    cfg = load_config_from_env(env_file=str(env_file))
    assert cfg.processing.MAX_WORKERS == 3


def test_segmentation_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SIMILARITY_SPLIT_MODE", "A")
    monkeypatch.setenv("SIMILARITY_DICTIONARY", "small")

    cfg = load_config_from_env(env_file=str(tmp_path / ".env"))

    assert cfg.segmentation.SPLIT_MODE == "A"
    assert cfg.segmentation.DICTIONARY == "small"


def test_invalid_split_mode_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SIMILARITY_SPLIT_MODE", "Z")

    with pytest.raises(InvalidConfigurationError) as exc_info:
        load_config_from_env(env_file=str(tmp_path / ".env"))
    assert exc_info.value.field == "SPLIT_MODE"


def test_unparseable_environment_value(monkeypatch, tmp_path):
    monkeypatch.setenv("SIMILARITY_THRESHOLD", "high")

    with pytest.raises(InvalidConfigurationError) as exc_info:
        load_config_from_env(env_file=str(tmp_path / ".env"))
    assert exc_info.value.field == "threshold"


def test_from_config_without_segmentation():
    update_config(ENABLED=False, threshold=0.95, MAX_WORKERS=2)
    detector = DuplicateDetector.from_config()

    assert detector.options.threshold == 0.95
    assert detector.max_workers == 2
    assert detector.cache is None
    assert detector.tokenizer.segmenter is None
