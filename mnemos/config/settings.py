"""
Runtime Settings - Event Pipeline and Graph Configuration

WHAT: Dataclass settings for the event pipeline and knowledge graph
WHERE: mnemos/config/settings.py - configuration layer
WHO: MemoryEventPipeline, KnowledgeGraph, EntityExtractor
TIME: Resolved once at construction

Defaults mirror the documented pipeline behaviour (batch of 10 every second,
3 retries, critical threshold 0.9). Every config can be overridden from
``MNEMOS_*`` environment variables via ``from_env()``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc


@dataclass(slots=True)
class PriorityThresholds:
    critical: float = 0.9
    high: float = 0.7
    medium: float = 0.5


@dataclass(slots=True)
class EventProcessingConfig:
    """Batching, scheduling and retry knobs for the event pipeline."""

    batch_size: int = 10
    processing_interval_ms: int = 1000
    max_retries: int = 3
    priority_thresholds: PriorityThresholds = field(default_factory=PriorityThresholds)
    # Session repetition detection
    pattern_window_seconds: float = 60.0
    pattern_min_events: int = 3
    pattern_buffer_size: int = 100

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.processing_interval_ms <= 0:
            raise ValueError("processing_interval_ms must be > 0")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")

    @property
    def processing_interval(self) -> float:
        """Interval between batch drains, in seconds."""
        return self.processing_interval_ms / 1000.0

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "EventProcessingConfig":
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            batch_size=_env_int(env, "MNEMOS_BATCH_SIZE", defaults.batch_size),
            processing_interval_ms=_env_int(env, "MNEMOS_PROCESSING_INTERVAL_MS", defaults.processing_interval_ms),
            max_retries=_env_int(env, "MNEMOS_MAX_RETRIES", defaults.max_retries),
            priority_thresholds=PriorityThresholds(
                critical=_env_float(env, "MNEMOS_PRIORITY_CRITICAL", defaults.priority_thresholds.critical),
                high=_env_float(env, "MNEMOS_PRIORITY_HIGH", defaults.priority_thresholds.high),
                medium=_env_float(env, "MNEMOS_PRIORITY_MEDIUM", defaults.priority_thresholds.medium),
            ),
            pattern_window_seconds=_env_float(env, "MNEMOS_PATTERN_WINDOW_SECONDS", defaults.pattern_window_seconds),
            pattern_min_events=_env_int(env, "MNEMOS_PATTERN_MIN_EVENTS", defaults.pattern_min_events),
            pattern_buffer_size=_env_int(env, "MNEMOS_PATTERN_BUFFER_SIZE", defaults.pattern_buffer_size),
        )


@dataclass(slots=True)
class GraphConfig:
    """Similarity thresholds used by extraction, clustering and search."""

    cluster_threshold: float = 0.7
    similarity_threshold: float = 0.8
    default_top_k: int = 10
    default_min_similarity: float = 0.5

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "GraphConfig":
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            cluster_threshold=_env_float(env, "MNEMOS_CLUSTER_THRESHOLD", defaults.cluster_threshold),
            similarity_threshold=_env_float(env, "MNEMOS_SIMILARITY_THRESHOLD", defaults.similarity_threshold),
            default_top_k=_env_int(env, "MNEMOS_SEARCH_TOP_K", defaults.default_top_k),
            default_min_similarity=_env_float(
                env, "MNEMOS_SEARCH_MIN_SIMILARITY", defaults.default_min_similarity
            ),
        )


__all__ = ["EventProcessingConfig", "GraphConfig", "PriorityThresholds"]
