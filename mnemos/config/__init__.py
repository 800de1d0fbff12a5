"""Configuration for the mnemos runtime (dataclass settings + event contracts)."""

from .settings import EventProcessingConfig, GraphConfig, PriorityThresholds  # noqa: F401

__all__ = [
    "EventProcessingConfig",
    "GraphConfig",
    "PriorityThresholds",
]
