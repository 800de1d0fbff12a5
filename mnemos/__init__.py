"""mnemos runtime core package."""

__all__ = [
    "config",
    "embedders",
    "runtime",
]
