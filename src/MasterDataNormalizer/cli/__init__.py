"""CLI package exports."""

from .app import app, main
from .logging import NormalizationContextFilter, configure_logging, progress_spinner

__all__ = [
    "app",
    "main",
    "NormalizationContextFilter",
    "configure_logging",
    "progress_spinner",
]
