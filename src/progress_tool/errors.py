"""Errores del motor de análisis de progreso."""

from __future__ import annotations


class ProgressAnalysisError(Exception):
    """Base class for every failure raised by the analysis core."""


class InsufficientDataError(ProgressAnalysisError):
    """Not enough evaluation reports (or data points) for the operation."""


class InvalidConfigurationError(ProgressAnalysisError):
    """Malformed threshold, mode, polarity, weight or config field."""


class UnscorableComparisonError(ProgressAnalysisError):
    """No category survives weighting, so no score can be produced."""


class InconsistentHistoryError(ProgressAnalysisError):
    """History mixes subjects or repeats a timestamp."""
