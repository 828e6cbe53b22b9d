from .correlation import (
    CorrelationAnnotator,
    CorrelationConfig,
    annotate_correlations,
    correlation_matrices,
    significance_marker,
)

__all__ = [
    "CorrelationAnnotator",
    "CorrelationConfig",
    "annotate_correlations",
    "correlation_matrices",
    "significance_marker",
]
