"""
Static and interactive plots for survey variables.
"""

from .heatmap import plot_correlation_heatmap
from .interactive import (
    bubble_chart,
    export_widget,
    interactive_heatmap,
    scatter_plot,
    widget_fragment,
)

__all__ = [
    "plot_correlation_heatmap",
    "interactive_heatmap",
    "scatter_plot",
    "bubble_chart",
    "export_widget",
    "widget_fragment",
]
