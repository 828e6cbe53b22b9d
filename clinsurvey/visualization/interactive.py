"""
Interactive plotly figures and widget export.

Creates browser-ready figures for sharing outside the report:
- Correlation heatmap with hover captions
- Scatter plots (optionally with an OLS trendline)
- Bubble charts
- Standalone HTML widget files and embeddable fragments
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from loguru import logger

from ..analysis.discovery.correlation import NOT_APPLICABLE, annotation_matrix

TEMPLATE = "plotly_white"


def correlation_colorscale() -> List[List]:
    """Diverging scale over [-1, 1]: blue at -1, white at 0, red at +1."""
    return [
        [0.0, "#2166ac"],
        [0.25, "#92c5de"],
        [0.5, "#f7f7f7"],
        [0.75, "#f4a582"],
        [1.0, "#b2182b"],
    ]


def interactive_heatmap(
    annotations: pd.DataFrame,
    order: Optional[Sequence[str]] = None,
    title: str = "Correlation Matrix",
    font_size: int = 12,
    cell_px: int = 60,
) -> go.Figure:
    """
    Interactive triangular correlation heatmap.

    Args:
        annotations: Long-form table from annotate_correlations
        order: Variable order (default: order recorded in the table)
        title: Figure title
        font_size: Cell text size
        cell_px: Pixels per cell, used to size the figure

    Returns:
        plotly Figure
    """
    if annotations.empty:
        raise ValueError("Annotation table is empty, nothing to plot")

    r_matrix = annotation_matrix(annotations, "r", order).astype(float)
    markers = annotation_matrix(annotations, "marker", order)
    hover = annotation_matrix(annotations, "hover", order)

    text = np.full(r_matrix.shape, "", dtype=object)
    for i in range(r_matrix.shape[0]):
        for j in range(r_matrix.shape[1]):
            r = r_matrix.iat[i, j]
            if pd.isna(r):
                continue
            marker = markers.iat[i, j]
            suffix = marker if isinstance(marker, str) and marker != NOT_APPLICABLE else ""
            text[i, j] = f"{r:.2f}{suffix}"

    fig = go.Figure(
        go.Heatmap(
            z=r_matrix.to_numpy(),
            x=list(r_matrix.columns),
            y=list(r_matrix.index),
            text=text,
            texttemplate="%{text}",
            textfont={"size": font_size},
            hovertext=hover.fillna("").to_numpy(),
            hoverinfo="text",
            colorscale=correlation_colorscale(),
            zmin=-1,
            zmax=1,
            zmid=0,
            xgap=1,
            ygap=1,
            colorbar={"title": "r", "tickvals": [-1, -0.5, 0, 0.5, 1]},
        )
    )

    size = max(400, cell_px * max(r_matrix.shape) + 200)
    fig.update_layout(
        title=title,
        template=TEMPLATE,
        width=size + 100,
        height=size,
        yaxis={"autorange": "reversed"},
        xaxis={"tickangle": -45},
    )
    return fig


def scatter_plot(
    df: pd.DataFrame,
    x: str,
    y: str,
    color: Optional[str] = None,
    hover_data: Optional[Sequence[str]] = None,
    labels: Optional[Dict[str, str]] = None,
    trendline: bool = False,
    title: Optional[str] = None,
) -> go.Figure:
    """
    Interactive scatter plot of two survey variables.

    Args:
        df: Dataset
        x: Column for the x axis
        y: Column for the y axis
        color: Optional column for point color
        hover_data: Extra columns shown on hover
        labels: Display labels for column names
        trendline: Add an OLS trendline (statsmodels)
        title: Figure title

    Returns:
        plotly Figure
    """
    _require_columns(df, [x, y, color] + list(hover_data or []))

    fig = px.scatter(
        df,
        x=x,
        y=y,
        color=color,
        hover_data=list(hover_data) if hover_data else None,
        labels=labels or {},
        trendline="ols" if trendline else None,
        title=title or f"{_label(labels, y)} vs {_label(labels, x)}",
        template=TEMPLATE,
    )
    fig.update_traces(selector={"mode": "markers"}, marker={"size": 8, "opacity": 0.75})
    return fig


def bubble_chart(
    df: pd.DataFrame,
    x: str,
    y: str,
    size: str,
    color: Optional[str] = None,
    hover_name: Optional[str] = None,
    labels: Optional[Dict[str, str]] = None,
    max_size: int = 40,
    title: Optional[str] = None,
) -> go.Figure:
    """
    Interactive bubble chart: scatter with marker area scaled by a third variable.

    Rows with a missing or negative size value are dropped.

    Returns:
        plotly Figure
    """
    _require_columns(df, [x, y, size, color, hover_name])

    sizes = pd.to_numeric(df[size], errors="coerce")
    keep = sizes.notna() & (sizes >= 0)
    if (~keep).any():
        logger.warning(f"Dropping {int((~keep).sum())} rows with missing or negative '{size}'")

    fig = px.scatter(
        df[keep],
        x=x,
        y=y,
        size=size,
        color=color,
        hover_name=hover_name,
        labels=labels or {},
        size_max=max_size,
        title=title or f"{_label(labels, y)} vs {_label(labels, x)} (size: {_label(labels, size)})",
        template=TEMPLATE,
    )
    fig.update_traces(marker={"opacity": 0.7, "line": {"width": 0.5, "color": "white"}})
    return fig


def export_widget(
    fig: go.Figure,
    path: Union[str, Path],
    self_contained: bool = True,
) -> Path:
    """
    Write a figure as a standalone HTML widget.

    Args:
        fig: plotly Figure
        path: Output .html path
        self_contained: Inline plotly.js (works offline) instead of a CDN link

    Returns:
        Path of the written file
    """
    path = Path(path)
    if path.suffix.lower() not in (".html", ".htm"):
        raise ValueError(f"Widget path must end in .html, got {path.name}")
    path.parent.mkdir(parents=True, exist_ok=True)

    fig.write_html(
        str(path),
        include_plotlyjs=True if self_contained else "cdn",
        full_html=True,
    )
    logger.info(f"Saved widget to {path}")
    return path


def widget_fragment(fig: go.Figure, include_plotlyjs: Union[bool, str] = "cdn") -> str:
    """HTML <div> fragment for embedding a figure in another page."""
    return fig.to_html(full_html=False, include_plotlyjs=include_plotlyjs)


def _require_columns(df: pd.DataFrame, columns: Sequence[Optional[str]]) -> None:
    missing = [c for c in columns if c is not None and c not in df.columns]
    if missing:
        raise KeyError(f"Columns not in dataset: {missing}")


def _label(labels: Optional[Dict[str, str]], column: str) -> str:
    return (labels or {}).get(column, column)
