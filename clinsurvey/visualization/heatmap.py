"""
Static correlation heatmap.

Renders an annotation table from `annotate_correlations` as a triangular
seaborn heatmap with the coefficient and significance stars in each cell.
The color scale is pinned to [-1, 1] so plots of different variable sets
stay comparable.
"""

from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from loguru import logger

from ..analysis.discovery.correlation import NOT_APPLICABLE, annotation_matrix

sns.set_style('white')


def cell_labels(r_matrix: pd.DataFrame, marker_matrix: pd.DataFrame, digits: int = 2) -> np.ndarray:
    """Cell text: coefficient with its stars on the next line."""
    labels = np.full(r_matrix.shape, "", dtype=object)
    for i in range(r_matrix.shape[0]):
        for j in range(r_matrix.shape[1]):
            r = r_matrix.iat[i, j]
            marker = marker_matrix.iat[i, j]
            if pd.isna(r):
                continue
            text = f"{r:.{digits}f}"
            if isinstance(marker, str) and marker and marker != NOT_APPLICABLE:
                text = f"{text}\n{marker}"
            labels[i, j] = text
    return labels


def plot_correlation_heatmap(
    annotations: pd.DataFrame,
    order: Optional[Sequence[str]] = None,
    title: str = 'Correlation Matrix',
    cell_size: float = 0.6,
    font_size: int = 9,
    cmap: str = 'RdBu_r',
    save_path: Optional[Union[str, Path]] = None,
    dpi: int = 300,
):
    """
    Plot a triangular correlation heatmap with significance stars.

    If the plot looks cramped, increase `cell_size` (inches per variable) or
    decrease `font_size`.

    Args:
        annotations: Long-form table from annotate_correlations
        order: Variable order (default: order recorded in the table)
        title: Figure title
        cell_size: Inches per heatmap cell
        font_size: Annotation and tick label size
        cmap: Diverging colormap, centered at r = 0
        save_path: Path to save PNG
        dpi: Resolution of the saved image

    Returns:
        Figure object
    """
    if annotations.empty:
        raise ValueError("Annotation table is empty, nothing to plot")

    r_matrix = annotation_matrix(annotations, 'r', order).astype(float)
    marker_matrix = annotation_matrix(annotations, 'marker', order)

    n_rows, n_cols = r_matrix.shape
    width = max(4.0, n_cols * cell_size + 2.5)
    height = max(3.5, n_rows * cell_size + 1.5)
    fig, ax = plt.subplots(figsize=(width, height))

    sns.heatmap(
        r_matrix,
        mask=r_matrix.isna(),
        annot=cell_labels(r_matrix, marker_matrix),
        fmt='',
        cmap=cmap,
        vmin=-1,
        vmax=1,
        center=0,
        square=True,
        linewidths=0.5,
        linecolor='white',
        annot_kws={'size': font_size},
        cbar_kws={'shrink': 0.8, 'label': 'r', 'ticks': [-1, -0.5, 0, 0.5, 1]},
        ax=ax,
    )

    ax.set_title(title, fontsize=font_size + 3, fontweight='bold')
    ax.tick_params(axis='x', labelsize=font_size, rotation=45)
    ax.tick_params(axis='y', labelsize=font_size, rotation=0)
    for label in ax.get_xticklabels():
        label.set_horizontalalignment('right')

    plt.tight_layout()

    if save_path:
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=dpi, bbox_inches='tight')
        logger.info(f"Saved heatmap to {save_path} ({dpi} dpi)")

    return fig
