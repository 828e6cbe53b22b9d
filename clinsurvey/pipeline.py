"""
Report pipeline steps.

Each step reads the report configuration, writes its artifacts under the
results directory and returns the paths it produced. The numbered scripts
in scripts/ are thin command-line wrappers around these functions.
"""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import pandas as pd
from loguru import logger

from .analysis.descriptive import describe_continuous, is_categorical, summarize_table
from .analysis.discovery.correlation import CorrelationAnnotator
from .data.loaders import SurveySpreadsheetLoader, select_available
from .preprocessing.recode import ColumnRecoder
from .reporting.publish import SiteBuilder
from .reporting.tables import export_table
from .utils.config import ReportConfig
from .visualization.heatmap import plot_correlation_heatmap
from .visualization.interactive import (
    bubble_chart,
    export_widget,
    interactive_heatmap,
    scatter_plot,
)

TABLE_FORMATS = (".csv", ".tex", ".docx")


def load_survey(config: ReportConfig) -> Tuple[pd.DataFrame, ColumnRecoder]:
    """Load the dataset and apply the configured value codes."""
    loader = SurveySpreadsheetLoader(
        Path(config.data.path),
        {
            "sheet": config.data.sheet,
            "id_column": config.data.id_column,
            "na_values": config.data.na_values,
        },
    )
    recoder = ColumnRecoder(config.data.value_codes, config.data.labels)
    df = recoder.recode(loader.data)

    info = loader.get_dataset_info()
    high_missing = {c: r for c, r in info.missing_rate.items() if r > 0.2}
    if high_missing:
        logger.warning(f"Columns with >20% missing values: {high_missing}")

    return df, recoder


def table_footnote(config: ReportConfig) -> str:
    """Note printed under the Table 1 exports and on the site."""
    if config.descriptive.statistic == "mean_sd":
        continuous = "Continuous: mean (SD)"
    else:
        continuous = "Continuous: median (Q1, Q3)"
    return f"{continuous}; categorical: n (%)."


def run_descriptives(
    config: ReportConfig,
    df: pd.DataFrame,
    recoder: ColumnRecoder,
) -> Dict[str, pd.DataFrame]:
    """
    Table 1 overall and by group, plus distribution statistics.

    Returns:
        Dictionary of table name to table
    """
    desc = config.descriptive
    tables_dir = config.output.tables_dir
    variables = select_available(df, desc.variables or list(df.columns))

    tables = {
        "table1_overall": summarize_table(
            df, variables,
            categorical=config.data.categorical,
            statistic=desc.statistic,
            labels=recoder.labels,
            digits=desc.digits,
        ),
    }
    if desc.by:
        tables["table1_by_group"] = summarize_table(
            df, variables,
            by=desc.by,
            categorical=config.data.categorical,
            statistic=desc.statistic,
            labels=recoder.labels,
            add_p=desc.add_p,
            digits=desc.digits,
        )

    continuous = [v for v in variables
                  if not is_categorical(df[v]) and v not in config.data.categorical]
    distribution = describe_continuous(df, continuous)
    distribution["Variable"] = recoder.labels_for(distribution["Variable"])
    tables["descriptive_statistics"] = distribution

    footnote = table_footnote(config)
    for name, table in tables.items():
        for suffix in TABLE_FORMATS:
            export_table(table, tables_dir / f"{name}{suffix}",
                         title=name.replace("_", " ").title(), footnote=footnote)

    return tables


def run_correlations(
    config: ReportConfig,
    df: pd.DataFrame,
    recoder: ColumnRecoder,
) -> Tuple[pd.DataFrame, Path]:
    """
    Correlation annotation table and static heatmap.

    Returns:
        Tuple of (annotation table, heatmap path)
    """
    columns = select_available(df, config.correlation_variables, min_columns=2)

    annotator = CorrelationAnnotator(config.correlation)
    annotations = annotator.fit(df, columns, labels=recoder.labels)

    summary = annotator.summary()
    logger.info(
        f"{summary['n_significant']}/{summary['n_pairs']} pairs significant "
        f"({config.correlation.method})"
    )
    for row in annotator.significant_pairs().head(10).itertuples(index=False):
        logger.info(f"  {row.row_var} <-> {row.col_var}: r={row.r:.3f}, p={row.p:.4f} {row.marker}")

    export_table(annotations.drop(columns=["hover"]),
                 config.output.tables_dir / "correlation_annotations.csv")

    heatmap_path = config.output.figures_dir / "correlation_heatmap.png"
    fig = plot_correlation_heatmap(
        annotations,
        title=f"{config.correlation.method.title()} Correlations",
        cell_size=config.plots.cell_size,
        font_size=config.plots.font_size,
        cmap=config.plots.cmap,
        save_path=heatmap_path,
        dpi=config.plots.dpi,
    )
    plt.close(fig)

    return annotations, heatmap_path


def run_interactive(
    config: ReportConfig,
    df: pd.DataFrame,
    recoder: ColumnRecoder,
    annotations: Optional[pd.DataFrame] = None,
) -> Dict[str, object]:
    """
    Interactive heatmap, scatter and bubble widgets.

    Returns:
        Dictionary of widget name to plotly Figure (files are written too)
    """
    if annotations is None:
        columns = select_available(df, config.correlation_variables, min_columns=2)
        annotations = CorrelationAnnotator(config.correlation).fit(df, columns, labels=recoder.labels)

    figures = {
        "correlation_heatmap": interactive_heatmap(
            annotations, title=f"{config.correlation.method.title()} Correlations"
        ),
    }

    for spec in config.plots.scatter:
        name = f"scatter_{spec['x']}_{spec['y']}"
        if not _columns_present(df, spec, ("x", "y", "color")):
            continue
        figures[name] = scatter_plot(
            df, spec["x"], spec["y"],
            color=spec.get("color"),
            labels=recoder.labels,
            trendline=bool(spec.get("trendline", False)),
            title=spec.get("title"),
        )

    for spec in config.plots.bubble:
        name = f"bubble_{spec['x']}_{spec['y']}_{spec['size']}"
        if not _columns_present(df, spec, ("x", "y", "size", "color")):
            continue
        figures[name] = bubble_chart(
            df, spec["x"], spec["y"], spec["size"],
            color=spec.get("color"),
            labels=recoder.labels,
            title=spec.get("title"),
        )

    for name, fig in figures.items():
        export_widget(fig, config.output.widgets_dir / f"{name}.html",
                      self_contained=config.plots.self_contained)

    return figures


def build_site(
    config: ReportConfig,
    tables: Dict[str, pd.DataFrame],
    heatmap_path: Optional[Path],
    figures: Dict[str, object],
) -> Path:
    """Assemble tables, the heatmap and widgets into the static site."""
    site = SiteBuilder(
        config.site.site_dir,
        config.site.title,
        base_url=config.site.base_url,
        intro=config.site.intro,
        self_contained_widgets=config.site.self_contained_widgets,
    )

    footnote = table_footnote(config)
    for name, table in tables.items():
        site.add_table(name.replace("_", " ").title(), table, footnote=footnote)

    if heatmap_path is not None:
        site.add_figure(
            "Correlation heatmap",
            heatmap_path,
            caption=", ".join(f"{symbol} p ≤ {cutoff:g}" for cutoff, symbol in config.correlation.thresholds),
        )

    for name, fig in figures.items():
        site.add_widget(name.replace("_", " ").title(), fig)

    return site.build()


def _columns_present(df: pd.DataFrame, spec: Dict, keys: Tuple[str, ...]) -> bool:
    missing: List[str] = [spec[k] for k in keys if spec.get(k) and spec[k] not in df.columns]
    if missing:
        logger.warning(f"Skipping plot {spec}: columns not in dataset {missing}")
        return False
    return True
