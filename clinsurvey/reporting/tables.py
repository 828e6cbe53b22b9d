"""
Summary table export.

Writes publication tables in the formats collaborators ask for:
CSV for re-analysis, LaTeX for manuscripts, Word (.docx) for co-authors,
and HTML for the published report.
"""

import html
from pathlib import Path
from typing import Optional, Union

import pandas as pd
from docx import Document
from docx.shared import Pt
from loguru import logger

SUPPORTED_FORMATS = (".csv", ".tex", ".docx", ".html")


def export_table(
    table: pd.DataFrame,
    path: Union[str, Path],
    title: Optional[str] = None,
    footnote: Optional[str] = None,
    float_format: str = "{:.2f}",
) -> Path:
    """
    Save a table, choosing the format from the file extension.

    Args:
        table: Table to export
        path: Output path ending in .csv, .tex, .docx or .html
        title: Optional caption (LaTeX, Word, HTML)
        footnote: Optional note printed under the table (Word, HTML)
        float_format: Format for float cells in LaTeX, Word and HTML

    Returns:
        Path of the written file
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported table format '{suffix}'. Expected one of {SUPPORTED_FORMATS}")

    path.parent.mkdir(parents=True, exist_ok=True)

    if suffix == ".csv":
        table.to_csv(path, index=False)
    elif suffix == ".tex":
        path.write_text(to_latex(table, title, float_format))
    elif suffix == ".docx":
        write_docx(table, path, title, footnote, float_format)
    else:
        path.write_text(to_html(table, title, footnote, float_format), encoding="utf-8")

    logger.info(f"Saved table to {path} ({len(table)} rows)")
    return path


def to_latex(table: pd.DataFrame, caption: Optional[str] = None, float_format: str = "{:.2f}") -> str:
    """LaTeX tabular for a manuscript."""
    return table.to_latex(
        index=False,
        caption=caption,
        float_format=float_format.format,
        na_rep="",
        escape=True,
    )


def to_html(
    table: pd.DataFrame,
    title: Optional[str] = None,
    footnote: Optional[str] = None,
    float_format: str = "{:.2f}",
) -> str:
    """HTML fragment for the published report."""
    parts = []
    if title:
        parts.append(f"<h3>{html.escape(title)}</h3>")
    parts.append(table.to_html(
        index=False,
        na_rep="",
        float_format=float_format.format,
        classes="summary-table",
        border=0,
    ))
    if footnote:
        parts.append(f'<p class="footnote">{html.escape(footnote)}</p>')
    return "\n".join(parts)


def write_docx(
    table: pd.DataFrame,
    path: Union[str, Path],
    title: Optional[str] = None,
    footnote: Optional[str] = None,
    float_format: str = "{:.2f}",
    font_size: int = 9,
) -> Path:
    """
    Write a table to a Word document.

    Args:
        table: Table to write
        path: Output .docx path
        title: Heading above the table
        footnote: Note under the table
        float_format: Format for float cells
        font_size: Cell font size in points

    Returns:
        Path of the written file
    """
    document = Document()
    if title:
        document.add_heading(title, level=2)

    doc_table = document.add_table(rows=1, cols=len(table.columns))
    doc_table.style = "Table Grid"

    header = doc_table.rows[0].cells
    for cell, name in zip(header, table.columns):
        cell.text = str(name)
        for run in cell.paragraphs[0].runs:
            run.bold = True
            run.font.size = Pt(font_size)

    for values in table.itertuples(index=False):
        cells = doc_table.add_row().cells
        for cell, value in zip(cells, values):
            cell.text = _cell_text(value, float_format)
            for run in cell.paragraphs[0].runs:
                run.font.size = Pt(font_size)

    if footnote:
        note = document.add_paragraph(footnote)
        for run in note.runs:
            run.italic = True
            run.font.size = Pt(font_size - 1)

    path = Path(path)
    document.save(str(path))
    return path


def _cell_text(value, float_format: str) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    if isinstance(value, float):
        return float_format.format(value)
    return str(value)
