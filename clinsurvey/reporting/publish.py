"""
Static site publishing.

Assembles tables, figures and interactive widgets into a single-page site
that can be committed to a git repository and served by a static host
(GitHub Pages serves the `docs/` folder or the site root as-is; the
`.nojekyll` marker stops it from rewriting files).

Each widget is also written as its own HTML file so it can be linked
directly, and optionally exposed through a QR code for slides and posters.
"""

import html
import re
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd
import plotly.graph_objects as go
import qrcode
from loguru import logger

from .tables import to_html
from ..visualization.interactive import export_widget

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{title}</title>
<style>
body {{ font-family: -apple-system, "Segoe UI", Helvetica, Arial, sans-serif; max-width: 1100px; margin: 2em auto; padding: 0 1em; color: #222; }}
h1 {{ border-bottom: 2px solid #ddd; padding-bottom: .3em; }}
section {{ margin: 2.5em 0; }}
table.summary-table {{ border-collapse: collapse; font-size: .9em; }}
table.summary-table th, table.summary-table td {{ padding: .3em .8em; border-bottom: 1px solid #e5e5e5; text-align: left; }}
img.figure {{ max-width: 100%; }}
.widget-link {{ display: flex; align-items: center; gap: 1em; }}
.widget-link img {{ width: 120px; height: 120px; }}
.footnote, footer {{ color: #666; font-size: .85em; }}
</style>
</head>
<body>
<h1>{title}</h1>
{intro}
{sections}
<footer>Generated {generated}</footer>
</body>
</html>
"""


@dataclass
class Section:
    """One block of the published page."""

    heading: str
    body: str
    kind: str


def slugify(text: str) -> str:
    """File-safe slug: lowercase words joined by hyphens."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "item"


def make_qr_code(url: str, path: Union[str, Path], box_size: int = 10, border: int = 2) -> Path:
    """
    Save a QR code PNG that encodes a URL.

    Args:
        url: Public address to encode
        path: Output .png path
        box_size: Pixels per QR module
        border: Quiet-zone width in modules

    Returns:
        Path of the written image
    """
    if not url:
        raise ValueError("Cannot make a QR code for an empty URL")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(url)
    qr.make(fit=True)
    qr.make_image(fill_color="black", back_color="white").save(str(path))

    logger.info(f"Saved QR code for {url} to {path}")
    return path


class SiteBuilder:
    """
    Builds a static report site.

    Example:
        site = SiteBuilder("docs", "Survey Results", base_url="https://lab.github.io/survey")
        site.add_table("Table 1", table1)
        site.add_figure("Correlations", "results/figures/heatmap.png")
        site.add_widget("Interactive correlations", fig)
        site.build()
    """

    def __init__(
        self,
        site_dir: Union[str, Path],
        title: str,
        base_url: Optional[str] = None,
        intro: Optional[str] = None,
        self_contained_widgets: bool = True,
    ):
        """
        Initialize SiteBuilder.

        Args:
            site_dir: Output directory (e.g. docs/ for GitHub Pages)
            title: Page title
            base_url: Public URL the site will be served from; enables QR codes
            intro: Optional paragraph under the title
            self_contained_widgets: Inline plotly.js in widget files
        """
        self.site_dir = Path(site_dir)
        self.title = title
        self.base_url = base_url.rstrip("/") if base_url else None
        self.intro = intro
        self.self_contained_widgets = self_contained_widgets
        self.sections: List[Section] = []
        self._slugs: set = set()

    def _unique_slug(self, heading: str) -> str:
        base = slugify(heading)
        slug = base
        i = 2
        while slug in self._slugs:
            slug = f"{base}-{i}"
            i += 1
        self._slugs.add(slug)
        return slug

    def widget_url(self, slug: str) -> Optional[str]:
        """Public URL of a widget file, if base_url is set."""
        if self.base_url is None:
            return None
        return f"{self.base_url}/widgets/{slug}.html"

    def add_table(
        self,
        heading: str,
        table: pd.DataFrame,
        footnote: Optional[str] = None,
    ) -> "SiteBuilder":
        """Add a summary table section."""
        self.sections.append(Section(heading, to_html(table, footnote=footnote), "table"))
        return self

    def add_figure(self, heading: str, image_path: Union[str, Path], caption: Optional[str] = None) -> "SiteBuilder":
        """Add a static image section; the image is copied into the site."""
        image_path = Path(image_path)
        if not image_path.exists():
            raise FileNotFoundError(f"Figure not found: {image_path}")

        target = self.site_dir / "figures" / image_path.name
        target.parent.mkdir(parents=True, exist_ok=True)
        if image_path.resolve() != target.resolve():
            shutil.copy2(image_path, target)

        body = f'<img class="figure" src="figures/{html.escape(image_path.name)}" alt="{html.escape(heading)}">'
        if caption:
            body += f'\n<p class="footnote">{html.escape(caption)}</p>'
        self.sections.append(Section(heading, body, "figure"))
        return self

    def add_widget(self, heading: str, fig: go.Figure, embed: bool = True) -> "SiteBuilder":
        """
        Add an interactive widget section.

        The widget is written to widgets/<slug>.html and linked from the page;
        with embed=True it is also shown inline.
        """
        slug = self._unique_slug(heading)
        export_widget(fig, self.site_dir / "widgets" / f"{slug}.html",
                      self_contained=self.self_contained_widgets)

        parts = []
        if embed:
            parts.append(fig.to_html(full_html=False, include_plotlyjs="cdn"))

        link = f'<a href="widgets/{slug}.html">Open "{html.escape(heading)}" on its own page</a>'
        url = self.widget_url(slug)
        if url:
            make_qr_code(url, self.site_dir / "qr" / f"{slug}.png")
            link = (
                f'<div class="widget-link">{link}'
                f'<img src="qr/{slug}.png" alt="QR code for {html.escape(url)}"></div>'
            )
        parts.append(link)

        self.sections.append(Section(heading, "\n".join(parts), "widget"))
        return self

    def add_html(self, heading: str, body: str) -> "SiteBuilder":
        """Add a section of pre-rendered HTML."""
        self.sections.append(Section(heading, body, "html"))
        return self

    def render(self) -> str:
        """Render the page HTML."""
        sections = "\n".join(
            f'<section id="{slugify(s.heading)}" class="{s.kind}">\n'
            f"<h2>{html.escape(s.heading)}</h2>\n{s.body}\n</section>"
            for s in self.sections
        )
        intro = f"<p>{html.escape(self.intro)}</p>" if self.intro else ""
        return PAGE_TEMPLATE.format(
            title=html.escape(self.title),
            intro=intro,
            sections=sections,
            generated=datetime.now().strftime("%Y-%m-%d %H:%M"),
        )

    def build(self) -> Path:
        """
        Write index.html and the .nojekyll marker.

        Returns:
            Path of index.html
        """
        self.site_dir.mkdir(parents=True, exist_ok=True)
        index_path = self.site_dir / "index.html"
        index_path.write_text(self.render(), encoding="utf-8")
        (self.site_dir / ".nojekyll").touch()

        logger.info(f"Built site with {len(self.sections)} sections at {index_path}")
        return index_path
