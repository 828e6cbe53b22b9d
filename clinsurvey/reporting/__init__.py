"""
Table export and static site publishing.
"""

from .tables import export_table
from .publish import SiteBuilder, make_qr_code

__all__ = ["export_table", "SiteBuilder", "make_qr_code"]
