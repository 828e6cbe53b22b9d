"""
Preprocessing modules for coded survey variables.
"""

from .recode import ColumnRecoder, categorize

__all__ = ['ColumnRecoder', 'categorize']
