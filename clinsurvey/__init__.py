"""
clinsurvey: descriptive tables, correlation heatmaps and interactive plots
for clinical survey datasets.
"""

__version__ = "0.1.0"
